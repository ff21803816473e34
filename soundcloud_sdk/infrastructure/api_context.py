"""API Context — long-lived owner of the HTTP client, client identifier and session.

Invariants:
    - One httpx.AsyncClient per context, shared by every request it issues
    - Every URL built through authenticated_url() carries client_id
    - authenticated_url() raises MissingClientIdentifierError when no identifier is set
    - The session is read, never created or persisted, by the context

Design Decisions:
    - Explicit context passed to each Request instead of ambient globals
    - Module-level init_context()/get_context() is the single initialization point
      for applications that want one process-wide context
"""

import logging
from typing import Mapping

import httpx

from soundcloud_sdk.config import Settings
from soundcloud_sdk.core.date_formats import DateFormatterCache, shared_formatters
from soundcloud_sdk.core.json_node import NodeContext, append_client_identifier
from soundcloud_sdk.core.protocols import SessionLike
from soundcloud_sdk.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "soundcloud-sdk-core/1.0",
}


class APIContext:
    """Shared state for the request layer."""

    def __init__(
        self,
        client_identifier: str | None,
        *,
        session: SessionLike | None = None,
        http_client: httpx.AsyncClient | None = None,
        api_url: str = "https://api.soundcloud.com",
        timeout_seconds: float = 30.0,
        max_connections: int = 20,
        max_keepalive_connections: int = 10,
        auth_max_retries: int = 1,
        date_formatters: DateFormatterCache | None = None,
    ):
        self.client_identifier = client_identifier
        self.session = session
        self.api_url = api_url.rstrip("/")
        self.auth_max_retries = auth_max_retries
        self.date_formatters = date_formatters or shared_formatters
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_keepalive_connections,
            ),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        session: SessionLike | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "APIContext":
        return cls(
            settings.soundcloud_client_id,
            session=session,
            http_client=http_client,
            api_url=settings.soundcloud_api_url,
            timeout_seconds=settings.http_timeout_seconds,
            max_connections=settings.http_max_connections,
            max_keepalive_connections=settings.http_max_keepalive_connections,
            auth_max_retries=settings.auth_max_retries,
        )

    @property
    def node_context(self) -> NodeContext:
        return NodeContext(self.client_identifier, self.date_formatters)

    @property
    def has_active_session(self) -> bool:
        return self.session is not None and self.session.has_active_session

    def authenticated_url(
        self, url: str | httpx.URL, params: Mapping[str, str] | None = None,
    ) -> httpx.URL:
        """Resolve url against api_url and append client_id plus extra params."""
        resolved = httpx.URL(url)
        if not resolved.is_absolute_url:
            resolved = httpx.URL(self.api_url + "/" + str(resolved).lstrip("/"))
        if params:
            resolved = resolved.copy_merge_params(dict(params))
        return append_client_identifier(resolved, self.client_identifier)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "APIContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


# Singleton (initialized by the application)
api_context: APIContext | None = None


def init_context(
    settings: Settings,
    *,
    session: SessionLike | None = None,
    configure_logging: bool = False,
    **kwargs,
) -> APIContext:
    global api_context
    if configure_logging:
        setup_logging(settings.log_level, settings.log_format)
    api_context = APIContext.from_settings(settings, session=session, **kwargs)
    logger.info(
        "SDK context initialized",
        extra={"url": api_context.api_url},
    )
    return api_context


def get_context() -> APIContext:
    if not api_context:
        raise RuntimeError("API context not initialized")
    return api_context
