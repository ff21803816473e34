"""Auth-Retry Interceptor — refreshes an expired session on 401 and re-issues the call.

Invariants:
    - Only HTTP 401 with an active session triggers a refresh; anything else is
      forwarded to the caller's completion unchanged, with no refresh
    - One refresh per intercepted completion, then exactly one retry
    - On the refresh path the caller's completion is reached only through the retry,
      or through AuthExpiredError when refresh fails or max_retries is exhausted
    - attempt counts refresh-and-retry cycles already performed for one logical call

Design Decisions:
    - Bounded retries (default 1) with AuthExpiredError as the terminal failure
    - send_authenticated() accepts a descriptor factory: a retry re-invokes it so
      endpoint code can read the refreshed token
    - Refresh tasks are held in a set until done (asyncio keeps weak references)
"""

import asyncio
import logging
from typing import Any, Callable, TypeVar

import httpx

from soundcloud_sdk.core.domain_types import HTTP_UNAUTHORIZED
from soundcloud_sdk.core.errors import AuthExpiredError, ErrorContext
from soundcloud_sdk.core.protocols import SessionLike
from soundcloud_sdk.core.result import Failure, Result
from soundcloud_sdk.infrastructure.api_context import APIContext
from soundcloud_sdk.infrastructure.http_request import (
    Completion, Request, RequestDescriptor,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CallerCompletion = Callable[[Result[T]], None]
Retry = Callable[[int], Any]


def is_unauthorized(response: httpx.Response | None) -> bool:
    return response is not None and response.status_code == HTTP_UNAUTHORIZED


class AuthRetryInterceptor:
    """Completion middleware implementing refresh-then-retry on 401."""

    def __init__(self, session: SessionLike | None, max_retries: int = 1):
        self._session = session
        self.max_retries = max_retries
        self._pending: set[asyncio.Task] = set()

    def wrap(
        self,
        completion: CallerCompletion[T],
        retry: Retry,
        attempt: int = 0,
    ) -> Completion[T]:
        """Adapt a caller completion into a Request completion."""
        def intercepted(result: Result[T], response: httpx.Response | None) -> None:
            self.handle(result, response, retry, completion, attempt)
        return intercepted

    def handle(
        self,
        result: Result[T],
        response: httpx.Response | None,
        retry: Retry,
        completion: CallerCompletion[T],
        attempt: int = 0,
    ) -> None:
        if not is_unauthorized(response) or not self._has_active_session():
            completion(result)
            return

        if attempt >= self.max_retries:
            logger.error(
                "Still unauthorized after refresh; giving up",
                extra={"attempt": attempt, "status_code": HTTP_UNAUTHORIZED},
            )
            completion(Failure(AuthExpiredError(
                attempt, cause=result.error,
                context=ErrorContext(status_code=HTTP_UNAUTHORIZED),
            )))
            return

        task = asyncio.get_running_loop().create_task(
            self._refresh_then_retry(retry, completion, attempt + 1),
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _has_active_session(self) -> bool:
        return self._session is not None and self._session.has_active_session

    async def _refresh_then_retry(
        self, retry: Retry, completion: CallerCompletion, attempt: int,
    ) -> None:
        logger.info(
            "Unauthorized response, refreshing session",
            extra={"attempt": attempt, "status_code": HTTP_UNAUTHORIZED},
        )
        try:
            refreshed = await self._session.refresh()
        except Exception as e:
            logger.error(f"Session refresh raised: {e}", exc_info=True)
            completion(Failure(AuthExpiredError(attempt, cause=e)))
            return

        if not refreshed.is_success:
            logger.warning(
                f"Session refresh failed: {refreshed.error}",
                extra={"attempt": attempt},
            )
            completion(Failure(AuthExpiredError(attempt, cause=refreshed.error)))
            return

        logger.info("Session refreshed, retrying request", extra={"attempt": attempt})
        retry(attempt)


def send_authenticated(
    context: APIContext,
    request: RequestDescriptor[T] | Callable[[], RequestDescriptor[T]],
    completion: CallerCompletion[T],
) -> Request[T]:
    """Start a request whose 401 responses go through refresh-and-retry.

    Returns the handle of the first attempt; a retry runs under its own handle.
    """
    interceptor = AuthRetryInterceptor(context.session, context.auth_max_retries)
    build = request if callable(request) else (lambda: request)

    def issue(attempt: int) -> Request[T]:
        operation = Request(build(), interceptor.wrap(completion, issue, attempt), context)
        operation.start()
        return operation

    return issue(0)
