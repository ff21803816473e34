"""Request Executor — builds, sends and decodes one JSON API call.

Invariants:
    - GET parameters go into the query string; POST/PUT/DELETE parameters are
      form-encoded into the body and never appear in the query string
    - A Request does nothing until start(); stop() suspends at the next chunk
      boundary and a later start() resumes the same transfer
    - Response handling order: no response -> TransportError; empty body ->
      DecodeError; undecodable body -> DecodeError; otherwise the parse
      function's Result is delivered unchanged
    - A parse function that raises yields DecodeError(PARSE_ERROR); only a missing
      client identifier propagates, from wait(), with no completion call
    - The completion runs exactly once, as its own callback on the event loop
      that started the request (never inside another completion)

Design Decisions:
    - Streamed send (client.send(stream=True)): the transfer can be suspended
      between chunks without discarding what was already buffered
    - The completion receives the httpx.Response (or None) next to the Result so
      interceptors can read the status code without the parse function seeing it
    - Log URLs without their query string: query strings carry credentials
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar
from urllib.parse import urlencode

import httpx

from soundcloud_sdk.core.domain_types import HTTPMethod, Parameters, ParseFunction
from soundcloud_sdk.core.errors import (
    DecodeError, ErrorContext, MissingClientIdentifierError, TransportError,
)
from soundcloud_sdk.core.json_node import JSONNode
from soundcloud_sdk.core.result import Failure, Result
from soundcloud_sdk.infrastructure.api_context import APIContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

Completion = Callable[[Result[T], httpx.Response | None], None]

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class RequestDescriptor(Generic[T]):
    """What to call and how to turn the JSON answer into a Result."""
    url: httpx.URL | str
    method: HTTPMethod
    parse: ParseFunction[T]
    parameters: Parameters | None = None


def build_http_request(
    client: httpx.AsyncClient,
    method: HTTPMethod,
    url: httpx.URL | str,
    parameters: Parameters | None = None,
) -> httpx.Request:
    """Build the wire request for method, placing parameters per verb."""
    url = httpx.URL(url)
    if not parameters:
        return client.build_request(method.value, url)
    if method.parameters_in_query:
        return client.build_request(
            method.value, url.copy_merge_params(dict(parameters)),
        )
    return client.build_request(
        method.value,
        url,
        content=urlencode(dict(parameters)).encode("utf-8"),
        headers={"Content-Type": FORM_CONTENT_TYPE},
    )


def _log_url(url: httpx.URL) -> str:
    return str(url).split("?", 1)[0]


class Request(Generic[T]):
    """One executable API call with pausable transfer."""

    def __init__(
        self,
        descriptor: RequestDescriptor[T],
        completion: Completion[T],
        context: APIContext,
    ):
        self.descriptor = descriptor
        self._completion = completion
        self._context = context
        self.http_request = build_http_request(
            context.http_client,
            descriptor.method,
            descriptor.url,
            descriptor.parameters,
        )
        self._resumed = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._done: asyncio.Future | None = None

    # ─── Operation handle ───────────────────────────────────────

    def start(self) -> None:
        """Begin the transfer, or resume it after stop()."""
        if self._task is None:
            loop = asyncio.get_running_loop()
            self._done = loop.create_future()
            self._task = loop.create_task(self._run(loop))
        self._resumed.set()

    def stop(self) -> None:
        """Suspend the transfer; buffered data is kept and start() resumes it."""
        self._resumed.clear()

    @property
    def is_running(self) -> bool:
        return self._resumed.is_set() and not self.done

    @property
    def done(self) -> bool:
        return self._done is not None and self._done.done()

    async def wait(self) -> tuple[Result[T], httpx.Response | None]:
        """Await delivery; returns what the completion received."""
        if self._done is None:
            raise RuntimeError("Request has not been started")
        return await self._done

    # ─── Transfer ───────────────────────────────────────────────

    async def _run(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            result, response = await self._transfer()
        except asyncio.CancelledError:
            self._done.cancel()
            raise
        except Exception as e:
            logger.error(
                f"Request crashed: {e}",
                exc_info=True,
                extra=self._log_extra(),
            )
            self._done.set_exception(e)
            return
        loop.call_soon(self._deliver, result, response)

    def _deliver(self, result: Result[T], response: httpx.Response | None) -> None:
        self._done.set_result((result, response))
        self._completion(result, response)

    async def _transfer(self) -> tuple[Result[T], httpx.Response | None]:
        await self._resumed.wait()
        started = time.monotonic()
        client = self._context.http_client
        try:
            response = await client.send(self.http_request, stream=True)
        except httpx.HTTPError as e:
            return self._transport_failure(e), None

        try:
            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                await self._resumed.wait()
        except httpx.HTTPError as e:
            return self._transport_failure(e), response
        finally:
            await response.aclose()

        logger.debug(
            "Response received",
            extra=self._log_extra(
                status_code=response.status_code,
                elapsed_ms=int((time.monotonic() - started) * 1000),
            ),
        )
        return self._decode(bytes(body), response), response

    def _decode(self, body: bytes, response: httpx.Response) -> Result[T]:
        if not body:
            logger.warning(
                "Response has no body",
                extra=self._log_extra(status_code=response.status_code),
            )
            return Failure(DecodeError(
                "Response body is empty",
                DecodeError.EMPTY_BODY,
                context=self._error_context(response.status_code),
                http_status=response.status_code,
            ))
        try:
            payload = json.loads(body)
        except (ValueError, RecursionError) as e:
            logger.warning(
                f"Response body is not JSON: {e}",
                extra=self._log_extra(status_code=response.status_code),
            )
            return Failure(DecodeError(
                f"Response body is not valid JSON: {e}",
                DecodeError.INVALID_JSON,
                context=self._error_context(response.status_code),
                http_status=response.status_code,
            ))
        node = JSONNode(payload, self._context.node_context)
        try:
            return self.descriptor.parse(node)
        except MissingClientIdentifierError:
            raise
        except Exception as e:
            logger.error(
                f"Parse function raised: {e}",
                exc_info=True,
                extra=self._log_extra(status_code=response.status_code),
            )
            return Failure(DecodeError(
                f"Response could not be parsed: {e}",
                DecodeError.PARSE_ERROR,
                context=self._error_context(response.status_code),
                http_status=response.status_code,
            ))

    def _transport_failure(self, e: httpx.HTTPError) -> Result[T]:
        message = str(e) or type(e).__name__
        logger.warning(f"Transport error: {message}", extra=self._log_extra())
        return Failure(TransportError(
            message, cause=e, context=self._error_context(None),
        ))

    def _error_context(self, status_code: int | None) -> ErrorContext:
        return ErrorContext(
            method=self.http_request.method,
            url=_log_url(self.http_request.url),
            status_code=status_code,
        )

    def _log_extra(self, **fields) -> dict:
        return {
            "method": self.http_request.method,
            "url": _log_url(self.http_request.url),
            **fields,
        }
