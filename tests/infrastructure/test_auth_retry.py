"""Auth-Retry Interceptor tests — refresh-then-retry on 401.

Invariants:
    - 401 + active session: one refresh, one retry, caller sees only the retry's result
    - 401 without an active session: caller sees the original failure, no refresh
    - Refresh failure or exhausted retries end in AuthExpiredError
    - Non-401 responses pass through untouched

Design Decisions:
    - Endpoint /me of the fake API accepts only app.state.valid_token
    - Descriptor factory reads FakeSession.token so a retry carries the refreshed token
"""

import asyncio

import httpx

from soundcloud_sdk.core.domain_types import HTTPMethod
from soundcloud_sdk.core.errors import AuthExpiredError, DomainError
from soundcloud_sdk.core.result import Failure, Success
from soundcloud_sdk.infrastructure.auth_retry import (
    AuthRetryInterceptor, is_unauthorized, send_authenticated,
)
from soundcloud_sdk.infrastructure.http_request import RequestDescriptor
from tests.fake_api import CompletionRecorder, FakeSession, User, parse_user


def _me_request(context, session):
    def build() -> RequestDescriptor:
        token = session.token if session else "anonymous"
        return RequestDescriptor(
            url=context.authenticated_url("/me", {"oauth_token": token}),
            method=HTTPMethod.GET,
            parse=parse_user,
        )
    return build


async def _settle():
    """Let in-flight refresh tasks and retries finish."""
    for _ in range(5):
        await asyncio.sleep(0.01)


# ==============================================================================
# Through the fake API
# ==============================================================================


async def test_expired_token_is_refreshed_and_retried(context, fake_api):
    session = FakeSession()
    context.session = session
    recorder = CompletionRecorder()

    send_authenticated(context, _me_request(context, session), recorder)
    result = await recorder.wait()
    await _settle()

    assert result == Success(User(1, "kevin"))
    assert session.refresh_calls == 1
    assert fake_api.state.calls["me"] == 2
    assert len(recorder.calls) == 1


async def test_valid_token_needs_no_refresh(context, fake_api):
    session = FakeSession(token="fresh-token")
    context.session = session
    recorder = CompletionRecorder()

    send_authenticated(context, _me_request(context, session), recorder)
    result = await recorder.wait()

    assert result.is_success
    assert session.refresh_calls == 0
    assert fake_api.state.calls["me"] == 1


async def test_no_session_forwards_original_failure(context, fake_api):
    recorder = CompletionRecorder()

    send_authenticated(context, _me_request(context, None), recorder)
    result = await recorder.wait()
    await _settle()

    assert isinstance(result, Failure)
    assert isinstance(result.error, DomainError)
    assert result.error.api_messages == ["401 - Unauthorized"]
    assert fake_api.state.calls["me"] == 1
    assert len(recorder.calls) == 1


async def test_inactive_session_is_not_refreshed(context, fake_api):
    session = FakeSession(active=False)
    context.session = session
    recorder = CompletionRecorder()

    send_authenticated(context, _me_request(context, session), recorder)
    result = await recorder.wait()
    await _settle()

    assert isinstance(result.error, DomainError)
    assert session.refresh_calls == 0
    assert fake_api.state.calls["me"] == 1


async def test_persistent_401_ends_in_auth_expired(context, fake_api):
    fake_api.state.valid_token = "never-issued"
    session = FakeSession()
    context.session = session
    recorder = CompletionRecorder()

    send_authenticated(context, _me_request(context, session), recorder)
    result = await recorder.wait()
    await _settle()

    assert isinstance(result.error, AuthExpiredError)
    assert result.error.attempts == 1
    assert isinstance(result.error.cause, DomainError)
    assert session.refresh_calls == 1
    assert fake_api.state.calls["me"] == 2
    assert len(recorder.calls) == 1


async def test_failed_refresh_ends_in_auth_expired(context, fake_api):
    session = FakeSession(fail_refresh=True)
    context.session = session
    recorder = CompletionRecorder()

    send_authenticated(context, _me_request(context, session), recorder)
    result = await recorder.wait()
    await _settle()

    assert isinstance(result.error, AuthExpiredError)
    assert result.error.cause.message == "invalid_grant"
    assert session.refresh_calls == 1
    assert fake_api.state.calls["me"] == 1
    assert len(recorder.calls) == 1


async def test_zero_retries_fails_without_refresh(context, fake_api):
    session = FakeSession()
    context.session = session
    context.auth_max_retries = 0
    recorder = CompletionRecorder()

    send_authenticated(context, _me_request(context, session), recorder)
    result = await recorder.wait()
    await _settle()

    assert isinstance(result.error, AuthExpiredError)
    assert result.error.attempts == 0
    assert session.refresh_calls == 0
    assert fake_api.state.calls["me"] == 1


async def test_two_retries_allowed(context, fake_api):
    fake_api.state.valid_token = "never-issued"
    session = FakeSession()
    context.session = session
    context.auth_max_retries = 2
    recorder = CompletionRecorder()

    send_authenticated(context, _me_request(context, session), recorder)
    result = await recorder.wait()
    await _settle()

    assert result.error.attempts == 2
    assert session.refresh_calls == 2
    assert fake_api.state.calls["me"] == 3


async def test_non_401_failure_passes_through(context, fake_api):
    session = FakeSession()
    context.session = session
    recorder = CompletionRecorder()
    descriptor = RequestDescriptor(
        url=context.authenticated_url("/missing"),
        method=HTTPMethod.GET,
        parse=parse_user,
    )

    send_authenticated(context, descriptor, recorder)
    result = await recorder.wait()
    await _settle()

    assert isinstance(result.error, DomainError)
    assert result.error.api_messages == ["404 - Not Found"]
    assert session.refresh_calls == 0


async def test_first_handle_is_returned(context):
    recorder = CompletionRecorder()
    handle = send_authenticated(context, _me_request(context, None), recorder)
    result, response = await handle.wait()

    assert response.status_code == 401
    assert not result.is_success


# ==============================================================================
# Interceptor unit behavior
# ==============================================================================


def test_is_unauthorized():
    assert is_unauthorized(httpx.Response(401))
    assert not is_unauthorized(httpx.Response(403))
    assert not is_unauthorized(None)


async def test_handle_forwards_transport_failures():
    session = FakeSession()
    interceptor = AuthRetryInterceptor(session)
    delivered, retried = [], []
    failure = Failure(DomainError("offline"))

    interceptor.handle(failure, None, retried.append, delivered.append)
    await _settle()

    assert delivered == [failure]
    assert retried == []
    assert session.refresh_calls == 0


async def test_handle_refreshes_then_retries_with_next_attempt():
    session = FakeSession()
    interceptor = AuthRetryInterceptor(session)
    delivered, retried = [], []

    interceptor.handle(
        Failure(DomainError("401 - Unauthorized")), httpx.Response(401),
        retried.append, delivered.append,
    )
    await _settle()

    assert retried == [1]
    assert delivered == []
    assert session.refresh_calls == 1


async def test_refresh_exception_becomes_auth_expired():
    class RaisingSession(FakeSession):
        async def refresh(self):
            raise RuntimeError("token endpoint unreachable")

    interceptor = AuthRetryInterceptor(RaisingSession())
    delivered, retried = [], []

    interceptor.handle(
        Failure(DomainError("401 - Unauthorized")), httpx.Response(401),
        retried.append, delivered.append,
    )
    await _settle()

    assert retried == []
    assert isinstance(delivered[0].error, AuthExpiredError)
    assert isinstance(delivered[0].error.cause, RuntimeError)
