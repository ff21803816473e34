"""Fake SoundCloud API — FastAPI app served in-process through httpx.ASGITransport.

Invariants:
    - Every create_fake_api() call returns an app with fresh counters
    - /tracks serves 3 pages; page 3 has next_href = null
    - /me answers 401 with the API error envelope unless oauth_token matches
      app.state.valid_token
    - app.state.calls counts hits per endpoint name

Design Decisions:
    - Real HTTP semantics (status, body, query) without sockets, mirroring how the
      service tests drive routes through ASGITransport
    - Parsers and models used by the tests live here so every test decodes the same way
"""

import asyncio
from collections import Counter
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from soundcloud_sdk.core.errors import DomainError, domain_error_from_json
from soundcloud_sdk.core.json_node import JSONNode
from soundcloud_sdk.core.result import Failure, Result, Success

BASE_URL = "http://test"
LAST_PAGE = 3
UNAUTHORIZED_BODY = {"errors": [{"error_message": "401 - Unauthorized"}]}


# -- Models & parsers ----------------------------------------------------------


@dataclass(frozen=True)
class Track:
    id: int
    title: str


@dataclass(frozen=True)
class User:
    id: int
    username: str


def parse_track(node: JSONNode) -> Track | None:
    track_id = node["id"].as_int()
    title = node["title"].as_string()
    if track_id is None or title is None:
        return None
    return Track(track_id, title)


def parse_user(node: JSONNode) -> Result[User]:
    api_error = domain_error_from_json(node)
    if api_error is not None:
        return Failure(api_error)
    user_id = node["id"].as_int()
    username = node["username"].as_string()
    if user_id is None or username is None:
        return Failure(DomainError("Malformed user payload"))
    return Success(User(user_id, username))


# -- App -----------------------------------------------------------------------


def create_fake_api() -> FastAPI:
    app = FastAPI()
    app.state.calls = Counter()
    app.state.valid_token = "fresh-token"

    async def echo(request: Request):
        app.state.calls["echo"] += 1
        body = await request.body()
        return {
            "method": request.method,
            "query": dict(request.query_params),
            "body": body.decode(),
            "content_type": request.headers.get("content-type"),
        }

    app.add_api_route("/echo", echo, methods=["GET", "POST", "PUT", "DELETE"])

    @app.get("/tracks")
    async def tracks(page: int = 1, limit: int = 2):
        app.state.calls["tracks"] += 1
        next_href = (
            f"{BASE_URL}/tracks?page={page + 1}" if page < LAST_PAGE else None
        )
        return {
            "collection": [
                {"id": page * 100 + i, "title": f"Track {page}-{i}"}
                for i in range(limit)
            ],
            "next_href": next_href,
        }

    @app.get("/tracks-broken")
    async def tracks_broken():
        app.state.calls["tracks-broken"] += 1
        return {
            "collection": [{"id": 1, "title": "Only"}],
            "next_href": f"{BASE_URL}/not-json",
        }

    @app.get("/not-json")
    async def not_json():
        app.state.calls["not-json"] += 1
        return PlainTextResponse("<html>maintenance</html>")

    @app.get("/me")
    async def me(request: Request):
        app.state.calls["me"] += 1
        if request.query_params.get("oauth_token") != app.state.valid_token:
            return JSONResponse(status_code=401, content=UNAUTHORIZED_BODY)
        return {"id": 1, "username": "kevin"}

    @app.get("/missing")
    async def missing():
        app.state.calls["missing"] += 1
        return JSONResponse(
            status_code=404,
            content={"errors": [{"error_message": "404 - Not Found"}]},
        )

    return app


# -- Test doubles --------------------------------------------------------------


class FakeSession:
    """SessionLike double that records refresh calls."""

    def __init__(
        self, active: bool = True, token: str = "expired-token",
        refreshed_token: str = "fresh-token", fail_refresh: bool = False,
    ):
        self.has_active_session = active
        self.token = token
        self.refreshed_token = refreshed_token
        self.fail_refresh = fail_refresh
        self.refresh_calls = 0

    async def refresh(self) -> Result[None]:
        self.refresh_calls += 1
        await asyncio.sleep(0)
        if self.fail_refresh:
            return Failure(DomainError("invalid_grant"))
        self.token = self.refreshed_token
        return Success(None)


class CompletionRecorder:
    """Completion callback that records every call and can be awaited."""

    def __init__(self):
        self.calls: list = []
        self._called = asyncio.Event()

    def __call__(self, *args):
        self.calls.append(args[0] if len(args) == 1 else args)
        self._called.set()

    async def wait(self, timeout: float = 2.0):
        await asyncio.wait_for(self._called.wait(), timeout)
        return self.calls[-1]
