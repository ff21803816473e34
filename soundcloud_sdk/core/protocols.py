"""Boundary Protocols — contracts between the request core and its collaborators.

Invariants:
    - The core never constructs, persists or inspects a session beyond this contract
    - refresh() reports failure as data (Failure), it does not raise
    - CancelableOperation.stop() suspends; it is not a hard abort

Design Decisions:
    - Protocol over ABC: structural subtyping, credential stores need no SDK base class
    - refresh() is async: the interceptor awaits it on the loop that delivered the 401
"""

from typing import Protocol, runtime_checkable

from soundcloud_sdk.core.result import Result


class SessionLike(Protocol):
    """Structural contract for an authenticated session that can refresh itself."""

    @property
    def has_active_session(self) -> bool: ...

    async def refresh(self) -> Result[None]: ...


@runtime_checkable
class CancelableOperation(Protocol):
    """Handle to one in-flight network transfer."""

    def start(self) -> None: ...

    def stop(self) -> None: ...
