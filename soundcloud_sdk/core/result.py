"""Result — two-case success/failure container returned by every fallible call.

Invariants:
    - A Result is exactly one of Success(value) or Failure(error)
    - Immutable once constructed (frozen dataclasses)
    - value is present iff success; error is present iff failure
    - map() never touches a Failure; recover() calls its function only on Failure

Design Decisions:
    - Two frozen dataclasses joined by a Union alias, no base class to subclass
    - No unwrap(): callers branch on is_success or isinstance
"""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

from soundcloud_sdk.core.errors import SoundcloudError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """A successful outcome carrying its payload."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None

    def map(self, f: Callable[[T], U]) -> "Success[U]":
        return Success(f(self.value))

    def recover(self, f: Callable[[SoundcloudError], T]) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Failure:
    """A failed outcome carrying a structured error."""

    error: SoundcloudError

    @property
    def is_success(self) -> bool:
        return False

    @property
    def value(self) -> None:
        return None

    def map(self, f: Callable) -> "Failure":
        return self

    def recover(self, f: Callable[[SoundcloudError], T]) -> T:
        return f(self.error)


Result = Union[Success[T], Failure]
