"""Domain Types — shared aliases and enums for the request layer.

Invariants:
    - HTTPMethod values are the exact wire verbs
    - Only GET carries parameters in the query string; all other verbs use the body
"""

from enum import Enum
from typing import Callable, Mapping, TypeVar

from soundcloud_sdk.core.json_node import JSONNode
from soundcloud_sdk.core.result import Result

T = TypeVar("T")

Parameters = Mapping[str, str]

# JSON node -> Result[T]; the executor forwards its output untouched.
ParseFunction = Callable[[JSONNode], Result[T]]

# JSON node -> T | None; used per element by list parsers.
ItemParser = Callable[[JSONNode], T | None]


class HTTPMethod(str, Enum):
    """Wire verbs supported by the API."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @property
    def parameters_in_query(self) -> bool:
        return self is HTTPMethod.GET


# Status code given structural meaning by the auth-retry interceptor.
HTTP_UNAUTHORIZED = 401
