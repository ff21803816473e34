"""API Responses — single-value and paginated wrappers around a Result.

Invariants:
    - Both response types expose .response (a Result) and nothing else is required
      to tell success from failure
    - PaginatedAPIResponse.has_next_page is True iff next_page_url is not None
    - fetch_next_page() without a next page returns None and never calls completion
    - fetch_next_page() always hands the completion a PaginatedAPIResponse; failures
      become a continuation whose response is Failure and which has no next page

Design Decisions:
    - Closed set of two frozen dataclasses instead of a protocol with associated type
    - Page payload shape {"collection": [...], "next_href": "..."} read by from_json()
    - The per-item parser is captured, so every page is decoded the same way
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, Protocol, TypeVar, runtime_checkable

import httpx

from soundcloud_sdk.core.domain_types import HTTPMethod, ItemParser, Parameters
from soundcloud_sdk.core.errors import (
    DecodeError, SoundcloudError, domain_error_from_json,
)
from soundcloud_sdk.core.json_node import JSONNode
from soundcloud_sdk.core.result import Failure, Result, Success
from soundcloud_sdk.infrastructure.api_context import APIContext
from soundcloud_sdk.infrastructure.http_request import Request, RequestDescriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

COLLECTION_KEY = "collection"
NEXT_PAGE_KEY = "next_href"


@runtime_checkable
class APIResponse(Protocol[T_co]):
    """Anything carrying a Result under .response."""

    @property
    def response(self) -> Result[T_co]: ...


@dataclass(frozen=True)
class SimpleAPIResponse(Generic[T]):
    """Response of an endpoint returning one value."""
    response: Result[T]

    @classmethod
    def from_value(cls, value: T) -> "SimpleAPIResponse[T]":
        return cls(Success(value))

    @classmethod
    def from_error(cls, error: SoundcloudError) -> "SimpleAPIResponse[T]":
        return cls(Failure(error))


def parse_collection(node: JSONNode, parse_item: ItemParser[T]) -> Result[list[T]]:
    """Decode node["collection"] item by item.

    A payload without a list collection is the API error it carries, if any,
    otherwise a DecodeError.
    """
    items = node[COLLECTION_KEY].as_array(parse_item)
    if items is None:
        api_error = domain_error_from_json(node)
        if api_error is not None:
            return Failure(api_error)
        return Failure(DecodeError(
            f"Expected a list under '{COLLECTION_KEY}'",
            DecodeError.UNEXPECTED_SHAPE,
        ))
    return Success(items)


@dataclass(frozen=True)
class PaginatedAPIResponse(Generic[T]):
    """One page of a list endpoint, able to fetch the page after it."""
    response: Result[list[T]]
    parse_item: ItemParser[T]
    context: APIContext = field(repr=False)
    next_page_url: httpx.URL | None = None
    parameters: Parameters | None = None

    @classmethod
    def from_json(
        cls,
        node: JSONNode,
        parse_item: ItemParser[T],
        context: APIContext,
        parameters: Parameters | None = None,
    ) -> "PaginatedAPIResponse[T]":
        return cls(
            response=parse_collection(node, parse_item),
            parse_item=parse_item,
            context=context,
            next_page_url=node[NEXT_PAGE_KEY].as_url(),
            parameters=parameters,
        )

    @classmethod
    def from_error(
        cls,
        error: SoundcloudError,
        parse_item: ItemParser[T],
        context: APIContext,
        parameters: Parameters | None = None,
    ) -> "PaginatedAPIResponse[T]":
        return cls(
            response=Failure(error),
            parse_item=parse_item,
            context=context,
            parameters=parameters,
        )

    @property
    def has_next_page(self) -> bool:
        return self.next_page_url is not None

    def fetch_next_page(
        self, completion: Callable[["PaginatedAPIResponse[T]"], None],
    ) -> Request["PaginatedAPIResponse[T]"] | None:
        """Request the next page; None (and no callback) when there is none.

        Transport, decode and parse failures all arrive as a continuation whose
        response is Failure and which has no next page.
        """
        if self.next_page_url is None:
            return None

        def parse(node: JSONNode) -> Result["PaginatedAPIResponse[T]"]:
            return Success(PaginatedAPIResponse.from_json(
                node, self.parse_item, self.context, self.parameters,
            ))

        def deliver(result: Result["PaginatedAPIResponse[T]"], response) -> None:
            completion(result.recover(
                lambda error: PaginatedAPIResponse.from_error(
                    error, self.parse_item, self.context, self.parameters,
                ),
            ))

        logger.debug(
            "Fetching next page",
            extra={"url": str(self.next_page_url).split("?", 1)[0]},
        )
        request = Request(
            RequestDescriptor(
                url=self.next_page_url,
                method=HTTPMethod.GET,
                parse=parse,
                parameters=self.parameters,
            ),
            deliver,
            self.context,
        )
        request.start()
        return request
