"""
Type definitions for mog.

Provides the iteration result types returned by result streams, the
type aliases used across the package, and the exception hierarchy for
the few errors raised locally.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Record(Generic[T]):
    """
    One decoded record fetched from a result stream.

    Attributes:
        document: The decoded record.
    """

    document: T

    @property
    def done(self) -> bool:
        return False


@dataclass(frozen=True)
class EndOfStream:
    """
    Terminal result of a result stream.

    Attributes:
        error: The error that ended the stream, or None on clean exhaustion.
    """

    error: BaseException | None = None

    @property
    def done(self) -> bool:
        return True

    @property
    def ok(self) -> bool:
        """True when the stream ended without an error."""
        return self.error is None


FetchResult = Union[Record[T], EndOfStream]

# Type aliases for clarity
Document = Mapping[str, Any]
MutableDocument = dict[str, Any]
Filter = Mapping[str, Any]
Update = Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]
Projection = Union[dict[str, int], None]
Sort = list[tuple[str, int]]
Stage = dict[str, Any]
Decoder = Callable[[Mapping[str, Any]], Any]


class MogError(Exception):
    """Base exception for mog operations."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConnectionError(MogError):
    """Error raised when the native client cannot be created."""

    pass


class NoDocumentsError(MogError):
    """Error raised when a singular lookup matches no document."""

    def __init__(self, collection: str, criteria: Any = None) -> None:
        super().__init__(f"no documents in {collection!r} match {criteria!r}")
        self.collection = collection
        self.criteria = criteria


class ValidationError(MogError):
    """Error raised when an argument is rejected before reaching the store."""

    pass


class NoCollectionError(MogError):
    """Error raised when an operation runs before a collection is selected."""

    pass


class CsvError(MogError):
    """Error raised by the CSV transfer helpers."""

    pass


class HeaderMismatchError(CsvError):
    """Error raised when a CSV header row differs from the expected one."""

    def __init__(self, expected: Sequence[str], found: Sequence[str] | None) -> None:
        super().__init__(f"expected header {list(expected)!r}, found {found!r}")
        self.expected = list(expected)
        self.found = found
