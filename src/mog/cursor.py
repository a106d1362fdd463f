"""
ResultStream - forward-only iterator over query and aggregation results.

Wraps a native pymongo cursor and decodes one record per fetch. Errors
raised while advancing the native cursor, and errors raised by the
decoder, end the stream and are held on it instead of being raised.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Any, Generic, Iterator, TypeVar

import pymongo
from pymongo.errors import PyMongoError

from .types import EndOfStream, Record

if TYPE_CHECKING:
    from pymongo.command_cursor import CommandCursor
    from pymongo.cursor import Cursor

    from .types import Decoder, FetchResult

T = TypeVar("T")

logger = logging.getLogger(__name__)

__all__ = ["DECODE_ERRORS", "ResultStream", "StreamState"]

# Exceptions a decoder may raise for a record that does not fit its target.
DECODE_ERRORS = (TypeError, ValueError, KeyError, AttributeError)


class StreamState(enum.Enum):
    OPEN = "open"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    CLOSED = "closed"


class ResultStream(Generic[T]):
    """
    Forward-only stream of decoded records.

    Each fetch advances the native cursor once and decodes the record it
    returns. When the native cursor runs out the stream closes it and
    reports EndOfStream; the terminal error (None on clean exhaustion)
    stays available on ``error``.

    A decode failure also reports EndOfStream even if the native cursor
    has more records. Check ``error`` after the loop to tell the two
    apart.

    Example:
        stream = session.find({"st": "MT"}, "address")
        for prop in stream:
            print(prop["address"])
        if stream.error is not None:
            raise stream.error
    """

    __slots__ = ("_native", "_decode", "_label", "_timeout", "_error", "_state")

    def __init__(
        self,
        native: Cursor[Any] | CommandCursor[Any],
        decode: Decoder | None = None,
        label: str = "",
        timeout: float | None = None,
    ) -> None:
        """
        Initialize a result stream.

        Args:
            native: The pymongo cursor to read from.
            decode: Callable turning a raw document into the target type.
                    Raw documents are returned when omitted.
            label: Name used in log messages, usually the collection name.
            timeout: Seconds allowed for each native fetch.
        """
        self._native = native
        self._decode = decode
        self._label = label
        self._timeout = timeout
        self._error: BaseException | None = None
        self._state = StreamState.OPEN

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def error(self) -> BaseException | None:
        """The error that ended the stream, None if none occurred."""
        return self._error

    @property
    def alive(self) -> bool:
        """Check if the stream can still yield records."""
        return self._state is StreamState.OPEN

    def fetch(self, decode: Decoder | None = None) -> FetchResult[T]:
        """
        Fetch and decode the next record.

        Args:
            decode: Decoder for this record only, overriding the stream's.

        Returns:
            Record with the decoded document, or EndOfStream carrying the
            terminal error.
        """
        try:
            with pymongo.timeout(self._timeout):
                raw = next(self._native)
        except StopIteration:
            self._finish(None)
            return EndOfStream()
        except PyMongoError as exc:
            self._finish(exc)
            return EndOfStream(exc)

        decoder = decode or self._decode
        if decoder is None:
            return Record(raw)
        try:
            return Record(decoder(raw))
        except DECODE_ERRORS as exc:
            logger.info("decode error in %s: %s", self._label, exc)
            self._error = exc
            self._state = StreamState.FAILED
            return EndOfStream(exc)

    def _finish(self, error: BaseException | None) -> None:
        self._error = error
        self._state = StreamState.EXHAUSTED if error is None else StreamState.FAILED
        self._native.close()

    def close(self) -> None:
        """Close the native cursor before the stream is exhausted."""
        self._native.close()
        self._state = StreamState.CLOSED

    def to_list(self, into: list[T] | None = None) -> list[T]:
        """
        Drain the stream into a list.

        Args:
            into: List to extend. A new list is created when omitted.

        Returns:
            The list holding every decoded record.
        """
        target: list[T] = [] if into is None else into
        target.extend(self)
        return target

    def __iter__(self) -> Iterator[T]:
        while True:
            result = self.fetch()
            if isinstance(result, EndOfStream):
                return
            yield result.document

    def __repr__(self) -> str:
        return f"ResultStream({self._label!r}, {self._state.value})"
