"""
CSV transfer helpers.

Sequential writers and readers for comma-delimited text files, used to
export query results and load rows for import.
"""

from __future__ import annotations

import csv
import logging
from types import TracebackType
from typing import Iterable, Iterator, Sequence

from .types import CsvError, HeaderMismatchError

logger = logging.getLogger(__name__)

__all__ = ["CsvIn", "CsvOut", "read_all"]


class CsvOut:
    """
    Row writer for one CSV output file.

    Example:
        with CsvOut("props.csv") as out:
            out.write(["Location", "Address", "City"])
            out.write(["Northwest", "200 Willow Rd", "Wonder"])
    """

    __slots__ = ("_path", "_file", "_writer")

    def __init__(self, path: str, crlf: bool = False) -> None:
        """
        Create (or truncate) ``path`` for writing.

        Args:
            path: Output file path.
            crlf: Terminate rows with CRLF instead of LF.

        Raises:
            CsvError: If the file cannot be created.
        """
        self._path = path
        try:
            self._file = open(path, "w", newline="", encoding="utf-8")
        except OSError as e:
            raise CsvError(f"cannot create {path}: {e}") from e
        self._writer = csv.writer(self._file, lineterminator="\r\n" if crlf else "\n")

    @property
    def path(self) -> str:
        return self._path

    def write(self, fields: Iterable[object]) -> None:
        self._writer.writerow(fields)

    def done(self) -> None:
        """Flush and close the file."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()
            logger.debug("csv output %s closed", self._path)

    def __enter__(self) -> CsvOut:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.done()


class CsvIn:
    """
    Row reader for one CSV input file.

    ``read`` returns None at end of file. Iterating yields each row.
    """

    __slots__ = ("_path", "_file", "_reader")

    def __init__(self, path: str) -> None:
        """
        Open ``path`` for reading.

        Raises:
            CsvError: If the file cannot be opened.
        """
        self._path = path
        try:
            self._file = open(path, newline="", encoding="utf-8")
        except OSError as e:
            raise CsvError(f"cannot open {path}: {e}") from e
        self._reader = csv.reader(self._file)

    @property
    def path(self) -> str:
        return self._path

    def read(self) -> list[str] | None:
        """Read the next row, or None at end of file."""
        try:
            return next(self._reader)
        except StopIteration:
            return None
        except csv.Error as e:
            raise CsvError(f"{self._path}: {e}") from e

    def check_header(self, expected: Sequence[str]) -> list[str]:
        """
        Read the first row and compare it with ``expected``.

        Returns:
            The header row.

        Raises:
            HeaderMismatchError: If the row differs from ``expected``.
        """
        header = self.read()
        if header is None or header != list(expected):
            raise HeaderMismatchError(expected, header)
        return header

    def done(self) -> None:
        self._file.close()

    def __iter__(self) -> Iterator[list[str]]:
        while True:
            row = self.read()
            if row is None:
                return
            yield row

    def __enter__(self) -> CsvIn:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.done()


def read_all(path: str) -> list[list[str]]:
    """Read every row of ``path``."""
    with CsvIn(path) as reader:
        return list(reader)
