"""
Query builder - translates field lists and sort tokens into find options.

Builds the filter, projection, sort and limit arguments that pymongo's
find, find_one and count_documents accept. Filters and updates are
opaque to this module and passed through unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable

from .types import Filter, Projection, Sort

logger = logging.getLogger(__name__)

__all__ = [
    "QueryOptions",
    "count_args",
    "find_args",
    "keep_fields",
    "omit_fields",
    "sort_order",
]

ASCENDING = 1
DESCENDING = -1


def sort_order(tokens: Iterable[str]) -> Sort:
    """
    Create a sort specification from field-name tokens.

    A token with a leading minus sign sorts that field descending,
    otherwise ascending. Token order is precedence order.

    Args:
        tokens: Field names, e.g. ``["city", "-date_added"]``.

    Returns:
        List of (field, direction) pairs usable as pymongo's ``sort``.

    Example:
        >>> sort_order(["st", "-address"])
        [('st', 1), ('address', -1)]
    """
    order: Sort = []
    for token in tokens:
        if token.startswith("-") and len(token) > 1:
            order.append((token[1:], DESCENDING))
        else:
            order.append((token, ASCENDING))
    return order


def keep_fields(*fields: str) -> Projection:
    """Projection returning only ``fields``; None when no fields are given."""
    if not fields:
        return None
    return {field: 1 for field in fields}


def omit_fields(*fields: str) -> Projection:
    """Projection returning everything except ``fields``; None when empty."""
    if not fields:
        return None
    return {field: 0 for field in fields}


@dataclass(frozen=True)
class QueryOptions:
    """
    Per-call query shaping.

    Attributes:
        projection: Field projection, see keep_fields/omit_fields.
        limit: Maximum number of documents to return or count (0 = none).
        sort: Sort specification, see sort_order.
        upsert: Insert when an update or replace matches nothing.
    """

    projection: Projection = None
    limit: int | None = None
    sort: Sort | None = None
    upsert: bool | None = None

    @classmethod
    def keep(cls, *fields: str) -> QueryOptions:
        return cls(projection=keep_fields(*fields))

    @classmethod
    def omit(cls, *fields: str) -> QueryOptions:
        return cls(projection=omit_fields(*fields))

    def sorted_by(self, *tokens: str) -> QueryOptions:
        """Return a copy sorted by ``tokens``."""
        return replace(self, sort=sort_order(tokens))

    def merge(self, staged: QueryOptions) -> QueryOptions:
        """Fill unset fields of this object from ``staged``."""
        return QueryOptions(
            projection=self.projection if self.projection is not None else staged.projection,
            limit=self.limit if self.limit is not None else staged.limit,
            sort=self.sort if self.sort is not None else staged.sort,
            upsert=self.upsert if self.upsert is not None else staged.upsert,
        )


def _criteria(criteria: Filter | None) -> Filter:
    # None means match-all, sent as an empty filter document
    return {} if criteria is None else criteria


def find_args(criteria: Filter | None, options: QueryOptions | None = None) -> dict[str, Any]:
    """
    Build keyword arguments for ``Collection.find`` / ``find_one``.

    Args:
        criteria: Query filter; None matches all documents.
        options: Projection, sort and limit to apply.

    Returns:
        Keyword arguments with only the options that are set.
    """
    options = options or QueryOptions()
    args: dict[str, Any] = {"filter": _criteria(criteria)}
    if options.projection is not None:
        args["projection"] = dict(options.projection)
    if options.sort:
        args["sort"] = list(options.sort)
    if options.limit is not None and options.limit > 0:
        args["limit"] = options.limit
    logger.debug("find args: %r", args)
    return args


def count_args(criteria: Filter | None, options: QueryOptions | None = None) -> dict[str, Any]:
    """Build keyword arguments for ``Collection.count_documents``."""
    options = options or QueryOptions()
    args: dict[str, Any] = {"filter": _criteria(criteria)}
    if options.limit is not None and options.limit > 0:
        args["limit"] = options.limit
    return args
