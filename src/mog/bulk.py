"""
Bulk batch - ordered insert/update operations sent as one bulk write.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Union

from pymongo import InsertOne, UpdateMany

if TYPE_CHECKING:
    from pymongo.collection import Collection

    from .types import Document, Filter, Update

logger = logging.getLogger(__name__)

__all__ = ["BulkBatch"]

Operation = Union[InsertOne, UpdateMany]


class BulkBatch:
    """
    Ordered list of insert and update-many operations.

    Operations keep the order they were added in and are submitted as a
    single ordered ``bulk_write``. The batch is emptied after every
    commit, whether the store accepted it or not.

    Example:
        batch = BulkBatch(len(props))
        for prop in props:
            batch.add_insert(prop)
        batch.add_update({"location_id": ""}, {"$set": {"location_id": "0"}})
        changed = batch.commit(collection)
    """

    __slots__ = ("_operations", "_size_hint")

    def __init__(self, size_hint: int = 0) -> None:
        """
        Initialize an empty batch.

        Args:
            size_hint: Expected number of operations, used in log output.
        """
        self._operations: list[Operation] = []
        self._size_hint = size_hint

    @property
    def operations(self) -> list[Operation]:
        return list(self._operations)

    def add_insert(self, document: Document) -> BulkBatch:
        """Append an insert of ``document``."""
        self._operations.append(InsertOne(document))
        return self

    def add_update(self, criteria: Filter | None, update: Update) -> BulkBatch:
        """Append an update of every document matching ``criteria``."""
        self._operations.append(UpdateMany({} if criteria is None else criteria, update))
        return self

    def commit(self, collection: Collection[Any]) -> int:
        """
        Submit the batch as one ordered bulk write.

        Args:
            collection: Native collection to write to.

        Returns:
            Number of inserted plus modified documents.
        """
        operations, self._operations = self._operations, []
        logger.debug(
            "bulk write to %s: %d operations (hint %d)",
            collection.name,
            len(operations),
            self._size_hint,
        )
        result = collection.bulk_write(operations, ordered=True)
        return result.inserted_count + result.modified_count

    def __len__(self) -> int:
        return len(self._operations)

    def __repr__(self) -> str:
        return f"BulkBatch({len(self._operations)} operations)"
