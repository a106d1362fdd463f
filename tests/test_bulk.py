"""
Tests for BulkBatch.

Covers operation ordering, commit counts and clearing after commit.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pymongo import InsertOne, UpdateMany
from pymongo.errors import PyMongoError

from mog import BulkBatch


class TestBulkBatch:
    """Tests for BulkBatch."""

    def test_operations_keep_order(self):
        """Test operations are kept in call order."""
        batch = BulkBatch(2)
        batch.add_insert({"_id": 1})
        batch.add_update({"a": 1}, {"$set": {"b": 2}})

        assert batch.operations == [
            InsertOne({"_id": 1}),
            UpdateMany({"a": 1}, {"$set": {"b": 2}}),
        ]
        assert len(batch) == 2

    def test_update_none_criteria(self):
        """Test None criteria becomes an empty filter."""
        batch = BulkBatch().add_update(None, {"$set": {"b": 2}})
        assert batch.operations == [UpdateMany({}, {"$set": {"b": 2}})]

    def test_commit_inserts(self, database, properties):
        """Test N inserts raise the collection count by N."""
        collection = database["property"]
        batch = BulkBatch(len(properties))
        for prop in properties:
            batch.add_insert(prop)

        assert batch.commit(collection) == 3
        assert collection.count_documents({}) == 3
        assert len(batch) == 0

    def test_commit_counts_inserts_and_updates(self, database):
        """Test the result is inserted plus modified."""
        collection = database["property"]
        batch = BulkBatch()
        batch.add_insert({"_id": "a", "st": ""})
        batch.add_insert({"_id": "b", "st": ""})
        batch.add_update({"st": ""}, {"$set": {"st": "MT"}})

        assert batch.commit(collection) == 4
        assert collection.count_documents({"st": "MT"}) == 2

    def test_commit_ordered(self):
        """Test the batch is sent as one ordered bulk write."""
        collection = MagicMock()
        collection.bulk_write.return_value.inserted_count = 1
        collection.bulk_write.return_value.modified_count = 0
        batch = BulkBatch().add_insert({"_id": 1})

        batch.commit(collection)

        collection.bulk_write.assert_called_once_with([InsertOne({"_id": 1})], ordered=True)

    def test_cleared_after_failure(self, database):
        """Test the batch is empty after a failed commit."""
        collection = database["property"]
        collection.insert_one({"_id": "dup"})
        batch = BulkBatch()
        batch.add_insert({"_id": "new"})
        batch.add_insert({"_id": "dup"})

        with pytest.raises(PyMongoError):
            batch.commit(collection)

        assert len(batch) == 0
        assert collection.count_documents({"_id": "new"}) == 1
