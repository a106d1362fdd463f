"""
Pytest fixtures for mog tests.

Provides an in-memory mongomock database, Mog sessions bound to it,
sample property/location data, and a MagicMock collection for tests that
assert the exact arguments sent to the store.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import mongomock
import pytest

from mog import Mog

LOCATIONS = [
    {"_id": "7", "location_name": "Northwest"},
    {"_id": "10", "location_name": "Southwest"},
]

PROPERTIES = [
    {
        "_id": "p1",
        "address": "200 Willow Rd",
        "city": "Wonder",
        "st": "MT",
        "location_id": "7",
        "date_added": "2018-03-11",
        "sum_fld1": 7,
        "sum_fld2": 12.50,
    },
    {
        "_id": "p2",
        "address": "321 Angel Way",
        "city": "Wonder",
        "st": "MT",
        "location_id": "7",
        "date_added": "2019-04-04",
        "sum_fld1": 10,
        "sum_fld2": 8.25,
    },
    {
        "_id": "p3",
        "address": "1950 Hangover",
        "city": "Las Vegas",
        "st": "NV",
        "location_id": "10",
        "date_added": "2017-07-29",
        "sum_fld1": 13,
        "sum_fld2": 19.25,
    },
]


@pytest.fixture
def locations() -> list[dict[str, Any]]:
    """Fresh copies of the sample location documents."""
    return [dict(doc) for doc in LOCATIONS]


@pytest.fixture
def properties() -> list[dict[str, Any]]:
    """Fresh copies of the sample property documents."""
    return [dict(doc) for doc in PROPERTIES]


@pytest.fixture
def mongo_client() -> mongomock.MongoClient:
    """Create an in-memory client."""
    return mongomock.MongoClient()


@pytest.fixture
def database(mongo_client):
    """Create a database."""
    return mongo_client["demo"]


@pytest.fixture
def mog(database) -> Mog:
    """Create a session on the empty property collection."""
    return Mog(database, "property")


@pytest.fixture
def loaded(database, locations, properties) -> Mog:
    """Create a session on property/location collections holding sample data."""
    database["location"].insert_many(locations)
    database["property"].insert_many(properties)
    return Mog(database, "property")


@pytest.fixture
def native_collection() -> MagicMock:
    """Mock pymongo collection recording the calls made to it."""
    collection = MagicMock(name="collection")
    collection.name = "property"
    return collection


@pytest.fixture
def mock_mog(native_collection) -> Mog:
    """Session whose current collection is the mock collection."""
    database = MagicMock(name="database")
    database.name = "demo"
    database.__getitem__.return_value = native_collection
    return Mog(database, "property")
