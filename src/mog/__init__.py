"""
mog - Mongo made more good. Short method calls over pymongo.

This package wraps a pymongo database in a session object that shortens
the common idioms:
- Field keep/omit projections and "-field" sort tokens
- Forward-only result streams with deferred error reporting
- Ordered bulk batches of inserts and updates
- Aggregation pipelines built stage by stage (lookup by id, totals)
- CSV export and import

Example usage:
    from mog import MogClient

    with MogClient("mongodb://localhost:27017", database="demo") as client:
        mog = client.session("property")

        # Insert documents
        mog.bulk_start(len(props))
        for prop in props:
            mog.bulk_add_insert(prop)
        mog.bulk_write()

        # Find, sorted by address, only two fields
        mog.keep("address", "city")
        for prop in mog.find({"st": "MT"}, "-address"):
            print(prop["address"])

        # Totals by city
        mog.agg_start()
        mog.agg_totals("city", "sum_fld1", "sum_fld2")
        mog.agg_sort("_id")
        for row in mog.agg_run_all():
            print(row["_id"], row["count"], row["tot_sum_fld1"])
"""

from __future__ import annotations

__version__ = "0.1.0"

from .aggregate import Pipeline
from .bulk import BulkBatch
from .client import MogClient
from .csvio import CsvIn, CsvOut, read_all
from .cursor import ResultStream, StreamState
from .query import QueryOptions, keep_fields, omit_fields, sort_order
from .session import Mog, new_document_id
from .types import (
    ConnectionError,
    CsvError,
    EndOfStream,
    HeaderMismatchError,
    MogError,
    NoCollectionError,
    NoDocumentsError,
    Record,
    ValidationError,
)

__all__ = [
    # Main classes
    "MogClient",
    "Mog",
    "ResultStream",
    "StreamState",
    "Pipeline",
    "BulkBatch",
    "QueryOptions",
    "CsvIn",
    "CsvOut",
    # Helpers
    "keep_fields",
    "omit_fields",
    "sort_order",
    "new_document_id",
    "read_all",
    # Result types
    "Record",
    "EndOfStream",
    # Exceptions
    "MogError",
    "ConnectionError",
    "NoDocumentsError",
    "NoCollectionError",
    "ValidationError",
    "CsvError",
    "HeaderMismatchError",
    # Version
    "__version__",
]
