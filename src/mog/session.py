"""
Mog - short method calls for common pymongo query, update, bulk-write,
aggregation and CSV idioms.

A Mog session is bound to one database and one current collection. Query
shaping can be passed per call (``options=QueryOptions(...)``) or staged
with ``keep``/``omit``/``set_limit``/``upsert``; staged values apply to
the next operation that reads them and are then cleared.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Sequence

import pymongo
from bson import ObjectId

from . import csvio
from .aggregate import Pipeline
from .bulk import BulkBatch
from .cursor import ResultStream
from .query import QueryOptions, count_args, find_args, keep_fields, omit_fields, sort_order
from .types import (
    MogError,
    NoCollectionError,
    NoDocumentsError,
    ValidationError,
)

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from pymongo.collection import Collection
    from pymongo.database import Database

    from .types import Decoder, Document, FetchResult, Filter, Projection, Stage, Update

logger = logging.getLogger(__name__)

__all__ = ["Mog", "new_document_id"]


def new_document_id() -> str:
    """Return a new ObjectId as a 24-character hex string."""
    return str(ObjectId())


class Mog:
    """
    Session facade over one pymongo database.

    A session holds one current collection, the staged query values, one
    bulk batch, one aggregation pipeline and one open result stream. It
    is not safe to share a session between threads.

    Example:
        mog = Mog(client["demo"], "property")

        mog.omit("city", "location_id")
        mog.set_limit(2)
        mog.find(None, "address")
        while not (result := mog.next()).done:
            print(result.document)
        if mog.iter_err() is not None:
            ...

        mog.bulk_start(len(props))
        for prop in props:
            mog.bulk_add_insert(prop)
        count = mog.bulk_write()
    """

    __slots__ = (
        "_db",
        "_collection",
        "_timeout",
        "_projection",
        "_limit",
        "_upsert",
        "_batch",
        "_pipeline",
        "_stream",
        "_csv_out",
        "_csv_in",
    )

    def __init__(
        self,
        database: Database[Any],
        collection: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize a session.

        Args:
            database: Native pymongo database.
            collection: Name of the initial current collection.
            timeout: Seconds allowed for each store call, None for no limit.
        """
        self._db = database
        self._collection: Collection[Any] | None = None
        self._timeout = timeout
        self._projection: Projection = None
        self._limit = 0
        self._upsert = False
        self._batch: BulkBatch | None = None
        self._pipeline: Pipeline | None = None
        self._stream: ResultStream[Any] | None = None
        self._csv_out: csvio.CsvOut | None = None
        self._csv_in: csvio.CsvIn | None = None
        if collection is not None:
            self.set_collection(collection)

    # -- collection and staged values -------------------------------------

    @property
    def database(self) -> Database[Any]:
        return self._db

    @property
    def collection(self) -> Collection[Any]:
        """The current native collection."""
        if self._collection is None:
            raise NoCollectionError("no collection selected, call set_collection() first")
        return self._collection

    @property
    def collection_name(self) -> str | None:
        return self._collection.name if self._collection is not None else None

    def set_collection(self, name: str) -> Mog:
        """Point the session at collection ``name``."""
        self._collection = self._db[name]
        return self

    def set_limit(self, limit: int) -> Mog:
        """Limit the next find or count to ``limit`` documents."""
        self._limit = limit
        return self

    def upsert(self) -> Mog:
        """Make the next update or replace insert when nothing matches."""
        self._upsert = True
        return self

    def keep(self, *fields: str) -> Mog:
        """
        Return only ``fields`` from the next find.

        Calling with no fields drops any staged projection.
        """
        self._projection = keep_fields(*fields)
        return self

    def omit(self, *fields: str) -> Mog:
        """
        Return every field except ``fields`` from the next find.

        Calling with no fields drops any staged projection.
        """
        self._projection = omit_fields(*fields)
        return self

    def _take_projection(self) -> Projection:
        projection, self._projection = self._projection, None
        return projection

    def _take_limit(self) -> int:
        limit, self._limit = self._limit, 0
        return limit if limit > 0 else 0

    def _take_upsert(self) -> bool:
        upsert, self._upsert = self._upsert, False
        return upsert

    def _query_options(
        self,
        options: QueryOptions | None,
        sort: Sequence[str] = (),
        limit: int | None = None,
        use_limit: bool = True,
    ) -> QueryOptions:
        staged = QueryOptions(
            projection=self._take_projection(),
            limit=(self._take_limit() or None) if use_limit else None,
        )
        explicit = options or QueryOptions()
        if sort:
            explicit = replace(explicit, sort=sort_order(sort))
        if limit is not None:
            explicit = replace(explicit, limit=limit)
        return explicit.merge(staged)

    def _resolve_upsert(self, upsert: bool | None, options: QueryOptions | None) -> bool:
        staged = self._take_upsert()
        if upsert is not None:
            return upsert
        if options is not None and options.upsert is not None:
            return options.upsert
        return staged

    def _deadline(self) -> AbstractContextManager[None]:
        return pymongo.timeout(self._timeout)

    def _open(self, native: Any, decode: Decoder | None) -> ResultStream[Any]:
        self._stream = ResultStream(
            native,
            decode=decode,
            label=self.collection_name or "",
            timeout=self._timeout,
        )
        return self._stream

    # -- queries ----------------------------------------------------------

    def find(
        self,
        criteria: Filter | None = None,
        *sort: str,
        decode: Decoder | None = None,
        options: QueryOptions | None = None,
    ) -> ResultStream[Any]:
        """
        Open a result stream over documents matching ``criteria``.

        The stream becomes the session's current iterator, read with
        ``next()``. It can also be iterated directly.

        Args:
            criteria: Query filter; None matches all documents.
            *sort: Sort tokens, "-field" for descending.
            decode: Callable turning each raw document into the target type.
            options: Explicit projection/limit/sort for this call.

        Returns:
            The opened ResultStream.
        """
        args = find_args(criteria, self._query_options(options, sort))
        with self._deadline():
            native = self.collection.find(**args)
        return self._open(native, decode)

    def find_all(
        self,
        criteria: Filter | None = None,
        *sort: str,
        into: list[Any] | None = None,
        decode: Decoder | None = None,
        options: QueryOptions | None = None,
    ) -> list[Any]:
        """
        Return every document matching ``criteria``.

        Works like find() but loads all results at once. A decode error
        is raised instead of being held.

        Args:
            criteria: Query filter; None matches all documents.
            *sort: Sort tokens, "-field" for descending.
            into: List to extend with the results.
            decode: Callable turning each raw document into the target type.
            options: Explicit projection/limit/sort for this call.
        """
        args = find_args(criteria, self._query_options(options, sort))
        target: list[Any] = [] if into is None else into
        with self._deadline():
            docs = list(self.collection.find(**args))
        if decode is not None:
            docs = [decode(doc) for doc in docs]
        target.extend(docs)
        return target

    def find_one(
        self,
        criteria: Filter | None,
        *sort: str,
        decode: Decoder | None = None,
        options: QueryOptions | None = None,
    ) -> Any:
        """
        Return the first document matching ``criteria`` in ``sort`` order.

        Raises:
            NoDocumentsError: If no document matches.
        """
        args = find_args(criteria, self._query_options(options, sort, use_limit=False))
        args.pop("limit", None)
        with self._deadline():
            doc = self.collection.find_one(**args)
        if doc is None:
            raise NoDocumentsError(self.collection.name, criteria)
        return decode(doc) if decode else doc

    def find_by_id(self, doc_id: Any, decode: Decoder | None = None) -> Any:
        """
        Return the document whose _id is ``doc_id``.

        Raises:
            NoDocumentsError: If no document has that _id.
        """
        return self.find_one({"_id": doc_id}, decode=decode)

    def count(self, criteria: Filter | None = None, limit: int | None = None) -> int:
        """Count documents matching ``criteria``, up to the limit if set."""
        options = self._query_options(None, limit=limit)
        with self._deadline():
            return self.collection.count_documents(**count_args(criteria, options))

    # -- iteration --------------------------------------------------------

    def next(self, decode: Decoder | None = None) -> FetchResult[Any]:
        """
        Fetch the next record from the current result stream.

        Returns:
            Record holding the decoded document, or EndOfStream. After
            EndOfStream, iter_err() returns the error that ended the
            stream, if any.
        """
        if self._stream is None:
            raise MogError("no open result stream, call find() or agg_run() first")
        return self._stream.fetch(decode)

    def iter_err(self) -> BaseException | None:
        """The error that ended the current result stream, if any."""
        return self._stream.error if self._stream is not None else None

    def close_iterator(self) -> None:
        """Close the current result stream before it is exhausted."""
        if self._stream is not None:
            self._stream.close()

    # -- writes -----------------------------------------------------------

    def update(
        self,
        criteria: Filter | None,
        update: Update,
        upsert: bool | None = None,
        options: QueryOptions | None = None,
    ) -> int:
        """
        Update every document matching ``criteria``.

        Args:
            criteria: Query filter. Must not be None.
            update: Update document, e.g. ``{"$set": {...}}``.
            upsert: Insert when nothing matches; defaults to options.upsert,
                    then to the staged value.
            options: Explicit query shaping; only upsert is read.

        Returns:
            Number of modified plus upserted documents.

        Raises:
            ValidationError: If ``criteria`` is None.
        """
        upsert = self._resolve_upsert(upsert, options)
        if criteria is None:
            raise ValidationError("update criteria must not be None, use {} to match all")
        with self._deadline():
            result = self.collection.update_many(
                criteria, update, upsert=upsert
            )
        return result.modified_count + (1 if result.upserted_id is not None else 0)

    def update_by_id(self, doc_id: Any, update: Update) -> int:
        """Update the document whose _id is ``doc_id``; returns modified count."""
        with self._deadline():
            result = self.collection.update_one({"_id": doc_id}, update)
        return result.modified_count

    def replace(
        self,
        criteria: Filter | None,
        document: Document,
        upsert: bool | None = None,
        options: QueryOptions | None = None,
    ) -> None:
        """Replace the first document matching ``criteria`` with ``document``."""
        upsert = self._resolve_upsert(upsert, options)
        with self._deadline():
            self.collection.replace_one(
                {} if criteria is None else criteria,
                document,
                upsert=upsert,
            )

    def insert(self, *documents: Document) -> list[Any]:
        """
        Insert one or more documents; use the bulk methods for large loads.

        Returns:
            The inserted _ids, in order.
        """
        with self._deadline():
            result = self.collection.insert_many(list(documents))
        return list(result.inserted_ids)

    # -- bulk -------------------------------------------------------------

    def bulk_start(self, size: int = 0) -> Mog:
        """Start a new bulk batch, dropping any pending one."""
        self._batch = BulkBatch(size)
        return self

    def _bulk(self) -> BulkBatch:
        if self._batch is None:
            self._batch = BulkBatch()
        return self._batch

    def bulk_add_insert(self, document: Document) -> Mog:
        self._bulk().add_insert(document)
        return self

    def bulk_add_update(self, criteria: Filter | None, update: Update) -> Mog:
        self._bulk().add_update(criteria, update)
        return self

    def bulk_write(self) -> int:
        """
        Submit the bulk batch.

        Returns:
            Number of inserted plus modified documents.
        """
        batch, self._batch = self._bulk(), None
        with self._deadline():
            return batch.commit(self.collection)

    @property
    def bulk_pending(self) -> int:
        return len(self._batch) if self._batch is not None else 0

    # -- aggregation ------------------------------------------------------

    def agg_start(self) -> Pipeline:
        """Start a new, empty aggregation pipeline."""
        self._pipeline = Pipeline()
        return self._pipeline

    @property
    def pipeline(self) -> Pipeline:
        if self._pipeline is None:
            self._pipeline = Pipeline()
        return self._pipeline

    def agg_stage(self, operator: str, params: Any) -> Mog:
        self.pipeline.stage(operator, params)
        return self

    def agg_keep(self, *fields: str) -> Mog:
        self.pipeline.keep(*fields)
        return self

    def agg_omit(self, *fields: str) -> Mog:
        self.pipeline.omit(*fields)
        return self

    def agg_sort(self, *tokens: str) -> Mog:
        self.pipeline.sort(*tokens)
        return self

    def agg_lookup_by_id(
        self,
        from_collection: str,
        local_field: str,
        as_name: str | None = None,
        keep_unmatched: bool = False,
    ) -> Mog:
        """Join the foreign document whose _id equals ``local_field``."""
        self.pipeline.lookup_by_id(from_collection, local_field, as_name, keep_unmatched)
        return self

    def agg_totals(self, group_by: str, *sum_fields: str) -> Mog:
        """Group by ``group_by`` with a count and a tot_<field> per sum field."""
        self.pipeline.totals(group_by, *sum_fields)
        return self

    def _stages(self, pipeline: Pipeline | Sequence[Stage] | None) -> list[Stage]:
        if pipeline is None:
            return self.pipeline.stages
        if isinstance(pipeline, Pipeline):
            return pipeline.stages
        return list(pipeline)

    def agg_run(
        self,
        pipeline: Pipeline | Sequence[Stage] | None = None,
        decode: Decoder | None = None,
        **options: Any,
    ) -> ResultStream[Any]:
        """
        Run the pipeline and open a result stream over its output.

        Args:
            pipeline: Stages to run; defaults to the session's pipeline.
            decode: Callable turning each raw document into the target type.
            **options: Passed to ``Collection.aggregate``, e.g. maxTimeMS.

        Returns:
            The opened ResultStream, also read with ``next()``.
        """
        stages = self._stages(pipeline)
        logger.debug("aggregate on %s: %r", self.collection_name, stages)
        with self._deadline():
            native = self.collection.aggregate(stages, **options)
        return self._open(native, decode)

    def agg_run_all(
        self,
        into: list[Any] | None = None,
        pipeline: Pipeline | Sequence[Stage] | None = None,
        decode: Decoder | None = None,
        **options: Any,
    ) -> list[Any]:
        """Run the pipeline and return every output document."""
        stages = self._stages(pipeline)
        target: list[Any] = [] if into is None else into
        with self._deadline():
            docs = list(self.collection.aggregate(stages, **options))
        if decode is not None:
            docs = [decode(doc) for doc in docs]
        target.extend(docs)
        return target

    def agg_show_pipeline(self) -> str:
        """Return the session's pipeline as indented extended JSON."""
        return self.pipeline.show()

    # -- csv --------------------------------------------------------------

    def csv_out_start(self, path: str, crlf: bool = False) -> Mog:
        """Create ``path`` for csv_write(), closing any output already open."""
        self.csv_out_done()
        self._csv_out = csvio.CsvOut(path, crlf=crlf)
        return self

    def csv_write(self, fields: Sequence[object]) -> None:
        if self._csv_out is None:
            raise MogError("no CSV output open, call csv_out_start() first")
        self._csv_out.write(fields)

    def csv_out_done(self) -> None:
        """Flush and close the CSV output file."""
        if self._csv_out is not None:
            self._csv_out.done()
            self._csv_out = None

    def csv_in_start(self, path: str, header: Sequence[str] | None = None) -> Mog:
        """
        Open ``path`` for csv_read().

        Args:
            path: Input file path.
            header: When given, the first row must equal it and is skipped.

        Raises:
            HeaderMismatchError: If the first row differs from ``header``.
        """
        self.csv_in_done()
        reader = csvio.CsvIn(path)
        if header is not None:
            try:
                reader.check_header(header)
            except Exception:
                reader.done()
                raise
        self._csv_in = reader
        return self

    def csv_read(self) -> list[str] | None:
        """Read the next row, None at end of file."""
        if self._csv_in is None:
            raise MogError("no CSV input open, call csv_in_start() first")
        return self._csv_in.read()

    def csv_read_all(self, path: str) -> list[list[str]]:
        return csvio.read_all(path)

    def csv_in_done(self) -> None:
        if self._csv_in is not None:
            self._csv_in.done()
            self._csv_in = None

    def __repr__(self) -> str:
        return f"Mog({self._db.name!r}, {self.collection_name!r})"

