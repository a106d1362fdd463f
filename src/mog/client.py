"""
MogClient - connection settings and session factory.

Resolves the connection URI, default database and per-call timeout from
arguments or the environment, owns the native pymongo client, and hands
out Mog sessions bound to one of its databases.
"""

from __future__ import annotations

import logging
import os
from types import TracebackType
from typing import TYPE_CHECKING, Any

import pymongo
from pymongo.errors import ConfigurationError

from .session import Mog
from .types import ConnectionError, MogError

if TYPE_CHECKING:
    from pymongo.database import Database

logger = logging.getLogger(__name__)

__all__ = ["MogClient"]

DEFAULT_URI = "mongodb://localhost:27017"
DEFAULT_DATABASE = "demo"


class MogClient:
    """
    Owner of one native pymongo client.

    Databases are returned as native pymongo databases; sessions wrap
    one of them with the Mog facade.

    Example:
        with MogClient("mongodb://localhost:27017", database="demo") as client:
            mog = client.session("property")
            print(mog.count({"st": "MT"}))

        # Or from the environment (MONGO_URL, MONGO_DB, MONGO_TIMEOUT)
        client = MogClient().connect()
    """

    __slots__ = ("_uri", "_native", "_options", "_database", "_timeout")

    def __init__(
        self,
        uri: str | None = None,
        **options: Any,
    ) -> None:
        """
        Initialize the client.

        Args:
            uri: Connection URI (e.g., "mongodb://localhost:27017").
                 If not provided, uses MONGO_URL environment variable.
            **options: Additional connection options.
                - database: Default database name (MONGO_DB, default "demo").
                - timeout: Seconds allowed per store call (MONGO_TIMEOUT).
                Anything else is passed to pymongo.MongoClient.
        """
        self._uri = uri or os.environ.get("MONGO_URL", DEFAULT_URI)
        self._database: str = options.pop("database", None) or os.environ.get(
            "MONGO_DB", DEFAULT_DATABASE
        )
        timeout = options.pop("timeout", None)
        if timeout is None and os.environ.get("MONGO_TIMEOUT"):
            timeout = float(os.environ["MONGO_TIMEOUT"])
        self._timeout: float | None = timeout
        self._native: pymongo.MongoClient[Any] | None = None
        self._options = options

    @property
    def uri(self) -> str:
        """Get the connection URI."""
        return self._uri

    @property
    def database_name(self) -> str:
        return self._database

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def is_connected(self) -> bool:
        """Check if the native client has been created."""
        return self._native is not None

    @property
    def native(self) -> pymongo.MongoClient[Any]:
        self._ensure_connected()
        assert self._native is not None
        return self._native

    def connect(self) -> MogClient:
        """
        Create the native client. pymongo connects lazily on first use.

        Returns:
            Self for chaining.

        Raises:
            ConnectionError: If the URI or options are rejected.
        """
        if self._native is not None:
            return self

        try:
            self._native = pymongo.MongoClient(self._uri, **self._options)
        except (ConfigurationError, TypeError, ValueError) as e:
            raise ConnectionError(f"Failed to connect to {self._uri}: {e}") from e
        logger.info("connected to %s", self._uri)
        return self

    def close(self) -> None:
        """Close the native client."""
        if self._native is not None:
            self._native.close()
            self._native = None
            logger.info("closed connection to %s", self._uri)

    def _ensure_connected(self) -> None:
        if self._native is None:
            raise MogError("Client is not connected. Call connect() first.")

    def __getitem__(self, name: str) -> Database[Any]:
        """
        Get a native database by name.

        Example:
            db = client["demo"]
        """
        self._ensure_connected()
        assert self._native is not None
        return self._native[name]

    def get_database(self, name: str | None = None) -> Database[Any]:
        """Get a database by name, the default database when omitted."""
        return self[name or self._database]

    def session(self, collection: str | None = None, database: str | None = None) -> Mog:
        """
        Create a Mog session.

        Args:
            collection: Initial current collection.
            database: Database name, the default database when omitted.

        Returns:
            A new session sharing this client's timeout.
        """
        return Mog(self.get_database(database), collection, timeout=self._timeout)

    def __enter__(self) -> MogClient:
        return self.connect()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        return f"MogClient({self._uri!r}, {status})"
