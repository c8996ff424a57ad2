from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import OperationFailure

logger = logging.getLogger(__name__)


ALERTS_CONFIG_COLLECTION = "alertsConfig"
ALERTS_STATE_COLLECTION = "alerts"


@dataclass(frozen=True)
class MongoCollections:
    """Convenience wrapper for the monitor's collections."""

    # Alert definitions, maintained by operators; read-only here.
    alerts_config: Collection

    # Last observed value per alert name.
    alerts: Collection


class MongoManager:
    """
    MongoDB connection manager.

    Owns one MongoClient for the run. The client is created lazily and
    released by close(); close() is idempotent so the finalizer can call it
    unconditionally.
    """

    def __init__(self, mongo_uri: str, db_name: str):
        self._mongo_uri = mongo_uri
        self._db_name = db_name
        self._client: Optional[MongoClient] = None
        self._lock = RLock()

    def connect(self) -> None:
        """Initialize the Mongo client if needed."""
        with self._lock:
            if self._client is not None:
                return
            self._client = MongoClient(self._mongo_uri, connect=True)

    def close(self) -> None:
        """Close the Mongo client."""
        with self._lock:
            if self._client is None:
                return
            client, self._client = self._client, None
            client.close()
            logger.debug("Mongo client closed")

    def db(self) -> Database:
        """Return the monitor database handle."""
        if self._client is None:
            self.connect()
        assert self._client is not None
        return self._client[self._db_name]

    def collections(self) -> MongoCollections:
        """Return monitor collections."""
        db = self.db()
        return MongoCollections(
            alerts_config=db[ALERTS_CONFIG_COLLECTION],
            alerts=db[ALERTS_STATE_COLLECTION],
        )

    def init_indexes(self) -> None:
        """
        Create required indexes (idempotent).

        The unique index on alerts.name keeps exactly one state document per alert.
        A collection that already holds duplicate names (left by overlapping runs)
        cannot take the index; that is logged and the run continues, since the
        upsert by name still targets a single document.
        """
        cols = self.collections()
        try:
            cols.alerts.create_index([("name", ASCENDING)], unique=True, name="idx_alerts_name_unique")
        except OperationFailure as exc:
            logger.warning(
                "Could not create unique index on %s.name (duplicate names?): %s",
                ALERTS_STATE_COLLECTION,
                exc,
            )
