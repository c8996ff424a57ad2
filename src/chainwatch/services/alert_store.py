from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from src.chainwatch.db.mongo import MongoManager
from src.chainwatch.schemas.alerts import AlertState
from src.chainwatch.services.values import to_storable

logger = logging.getLogger(__name__)


def _doc_to_state(doc: dict) -> AlertState:
    return AlertState(
        name=doc["name"],
        value=doc.get("value"),
        timestamp=doc.get("timestamp"),
    )


class MongoAlertStore:
    """Alert definitions and alert state backed by MongoDB.

    Every method is blocking; the evaluator runs them in a worker thread.
    """

    def __init__(self, mongo: MongoManager):
        self._mongo = mongo

    # PUBLIC_INTERFACE
    def open(self) -> None:
        """Connect and make sure the state collection's indexes exist."""
        self._mongo.connect()
        self._mongo.init_indexes()

    # PUBLIC_INTERFACE
    def load_definitions(self) -> List[dict]:
        """Return every alert definition document, in store order, unvalidated."""
        cols = self._mongo.collections()
        return list(cols.alerts_config.find({}, projection={"_id": 0}))

    # PUBLIC_INTERFACE
    def find_state(self, name: str) -> Optional[AlertState]:
        """Fetch the stored state for an alert; None when it was never observed."""
        cols = self._mongo.collections()
        doc = cols.alerts.find_one({"name": name})
        return _doc_to_state(doc) if doc else None

    # PUBLIC_INTERFACE
    def upsert_state(self, name: str, value: Any, timestamp: datetime) -> None:
        """Insert or overwrite the state document for an alert."""
        cols = self._mongo.collections()
        cols.alerts.update_one(
            {"name": name},
            {"$set": {"value": to_storable(value), "timestamp": timestamp}},
            upsert=True,
        )

    def close(self) -> None:
        self._mongo.close()
