from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import pytest

from src.chainwatch.schemas.alerts import AlertDefinition, AlertState
from src.chainwatch.services.heartbeat import HeartbeatClient
from src.chainwatch.services.notifier import ChangeNotification
from src.chainwatch.state import RunContext


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeStore:
    """In-memory stand-in for MongoAlertStore that records every call in `events`."""

    def __init__(self, definitions: Optional[List[dict]] = None, load_error: Optional[Exception] = None):
        self.definitions = list(definitions or [])
        self.states: Dict[str, AlertState] = {}
        self.events: List[tuple] = []
        self.load_error = load_error
        self.upsert_error: Optional[Exception] = None
        self.upserts: List[tuple] = []
        self.close_calls = 0

    def open(self) -> None:
        self.events.append(("open",))

    def load_definitions(self) -> List[dict]:
        self.events.append(("load",))
        if self.load_error is not None:
            raise self.load_error
        return list(self.definitions)

    def find_state(self, name: str) -> Optional[AlertState]:
        return self.states.get(name)

    def upsert_state(self, name: str, value: Any, timestamp: datetime) -> None:
        if self.upsert_error is not None:
            raise self.upsert_error
        self.events.append(("upsert", name))
        self.upserts.append((name, value, timestamp))
        self.states[name] = AlertState(name=name, value=value, timestamp=timestamp)

    def close(self) -> None:
        self.events.append(("close",))
        self.close_calls += 1


class FakeReader:
    """Returns canned responses per alert name; an Exception value is raised instead."""

    def __init__(self, responses: Dict[str, Any]):
        self.responses = dict(responses)
        self.calls: List[AlertDefinition] = []

    def read(self, definition: AlertDefinition) -> Any:
        self.calls.append(definition)
        value = self.responses[definition.name]
        if isinstance(value, Exception):
            raise value
        return value


class FakeNotifier:
    def __init__(self, events: List[tuple]):
        self.sent: List[ChangeNotification] = []
        self._events = events
        self.error: Optional[Exception] = None

    def send(self, notification: ChangeNotification) -> str:
        if self.error is not None:
            raise self.error
        self._events.append(("notify", notification.subject))
        self.sent.append(notification)
        return f"msg-{len(self.sent)}"


class HeartbeatRecorder:
    """httpx MockTransport handler that records requested URLs."""

    def __init__(self, status_code: int = 200):
        self.urls: List[str] = []
        self.status_code = status_code
        self.error: Optional[Exception] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.urls.append(str(request.url))
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, text="OK")


def make_definition(name: str = "TotalSupply", **overrides: Any) -> dict:
    """A raw alertsConfig document as it comes out of Mongo."""
    doc = {
        "name": name,
        "rpcUrl": "https://rpc.example.org",
        "contractAddress": "0x00000000000000000000000000000000000000aa",
        "functionAbiString": "function totalSupply() view returns (uint256)",
        "functionName": "totalSupply",
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def heartbeat_recorder() -> HeartbeatRecorder:
    return HeartbeatRecorder()


@pytest.fixture
def make_context(heartbeat_recorder: HeartbeatRecorder):
    """Factory building a RunContext wired to fakes."""

    def _make(
        definitions: List[dict],
        responses: Dict[str, Any],
        store: Optional[FakeStore] = None,
        **kwargs: Any,
    ) -> RunContext:
        store = store or FakeStore(definitions)
        heartbeat = HeartbeatClient(
            "https://hc-ping.example",
            kwargs.pop("slug", "test-slug"),
            transport=httpx.MockTransport(heartbeat_recorder),
        )
        return RunContext(
            store=store,
            reader=FakeReader(responses),
            notifier=FakeNotifier(store.events),
            heartbeat=heartbeat,
            **kwargs,
        )

    return _make
