from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.chainwatch.config import MonitorConfig
from src.chainwatch.db.mongo import MongoManager
from src.chainwatch.services.alert_store import MongoAlertStore
from src.chainwatch.services.heartbeat import HeartbeatClient
from src.chainwatch.services.notifier import SnsNotifier
from src.chainwatch.services.remote_read import Web3RemoteReader


@dataclass
class RunContext:
    """Collaborators for one run, built once and passed explicitly."""

    store: Any  # MongoAlertStore, or any object with the same methods
    reader: Any  # Web3RemoteReader
    notifier: Any  # SnsNotifier
    heartbeat: HeartbeatClient
    subject_prefix: str = "EHub"
    isolate_failures: bool = False
    report_failures: bool = False
    send_heartbeat: bool = True


# PUBLIC_INTERFACE
def build_context(config: MonitorConfig) -> RunContext:
    """Build the production RunContext (Mongo store, web3 reader, SNS notifier, heartbeat)."""
    return RunContext(
        store=MongoAlertStore(MongoManager(config.mongo_uri, config.mongo_db_name)),
        reader=Web3RemoteReader(timeout_sec=config.rpc_timeout_sec),
        notifier=SnsNotifier.from_config(config),
        heartbeat=HeartbeatClient.from_config(config),
        subject_prefix=config.subject_prefix,
        isolate_failures=config.isolate_failures,
        report_failures=config.heartbeat_report_failures,
    )
