from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, List

from src.chainwatch.schemas.alerts import AlertDefinition, RunSummary
from src.chainwatch.schemas.common import utc_now
from src.chainwatch.services.notifier import build_change_notification
from src.chainwatch.services.values import canonical_value, has_changed
from src.chainwatch.state import RunContext

logger = logging.getLogger(__name__)


async def _run_in_thread(func, *args, **kwargs):
    """Run blocking pymongo/web3/boto3 calls in a worker thread."""
    return await asyncio.to_thread(func, *args, **kwargs)


def _alert_name(raw: Any) -> str:
    if isinstance(raw, dict):
        return str(raw.get("name", "<unnamed>"))
    return "<invalid>"


# PUBLIC_INTERFACE
async def load_alert_definitions(ctx: RunContext) -> List[dict]:
    """Read every configured alert definition, in store order. Errors propagate."""
    return await _run_in_thread(ctx.store.load_definitions)


# PUBLIC_INTERFACE
async def evaluate_alert(ctx: RunContext, raw: dict) -> bool:
    """
    Evaluate one alert definition.

    - looks up the stored state (absence means "never observed")
    - performs the remote read
    - on change: upserts the new value, then publishes the notification

    Returns True when the value changed. Any error propagates to the caller.
    """
    definition = AlertDefinition.model_validate(raw)
    name = definition.name
    logger.info("Checking alert: %s", name)

    prior = await _run_in_thread(ctx.store.find_state, name)
    response = await _run_in_thread(ctx.reader.read, definition)

    if not has_changed(prior, response):
        logger.debug("No change for %s (value=%s)", name, canonical_value(response))
        return False

    logger.info("Updating value %s", name)
    logger.info("Old value: %s", canonical_value(prior.value) if prior is not None else None)
    logger.info("New value: %s", canonical_value(response))

    # The write must land before the notification goes out.
    await _run_in_thread(ctx.store.upsert_state, name, response, utc_now())

    notification = build_change_notification(ctx.subject_prefix, name, prior, response)
    message_id = await _run_in_thread(ctx.notifier.send, notification)
    logger.info("Notification sent successfully for %s (messageId=%s)", name, message_id)
    return True


# PUBLIC_INTERFACE
async def evaluate_alerts(ctx: RunContext, definitions: Iterable[dict], summary: RunSummary) -> RunSummary:
    """
    Evaluate alerts sequentially in the given order, updating `summary`.

    Without isolation the first failure propagates and the remaining alerts are
    not checked. With ctx.isolate_failures each failure is logged, recorded in
    summary.failed, and the loop moves on.
    """
    for raw in definitions:
        try:
            changed = await evaluate_alert(ctx, raw)
        except Exception:
            if not ctx.isolate_failures:
                raise
            name = _alert_name(raw)
            logger.exception("Alert check failed for %s", name)
            summary.failed.append(name)
            continue

        summary.checked += 1
        if changed:
            summary.changed += 1
        else:
            summary.unchanged += 1
    return summary
