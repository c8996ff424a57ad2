from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from src.chainwatch.config import ConfigError, load_config
from src.chainwatch.schemas.alerts import RunSummary
from src.chainwatch.services.alerts_evaluator import _run_in_thread, evaluate_alerts, load_alert_definitions
from src.chainwatch.state import RunContext, build_context

logger = logging.getLogger(__name__)


async def _report_failure(ctx: RunContext) -> None:
    if not (ctx.report_failures and ctx.send_heartbeat):
        return
    await ctx.heartbeat.ping_failure()
    logger.info("Failure signal sent to health check receiver")


async def _finalize(ctx: RunContext, summary: RunSummary) -> None:
    """Heartbeat decision point: only a completed run pings."""
    if not summary.completed:
        logger.warning(
            "%d alert check(s) failed (%s) - not sending health check ping",
            len(summary.failed),
            ", ".join(summary.failed),
        )
        await _report_failure(ctx)
        return
    if not ctx.send_heartbeat:
        logger.info("All alerts checked successfully - health check ping disabled")
        return
    logger.info("All alerts checked successfully - Sending health check ping")
    summary.heartbeat_sent = await ctx.heartbeat.ping()


# PUBLIC_INTERFACE
async def run_alert_check(ctx: RunContext) -> RunSummary:
    """
    One full run: load definitions, evaluate every alert, release the store, heartbeat.

    The store is closed exactly once whether the run completes or aborts. The
    heartbeat is sent only when every alert was evaluated without error; a
    propagated error skips it (optionally signalling /fail) and is re-raised.
    """
    summary = RunSummary()
    try:
        try:
            await _run_in_thread(ctx.store.open)
            definitions = await load_alert_definitions(ctx)
            logger.info("Loaded %d alert definition(s)", len(definitions))
            await evaluate_alerts(ctx, definitions, summary)
            summary.completed = not summary.failed
        finally:
            await _run_in_thread(ctx.store.close)
    except Exception:
        logger.exception("Alert check run aborted - not sending health check ping")
        try:
            await _report_failure(ctx)
        except Exception:
            logger.exception("Failed to send failure signal to health check receiver")
        raise

    try:
        await _finalize(ctx, summary)
    except Exception:
        logger.exception("Failed to send health check ping")
        raise
    return summary


def _setup_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
        root.addHandler(handler)
    root.setLevel(level)

    # Suppress verbose transport logs
    for noisy in ("httpx", "httpcore", "botocore", "urllib3", "web3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check configured on-chain read calls for value changes")
    parser.add_argument(
        "--isolate-failures",
        action="store_true",
        default=None,
        help="Keep checking remaining alerts when one fails (overrides ALERT_ISOLATE_FAILURES)",
    )
    parser.add_argument("--no-heartbeat", action="store_true", help="Do not send the health check ping")
    parser.add_argument("--log-level", default=None, help="Logging level (overrides LOG_LEVEL)")
    parser.add_argument("--env-file", default=None, help="Path to a .env file to load before reading config")
    return parser.parse_args(argv)


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Exit codes: 0 completed, 1 failed run, 2 configuration error."""
    args = parse_args(argv)
    if args.env_file:
        load_dotenv(args.env_file)
    else:
        load_dotenv()
    _setup_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    try:
        config = load_config()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    ctx = build_context(config)
    if args.isolate_failures:
        ctx.isolate_failures = True
    if args.no_heartbeat:
        ctx.send_heartbeat = False

    try:
        summary = asyncio.run(run_alert_check(ctx))
    except Exception:
        return 1

    logger.info(
        "Run complete | checked: %s | changed: %s | unchanged: %s | failed: %s | heartbeat: %s",
        summary.checked,
        summary.changed,
        summary.unchanged,
        len(summary.failed),
        summary.heartbeat_sent,
    )
    return 0 if summary.completed else 1


if __name__ == "__main__":
    sys.exit(main())
