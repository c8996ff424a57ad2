"""Alert-check services.

- alert_store.py (alert definitions + last-known values in MongoDB)
- abi.py / remote_read.py (call descriptors and the eth_call read)
- values.py (storage and comparison normalization)
- notifier.py / heartbeat.py (SNS notifications, liveness pings)
- alerts_evaluator.py (per-alert evaluation loop)
"""
