from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import boto3

from src.chainwatch.config import MonitorConfig
from src.chainwatch.schemas.alerts import AlertState
from src.chainwatch.services.values import canonical_value

logger = logging.getLogger(__name__)


# SNS rejects subjects longer than 100 characters.
SNS_SUBJECT_MAX_LEN = 100


@dataclass(frozen=True)
class ChangeNotification:
    """A rendered change message."""

    subject: str
    message: str


def _display(value: Any) -> str:
    return canonical_value(value)


# PUBLIC_INTERFACE
def build_change_notification(
    subject_prefix: str, name: str, prior: Optional[AlertState], response: Any
) -> ChangeNotification:
    """Render subject and body for a changed alert; 'None' marks a first observation."""
    old = _display(prior.value) if prior is not None else "None"
    subject = f"{subject_prefix} Alert: {name}"[:SNS_SUBJECT_MAX_LEN]
    message = f"{name} has changed!\nOld value: {old}\nNew Value: {_display(response)}"
    return ChangeNotification(subject=subject, message=message)


class SnsNotifier:
    """Publishes change notifications to a fixed SNS topic."""

    def __init__(self, client: Any, topic_arn: str):
        self._client = client
        self._topic_arn = topic_arn

    @classmethod
    def from_config(cls, config: MonitorConfig) -> "SnsNotifier":
        """Build the SNS client once from explicit config (falls back to the default credential chain)."""
        client = boto3.client(
            "sns",
            region_name=config.aws_region,
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
        )
        return cls(client, config.sns_topic_arn)

    # PUBLIC_INTERFACE
    def send(self, notification: ChangeNotification) -> str:
        """Publish the notification and return the SNS message id."""
        res = self._client.publish(
            TopicArn=self._topic_arn,
            Subject=notification.subject,
            Message=notification.message,
        )
        return str(res.get("MessageId", ""))
