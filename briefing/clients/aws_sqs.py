"""
Amazon SQS client wrapper for queueing section jobs.
"""

from __future__ import annotations

import json
from typing import Any, Dict

import boto3

from briefing.core.config import AWSSettings


class SQSClient:
    """Send section jobs to the worker queue."""

    def __init__(self, settings: AWSSettings, client=None) -> None:
        self._settings = settings
        self._client = client or boto3.client("sqs", region_name=settings.region_name)

    def enqueue_job(self, payload: Dict[str, Any]) -> str:
        """Push a message onto the SQS queue."""
        response = self._client.send_message(
            QueueUrl=self._settings.sqs_queue_url,
            MessageBody=json.dumps(payload),
        )
        return response["MessageId"]


__all__ = ["SQSClient"]
