"""
Amazon S3 client wrapper for reading extracted solicitation text.
"""

from __future__ import annotations

import boto3

from briefing.core.config import AWSSettings


class S3TextStore:
    """Fetch text objects from the documents bucket."""

    def __init__(self, settings: AWSSettings, client=None) -> None:
        self._settings = settings
        self._client = client or boto3.client("s3", region_name=settings.region_name)

    def get_text(self, key: str) -> str:
        """Return the object at ``key`` decoded as UTF-8."""
        response = self._client.get_object(Bucket=self._settings.documents_bucket, Key=key)
        body = response["Body"].read()
        return body.decode("utf-8", errors="replace")


__all__ = ["S3TextStore"]
