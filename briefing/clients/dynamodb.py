"""
Utility wrapper for storing report items in DynamoDB.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

from briefing.core.config import AWSSettings
from briefing.core.errors import InvalidDocumentPath, StoreConditionFailed
from briefing.models.updates import UpdateDescriptor


def _to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats; numbers travel as ``Decimal``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: _to_dynamo(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamo(item) for item in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: _from_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(item) for item in value]
    return value


class DynamoDBClient:
    """Get, put, and atomic partial updates against the report table."""

    def __init__(self, settings: AWSSettings, table: Any | None = None) -> None:
        self._settings = settings
        if table is None:
            resource = boto3.resource("dynamodb", region_name=settings.region_name)
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table

    def put_item(self, item: Dict[str, Any]) -> None:
        """Put an item in the DynamoDB table."""
        self._table.put_item(Item=_to_dynamo(item))

    def get_item(self, key: Dict[str, str]) -> Optional[Dict[str, Any]]:
        """Retrieve an item using its key (strongly consistent)."""
        response = self._table.get_item(Key=key, ConsistentRead=True)
        item = response.get("Item")
        return _from_dynamo(item) if item is not None else None

    def update_item(self, key: Dict[str, str], descriptor: UpdateDescriptor) -> None:
        """Apply ``descriptor`` as one ``UpdateItem`` call."""
        request = descriptor.to_dynamodb()
        if "ExpressionAttributeValues" in request:
            request["ExpressionAttributeValues"] = _to_dynamo(
                request["ExpressionAttributeValues"]
            )
        try:
            self._table.update_item(Key=key, **request)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = error.get("Code")
            if code == "ConditionalCheckFailedException":
                raise StoreConditionFailed(error.get("Message", "")) from exc
            if code == "ValidationException" and "document path" in error.get("Message", ""):
                raise InvalidDocumentPath(error["Message"]) from exc
            raise


__all__ = ["DynamoDBClient"]
