"""Expose constructed client wrappers."""

from .aws_sqs import SQSClient
from .dynamodb import DynamoDBClient
from .gemini import GeminiClient, GeminiModelError
from .local_files import LocalTextStore
from .local_queue import SQLiteQueueClient
from .s3 import S3TextStore
from .sqlite_store import SQLiteStore

__all__ = [
    "DynamoDBClient",
    "GeminiClient",
    "GeminiModelError",
    "LocalTextStore",
    "S3TextStore",
    "SQLiteQueueClient",
    "SQLiteStore",
    "SQSClient",
]
