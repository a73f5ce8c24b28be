"""
Application configuration models and helpers.

Centralizes settings management so both the FastAPI app and the section worker
share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import os

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class AWSSettings(BaseSettings):
    """Settings for AWS services used by the pipeline."""

    model_config = SettingsConfigDict(extra="ignore")

    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    sqs_queue_url: Optional[str] = Field(
        None,
        validation_alias="SECTION_QUEUE_URL",
        description="Queue receiving one message per section job.",
    )
    dynamodb_table_name: Optional[str] = Field(
        None, validation_alias="DYNAMODB_TABLE_NAME"
    )
    documents_bucket: Optional[str] = Field(
        None,
        validation_alias="DOCUMENTS_BUCKET",
        description="Bucket holding the extracted solicitation text files.",
    )


class GeminiSettings(BaseSettings):
    """Configuration for Gemini model access."""

    model_config = SettingsConfigDict(extra="ignore")

    api_key: str = Field(..., validation_alias="GEMINI_API_KEY")
    model_name: str = Field("gemini-1.5-pro", validation_alias="GEMINI_MODEL_NAME")


class PipelineSettings(BaseSettings):
    """Knobs for the section pipeline and its local development backends."""

    model_config = SettingsConfigDict(extra="ignore")

    backend: Literal["aws", "local"] = Field("local", validation_alias="PIPELINE_BACKEND")
    max_source_chars: int = Field(45000, validation_alias="MAX_SOURCE_CHARS", gt=0)
    min_source_chars: int = Field(100, validation_alias="MIN_SOURCE_CHARS", ge=0)
    model_output_retries: int = Field(1, validation_alias="MODEL_OUTPUT_RETRIES", ge=0)
    auto_dispatch_dependents: bool = Field(
        True,
        validation_alias="AUTO_DISPATCH_DEPENDENTS",
        description="Enqueue sections whose prerequisites just became complete.",
    )
    local_db_path: str = Field("data/briefing.db", validation_alias="LOCAL_DB_PATH")
    local_documents_dir: str = Field(
        "data/documents", validation_alias="LOCAL_DOCUMENTS_DIR"
    )
    visibility_timeout_seconds: int = Field(
        900, validation_alias="VISIBILITY_TIMEOUT_SECONDS", gt=0
    )
    max_receive_count: int = Field(
        5,
        validation_alias="MAX_RECEIVE_COUNT",
        ge=1,
        description="Local queue receives before a job is dead-lettered.",
    )

    @model_validator(mode="after")
    def _check_source_bounds(self) -> "PipelineSettings":
        if self.min_source_chars >= self.max_source_chars:
            raise ValueError("MIN_SOURCE_CHARS must be lower than MAX_SOURCE_CHARS")
        return self


class AppSettings(BaseSettings):
    """Root settings object for the API and the worker."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    aws: AWSSettings = Field(default_factory=AWSSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _check_aws_backend(self) -> "AppSettings":
        """The AWS backend needs a table, a bucket, and a queue."""
        if self.pipeline.backend != "aws":
            return self
        missing = [
            name
            for name, value in (
                ("DYNAMODB_TABLE_NAME", self.aws.dynamodb_table_name),
                ("DOCUMENTS_BUCKET", self.aws.documents_bucket),
                ("SECTION_QUEUE_URL", self.aws.sqs_queue_url),
            )
            if not value
        ]
        if missing:
            raise ValueError(
                "PIPELINE_BACKEND=aws requires: " + ", ".join(missing)
            )
        return self


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "AWSSettings",
    "GeminiSettings",
    "PipelineSettings",
    "get_settings",
]
