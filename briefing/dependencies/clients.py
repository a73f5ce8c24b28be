"""
Factory functions to provide shared clients and services as FastAPI dependencies.

The section worker bootstraps from the same factories, so the API and the
worker always talk to the same backend selected by ``PIPELINE_BACKEND``.
"""

from functools import lru_cache

from briefing.clients import (
    DynamoDBClient,
    GeminiClient,
    LocalTextStore,
    S3TextStore,
    SQLiteQueueClient,
    SQLiteStore,
    SQSClient,
)
from briefing.core.config import get_settings
from briefing.services import (
    DocumentStore,
    JobQueue,
    ModelInvoker,
    SectionDispatcher,
    SectionStore,
    SourceTextLoader,
    TextObjectStore,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


def _use_aws() -> bool:
    return _settings().pipeline.backend == "aws"


@lru_cache()
def get_document_store() -> DocumentStore:
    """Provide the report document store (DynamoDB or SQLite)."""
    settings = _settings()
    if _use_aws():
        return DynamoDBClient(settings.aws)
    return SQLiteStore(settings.pipeline.local_db_path)


@lru_cache()
def get_text_object_store() -> TextObjectStore:
    """Provide the store holding extracted solicitation text."""
    settings = _settings()
    if _use_aws():
        return S3TextStore(settings.aws)
    return LocalTextStore(settings.pipeline.local_documents_dir)


@lru_cache()
def get_queue_client() -> JobQueue:
    """Provide the section job queue (SQS or SQLite)."""
    settings = _settings()
    if _use_aws():
        return SQSClient(settings.aws)
    return SQLiteQueueClient(
        settings.pipeline.local_db_path,
        max_receive_count=settings.pipeline.max_receive_count,
    )


@lru_cache()
def get_gemini_client() -> GeminiClient:
    """Provide Gemini client instance."""
    settings = _settings()
    return GeminiClient(settings.gemini)


def get_section_store() -> SectionStore:
    return SectionStore(get_document_store())


def get_source_text_loader() -> SourceTextLoader:
    pipeline = _settings().pipeline
    return SourceTextLoader(
        get_text_object_store(),
        max_chars=pipeline.max_source_chars,
        min_chars=pipeline.min_source_chars,
    )


def get_model_invoker() -> ModelInvoker:
    return ModelInvoker(
        get_gemini_client(),
        output_retries=_settings().pipeline.model_output_retries,
    )


def get_section_dispatcher() -> SectionDispatcher:
    """Build a section dispatcher over the configured store and queue."""
    return SectionDispatcher(store=get_section_store(), queue=get_queue_client())


__all__ = [
    "get_document_store",
    "get_gemini_client",
    "get_model_invoker",
    "get_queue_client",
    "get_section_dispatcher",
    "get_section_store",
    "get_source_text_loader",
    "get_text_object_store",
]
