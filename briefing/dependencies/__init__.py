"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_document_store,
    get_gemini_client,
    get_model_invoker,
    get_queue_client,
    get_section_dispatcher,
    get_section_store,
    get_source_text_loader,
    get_text_object_store,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_document_store",
    "get_gemini_client",
    "get_model_invoker",
    "get_queue_client",
    "get_section_dispatcher",
    "get_section_store",
    "get_source_text_loader",
    "get_text_object_store",
]
