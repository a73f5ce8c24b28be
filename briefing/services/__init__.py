"""Service layer exports."""

from .input_hash import build_section_input_hash
from .json_extraction import extract_json
from .model_invoker import ModelInvoker, TextModelClient
from .section_dispatcher import JobQueue, SectionDispatcher
from .section_store import DocumentStore, SectionStore
from .source_text import SourceText, SourceTextLoader, TextObjectStore

__all__ = [
    "DocumentStore",
    "JobQueue",
    "ModelInvoker",
    "SectionDispatcher",
    "SectionStore",
    "SourceText",
    "SourceTextLoader",
    "TextModelClient",
    "TextObjectStore",
    "build_section_input_hash",
    "extract_json",
]
