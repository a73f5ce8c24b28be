"""
Load and merge the solicitation text a report was created from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from briefing.core.errors import SourceTextTooShort, SourceTextUnavailable
from briefing.models.report import Report

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[TRUNCATED]"


class TextObjectStore(Protocol):
    def get_text(self, key: str) -> str: ...


@dataclass(frozen=True)
class SourceText:
    text: str
    loaded_keys: List[str]
    truncated: bool = False


def truncate_text(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def merge_documents(texts: Sequence[str]) -> str:
    """Join documents, labelling each one when there is more than one."""
    if len(texts) == 1:
        return texts[0]
    merged = ""
    for index, text in enumerate(texts, start=1):
        merged += f"\n\n=== DOCUMENT {index} of {len(texts)} ===\n\n{text}"
    return merged


class SourceTextLoader:
    """Fetch each source key from object storage and build the model input."""

    def __init__(self, object_store: TextObjectStore, *, max_chars: int, min_chars: int) -> None:
        self._objects = object_store
        self._max_chars = max_chars
        self._min_chars = min_chars

    def load(self, report: Report) -> SourceText:
        keys = list(dict.fromkeys(key for key in report.source_text_keys if key))
        if not keys:
            raise SourceTextUnavailable(
                f"Report {report.report_id} has no source text keys. "
                "Upload and process solicitation documents before generating the brief."
            )

        texts: List[str] = []
        loaded: List[str] = []
        failed: List[str] = []
        for key in keys:
            try:
                text = self._objects.get_text(key)
            except Exception as exc:  # noqa: BLE001 - one unreadable document is skipped
                logger.warning("Failed to load source text %s: %s", key, exc)
                failed.append(key)
                continue
            if not text.strip():
                logger.warning("Source text %s is empty; skipping", key)
                failed.append(key)
                continue
            texts.append(text)
            loaded.append(key)

        if not texts:
            raise SourceTextUnavailable(
                f"Failed to load any solicitation text. Attempted {len(keys)} key(s). "
                f"Failed: {', '.join(failed)}"
            )

        # Document boundary labels do not count towards the minimum.
        content_length = sum(len(text.strip()) for text in texts)
        if content_length < self._min_chars:
            raise SourceTextTooShort(content_length, self._min_chars, len(texts))

        merged = merge_documents(texts)
        logger.info(
            "Loaded %d document(s) for report %s, %d total chars",
            len(texts),
            report.report_id,
            len(merged),
        )
        return SourceText(
            text=truncate_text(merged, self._max_chars),
            loaded_keys=loaded,
            truncated=len(merged) > self._max_chars,
        )


__all__ = [
    "SourceText",
    "SourceTextLoader",
    "TRUNCATION_MARKER",
    "TextObjectStore",
    "merge_documents",
    "truncate_text",
]
