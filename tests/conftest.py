"""Pytest configuration shared across the suite."""

import _bootstrap  # noqa: F401

from typing import Any, Callable, Dict, Iterable

import pytest

from briefing.clients.sqlite_store import SQLiteStore
from briefing.models.report import build_report_item
from briefing.services.section_store import SectionStore


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def document_store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "briefing.db"))


@pytest.fixture
def section_store(document_store: SQLiteStore) -> SectionStore:
    return SectionStore(document_store)


@pytest.fixture
def make_report(document_store: SQLiteStore) -> Callable[..., Dict[str, Any]]:
    """Write a fresh report item (all sections IDLE) and return it."""

    def _make(
        report_id: str = "report-1",
        source_text_keys: Iterable[str] = ("solicitations/rfp.txt",),
    ) -> Dict[str, Any]:
        item = build_report_item(
            report_id=report_id,
            project_id="project-1",
            opportunity_id="opportunity-1",
            source_text_keys=list(source_text_keys),
        )
        document_store.put_item(item)
        return item

    return _make
