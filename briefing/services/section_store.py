"""
Persisted section state transitions on top of a document store.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol

from briefing.core.errors import ReportNotFound, StoreConditionFailed, format_error
from briefing.models.report import (
    Report,
    SectionName,
    SectionStatus,
    report_key,
    utc_now_iso,
)
from briefing.models.updates import UpdateBuilder, UpdateDescriptor

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    def get_item(self, key: Dict[str, str]) -> Optional[Dict[str, Any]]: ...

    def put_item(self, item: Dict[str, Any]) -> None: ...

    def update_item(self, key: Dict[str, str], descriptor: UpdateDescriptor) -> None: ...


def _section_key(section: SectionName | str) -> str:
    return section.value if isinstance(section, SectionName) else section


class SectionStore:
    """Read reports and move their sections between statuses.

    Every transition is one conditional update: the report must already exist,
    otherwise ``ReportNotFound`` is raised and nothing is written.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get_report(self, report_id: str) -> Report:
        item = self._store.get_item(report_key(report_id))
        if item is None:
            raise ReportNotFound(report_id)
        return Report.from_item(item)

    def ensure_section(self, report_id: str, section: SectionName | str) -> None:
        """Create an IDLE record for ``section`` unless one already exists."""
        name = _section_key(section)
        builder = UpdateBuilder().require_exists()
        builder.level("sec", "sections").set(
            name,
            {"status": SectionStatus.IDLE.value, "updatedAt": utc_now_iso()},
            if_absent=True,
        )
        self._apply(report_id, builder.build())

    def mark_in_progress(
        self, report_id: str, section: SectionName | str, input_hash: str
    ) -> None:
        name = _section_key(section)
        self.ensure_section(report_id, name)

        builder = UpdateBuilder().require_exists()
        (
            builder.level("sec", "sections", name)
            .set("status", SectionStatus.IN_PROGRESS.value)
            .set("inputHash", input_hash)
            .set("updatedAt", utc_now_iso())
        )
        self._apply(report_id, builder.build())
        logger.info("Section %s/%s marked IN_PROGRESS", report_id, name)

    def mark_complete(
        self,
        report_id: str,
        section: SectionName | str,
        data: Dict[str, Any],
        top_level_patch: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Store ``data`` and the top-level patch in a single update."""
        name = _section_key(section)
        self.ensure_section(report_id, name)
        now = utc_now_iso()

        builder = UpdateBuilder().require_exists()
        (
            builder.level("sec", "sections", name)
            .set("status", SectionStatus.COMPLETE.value)
            .set("data", data)
            .set("updatedAt", now)
            .remove("error")
        )
        top = builder.level("top")
        for attribute, value in (top_level_patch or {}).items():
            if attribute == "updatedAt" or value is None:
                continue
            top.set(attribute, value)
        top.set("updatedAt", now)

        self._apply(report_id, builder.build())
        logger.info("Section %s/%s marked COMPLETE", report_id, name)

    def set_overall_status(self, report_id: str, status: SectionStatus) -> None:
        builder = UpdateBuilder().require_exists()
        builder.level("top").set("status", status.value).set("updatedAt", utc_now_iso())
        self._apply(report_id, builder.build())
        logger.info("Report %s overall status refreshed to %s", report_id, status.value)

    def mark_failed(self, report_id: str, section: SectionName | str, error: object) -> None:
        name = _section_key(section)
        message = format_error(error)
        self.ensure_section(report_id, name)

        builder = UpdateBuilder().require_exists()
        (
            builder.level("sec", "sections", name)
            .set("status", SectionStatus.FAILED.value)
            .set("error", message)
            .set("updatedAt", utc_now_iso())
            .remove("data")
        )
        self._apply(report_id, builder.build())
        logger.warning("Section %s/%s marked FAILED: %s", report_id, name, message)

    def _apply(self, report_id: str, descriptor: UpdateDescriptor) -> None:
        try:
            self._store.update_item(report_key(report_id), descriptor)
        except StoreConditionFailed as exc:
            raise ReportNotFound(report_id) from exc


__all__ = ["DocumentStore", "SectionStore"]
