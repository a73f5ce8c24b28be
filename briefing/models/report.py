"""
Persisted report entity and its per-section records.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

REPORT_PARTITION = "report"


class SectionName(str, Enum):
    SUMMARY = "summary"
    DEADLINES = "deadlines"
    REQUIREMENTS = "requirements"
    CONTACTS = "contacts"
    RISKS = "risks"
    SCORING = "scoring"


class SectionStatus(str, Enum):
    IDLE = "IDLE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


ALL_SECTIONS: tuple[SectionName, ...] = tuple(SectionName)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def report_key(report_id: str) -> Dict[str, str]:
    """Primary key of the stored report item."""
    return {"pk": REPORT_PARTITION, "sk": report_id}


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class SectionRecord(_CamelModel):
    """State of one section within a report."""

    status: SectionStatus = SectionStatus.IDLE
    input_hash: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    updated_at: Optional[str] = None


class Report(_CamelModel):
    """Read model over the stored report item."""

    report_id: str
    project_id: Optional[str] = None
    opportunity_id: Optional[str] = None
    source_text_keys: List[str] = Field(default_factory=list)
    sections: Dict[str, SectionRecord] = Field(default_factory=dict)
    status: SectionStatus = SectionStatus.IDLE
    composite_score: Optional[float] = None
    recommendation: Optional[str] = None
    decision: Optional[str] = None
    confidence: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Report":
        payload = dict(item)
        payload.setdefault("reportId", item.get("sk"))
        return cls.model_validate(payload)

    def section(self, name: SectionName | str) -> SectionRecord:
        """Return the record for ``name``; absent sections read as IDLE."""
        key = name.value if isinstance(name, SectionName) else name
        return self.sections.get(key) or SectionRecord()

    def section_status(self, name: SectionName | str) -> SectionStatus:
        return self.section(name).status


def build_report_item(
    *,
    report_id: str,
    project_id: str,
    opportunity_id: str,
    source_text_keys: List[str],
) -> Dict[str, Any]:
    """Initial stored shape of a report, as written by the report creator."""
    now = utc_now_iso()
    return {
        **report_key(report_id),
        "reportId": report_id,
        "projectId": project_id,
        "opportunityId": opportunity_id,
        "sourceTextKeys": list(source_text_keys),
        "status": SectionStatus.IDLE.value,
        "sections": {
            section.value: {"status": SectionStatus.IDLE.value, "updatedAt": now}
            for section in ALL_SECTIONS
        },
        "createdAt": now,
        "updatedAt": now,
    }


__all__ = [
    "ALL_SECTIONS",
    "REPORT_PARTITION",
    "Report",
    "SectionName",
    "SectionRecord",
    "SectionStatus",
    "build_report_item",
    "report_key",
    "utc_now_iso",
]
