"""
Pydantic models for section jobs and the report API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from briefing.models.report import SectionName, SectionStatus


class _CamelSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SectionJob(_CamelSchema):
    """Queue message asking a worker to compute one section."""

    report_id: str = Field(..., min_length=1)
    section: SectionName
    input_hash: str = Field(..., min_length=1)
    attempt: int = Field(1, ge=1)
    requested_at: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DispatchRequest(_CamelSchema):
    force: bool = Field(
        False, description="Recompute even when the stored result matches the inputs."
    )


class DispatchResult(_CamelSchema):
    """Outcome of asking for one section to be computed."""

    section: SectionName
    status: SectionStatus
    enqueued: bool
    reused: bool = False
    input_hash: str
    message_id: Optional[str] = None


class DispatchAllResult(_CamelSchema):
    report_id: str
    results: List[DispatchResult] = Field(default_factory=list)


class SectionView(_CamelSchema):
    status: SectionStatus
    input_hash: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    updated_at: Optional[str] = None


class ReportView(_CamelSchema):
    """Report as returned by the API, with the reduced overall status."""

    report_id: str
    project_id: Optional[str] = None
    opportunity_id: Optional[str] = None
    status: SectionStatus
    sections: Dict[str, SectionView]
    composite_score: Optional[float] = None
    recommendation: Optional[str] = None
    decision: Optional[str] = None
    confidence: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


__all__ = [
    "DispatchAllResult",
    "DispatchRequest",
    "DispatchResult",
    "ReportView",
    "SectionJob",
    "SectionView",
]
