"""
Pydantic models validating each section's model output, plus the
section-specific normalization applied after validation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Severity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
Recommendation = Literal["GO", "NO_GO", "NEEDS_REVIEW"]
Decision = Literal["GO", "CONDITIONAL_GO", "NO_GO"]
ContactRole = Literal[
    "CONTRACTING_OFFICER",
    "CONTRACT_SPECIALIST",
    "TECHNICAL_POC",
    "PROGRAM_MANAGER",
    "SMALL_BUSINESS_SPECIALIST",
    "PROCUREMENT_POC",
    "SUBCONTRACTING_POC",
    "GENERAL_INQUIRY",
    "OTHER",
]

RECOMMENDED_CONTACT_ROLES: tuple[str, ...] = (
    "CONTRACTING_OFFICER",
    "CONTRACT_SPECIALIST",
    "TECHNICAL_POC",
    "SMALL_BUSINESS_SPECIALIST",
)


class SectionPayload(BaseModel):
    """Base for section payloads: camelCase on the wire, unknown keys dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class EvidenceRef(SectionPayload):
    source: Optional[str] = None
    snippet: Optional[str] = None
    chunk_key: Optional[str] = None
    document_id: Optional[str] = None


class QuickSummary(SectionPayload):
    title: Optional[str] = None
    agency: Optional[str] = None
    office: Optional[str] = None
    solicitation_number: Optional[str] = None
    naics: Optional[str] = None
    contract_type: str = "UNKNOWN"
    set_aside: str = "UNKNOWN"
    place_of_performance: Optional[str] = None
    estimated_value_usd: Optional[float] = Field(None, ge=0)
    period_of_performance: Optional[str] = None
    summary: str = Field(..., min_length=10)
    evidence: List[EvidenceRef] = Field(default_factory=list)


class Deadline(SectionPayload):
    type: Optional[str] = None
    label: Optional[str] = None
    date_time_iso: Optional[str] = None
    raw_text: Optional[str] = None
    timezone: Optional[str] = None
    notes: Optional[str] = None
    evidence: List[EvidenceRef] = Field(default_factory=list)


class DeadlinesSection(SectionPayload):
    deadlines: List[Deadline] = Field(..., min_length=1)
    has_submission_deadline: Optional[bool] = None
    submission_deadline_iso: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class RequirementItem(SectionPayload):
    category: Optional[str] = None
    requirement: str = Field(..., min_length=5)
    must_have: bool = True
    evidence: List[EvidenceRef] = Field(default_factory=list)


class SubmissionCompliance(SectionPayload):
    format: List[str] = Field(default_factory=list)
    required_volumes: List[str] = Field(default_factory=list)
    attachments_and_forms: List[str] = Field(default_factory=list)


class RequirementsSection(SectionPayload):
    overview: str = Field(..., min_length=10)
    requirements: List[RequirementItem] = Field(..., min_length=1)
    deliverables: List[str] = Field(default_factory=list)
    evaluation_factors: List[str] = Field(default_factory=list)
    submission_compliance: SubmissionCompliance = Field(default_factory=SubmissionCompliance)


class Contact(SectionPayload):
    role: ContactRole
    name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    organization: Optional[str] = None
    notes: Optional[str] = None
    evidence: List[EvidenceRef] = Field(default_factory=list)


class ContactsSection(SectionPayload):
    contacts: List[Contact] = Field(default_factory=list)
    missing_recommended_roles: List[ContactRole] = Field(default_factory=list)


class RiskFlag(SectionPayload):
    severity: Severity
    flag: str = Field(..., min_length=5)
    why_it_matters: Optional[str] = None
    mitigation: Optional[str] = None
    # None means the model did not say; normalization fills it from severity.
    impacts_score: Optional[bool] = None
    evidence: List[EvidenceRef] = Field(default_factory=list)


class IncumbentInfo(SectionPayload):
    known_incumbent: bool = False
    incumbent_name: Optional[str] = None
    recompete: bool = False
    notes: Optional[str] = None
    evidence: List[EvidenceRef] = Field(default_factory=list)


class RisksSection(SectionPayload):
    risks: List[RiskFlag] = Field(default_factory=list)
    red_flags: List[RiskFlag] = Field(default_factory=list)
    incumbent_info: IncumbentInfo = Field(default_factory=IncumbentInfo)


class ScoreCriterion(SectionPayload):
    name: Optional[str] = None
    score: Optional[int] = Field(None, ge=1, le=5)
    rationale: Optional[str] = None
    gaps: List[str] = Field(default_factory=list)
    evidence: List[EvidenceRef] = Field(default_factory=list)


class ConfidenceDriver(SectionPayload):
    factor: Optional[str] = None
    direction: Optional[Literal["UP", "DOWN"]] = None


class ScoringSection(SectionPayload):
    criteria: List[ScoreCriterion] = Field(default_factory=list)
    composite_score: Optional[float] = None
    recommendation: Optional[Recommendation] = None
    confidence: Optional[int] = Field(None, ge=0, le=100)
    summary_justification: Optional[str] = None
    decision: Optional[Decision] = None
    decision_rationale: Optional[str] = None
    blockers: Optional[List[str]] = None
    required_actions: Optional[List[str]] = None
    confidence_explanation: Optional[str] = None
    confidence_drivers: Optional[List[ConfidenceDriver]] = None


def dump_payload(model: SectionPayload) -> Dict[str, Any]:
    """JSON-compatible dict with camelCase keys and unset optionals dropped."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def normalize_deadlines(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(data)
    if not isinstance(normalized.get("hasSubmissionDeadline"), bool):
        normalized["hasSubmissionDeadline"] = bool(normalized.get("submissionDeadlineIso"))
    return normalized


def normalize_risks(data: Dict[str, Any]) -> Dict[str, Any]:
    def _fill(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        filled = []
        for item in items or []:
            entry = dict(item)
            if not isinstance(entry.get("impactsScore"), bool):
                entry["impactsScore"] = entry.get("severity") in ("HIGH", "CRITICAL")
            filled.append(entry)
        return filled

    normalized = dict(data)
    normalized["risks"] = _fill(data.get("risks", []))
    normalized["redFlags"] = _fill(data.get("redFlags", []))
    return normalized


def normalize_contacts(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(data)
    if not normalized.get("missingRecommendedRoles"):
        found = {contact.get("role") for contact in data.get("contacts", [])}
        normalized["missingRecommendedRoles"] = [
            role for role in RECOMMENDED_CONTACT_ROLES if role not in found
        ]
    return normalized


def normalize_scoring(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(data)
    scores = [criterion.get("score") or 0 for criterion in data.get("criteria", [])]
    average = sum(scores) / len(scores) if scores else 0.0
    normalized["compositeScore"] = round(average * 10) / 10

    if not normalized.get("decision"):
        recommendation = normalized.get("recommendation")
        normalized["decision"] = (
            recommendation if recommendation in ("GO", "NO_GO") else "CONDITIONAL_GO"
        )
    for list_field in ("blockers", "requiredActions", "confidenceDrivers"):
        normalized.setdefault(list_field, [])
    return normalized


__all__ = [
    "ContactsSection",
    "DeadlinesSection",
    "QuickSummary",
    "RECOMMENDED_CONTACT_ROLES",
    "RequirementsSection",
    "RisksSection",
    "ScoringSection",
    "SectionPayload",
    "dump_payload",
    "normalize_contacts",
    "normalize_deadlines",
    "normalize_risks",
    "normalize_scoring",
]
