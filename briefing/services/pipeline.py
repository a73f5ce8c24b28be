"""
Section dependencies and the reduction of section statuses to a report status.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from briefing.core.errors import PrerequisitesNotMet
from briefing.models.report import ALL_SECTIONS, Report, SectionName, SectionStatus

SECTION_PREREQUISITES: Dict[SectionName, Tuple[SectionName, ...]] = {
    SectionName.SCORING: (
        SectionName.SUMMARY,
        SectionName.DEADLINES,
        SectionName.REQUIREMENTS,
        SectionName.CONTACTS,
        SectionName.RISKS,
    ),
}


def prerequisites_of(section: SectionName) -> Tuple[SectionName, ...]:
    return SECTION_PREREQUISITES.get(section, ())


def missing_prerequisites(report: Report, section: SectionName) -> List[str]:
    return [
        required.value
        for required in prerequisites_of(section)
        if report.section_status(required) is not SectionStatus.COMPLETE
    ]


def check_prerequisites(report: Report, section: SectionName) -> None:
    missing = missing_prerequisites(report, section)
    if missing:
        raise PrerequisitesNotMet(section.value, missing)


def compute_overall_status(statuses: Iterable[SectionStatus]) -> SectionStatus:
    """FAILED beats everything, then all-COMPLETE, then any IN_PROGRESS."""
    values = list(statuses)
    if not values:
        return SectionStatus.IDLE
    if SectionStatus.FAILED in values:
        return SectionStatus.FAILED
    if all(value is SectionStatus.COMPLETE for value in values):
        return SectionStatus.COMPLETE
    if SectionStatus.IN_PROGRESS in values:
        return SectionStatus.IN_PROGRESS
    return SectionStatus.IDLE


def overall_status_for(
    report: Report,
    overrides: Optional[Mapping[SectionName, SectionStatus]] = None,
) -> SectionStatus:
    """Reduce all six sections, counting absent ones as IDLE."""
    overrides = overrides or {}
    return compute_overall_status(
        overrides.get(section, report.section_status(section)) for section in ALL_SECTIONS
    )


def unblocked_dependents(report: Report) -> List[SectionName]:
    """IDLE sections with prerequisites whose prerequisites are now all COMPLETE."""
    return [
        section
        for section in SECTION_PREREQUISITES
        if report.section_status(section) is SectionStatus.IDLE
        and not missing_prerequisites(report, section)
    ]


def independent_sections() -> List[SectionName]:
    return [section for section in ALL_SECTIONS if not prerequisites_of(section)]


__all__ = [
    "SECTION_PREREQUISITES",
    "check_prerequisites",
    "compute_overall_status",
    "independent_sections",
    "missing_prerequisites",
    "overall_status_for",
    "prerequisites_of",
    "unblocked_dependents",
]
