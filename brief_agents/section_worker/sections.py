"""
Per-section output schema, normalizer, and generation limits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Type

from briefing.models.report import SectionName
from briefing.schemas.sections import (
    ContactsSection,
    DeadlinesSection,
    QuickSummary,
    RequirementsSection,
    RisksSection,
    ScoringSection,
    SectionPayload,
    normalize_contacts,
    normalize_deadlines,
    normalize_risks,
    normalize_scoring,
)
from briefing.services.model_invoker import Normalizer


@dataclass(frozen=True, slots=True)
class SectionDefinition:
    name: SectionName
    schema: Type[SectionPayload]
    max_tokens: int
    temperature: float
    normalizer: Optional[Normalizer] = None


SECTION_DEFINITIONS: Dict[SectionName, SectionDefinition] = {
    definition.name: definition
    for definition in (
        SectionDefinition(SectionName.SUMMARY, QuickSummary, 1200, 0.2),
        SectionDefinition(
            SectionName.DEADLINES, DeadlinesSection, 4000, 0.1, normalize_deadlines
        ),
        SectionDefinition(SectionName.REQUIREMENTS, RequirementsSection, 5000, 0.2),
        SectionDefinition(SectionName.CONTACTS, ContactsSection, 1400, 0.1, normalize_contacts),
        SectionDefinition(SectionName.RISKS, RisksSection, 1800, 0.2, normalize_risks),
        SectionDefinition(SectionName.SCORING, ScoringSection, 5000, 0.2, normalize_scoring),
    )
}

# Report-level attributes copied from the scoring payload on completion.
SCORING_TOP_LEVEL_FIELDS = ("compositeScore", "recommendation", "decision", "confidence")


def get_definition(section: SectionName) -> SectionDefinition:
    return SECTION_DEFINITIONS[section]


__all__ = [
    "SCORING_TOP_LEVEL_FIELDS",
    "SECTION_DEFINITIONS",
    "SectionDefinition",
    "get_definition",
]
