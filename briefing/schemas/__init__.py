"""Public schema exports."""

from .report import (
    DispatchAllResult,
    DispatchRequest,
    DispatchResult,
    ReportView,
    SectionJob,
    SectionView,
)
from .sections import (
    ContactsSection,
    DeadlinesSection,
    QuickSummary,
    RequirementsSection,
    RisksSection,
    ScoringSection,
    SectionPayload,
)

__all__ = [
    "ContactsSection",
    "DeadlinesSection",
    "DispatchAllResult",
    "DispatchRequest",
    "DispatchResult",
    "QuickSummary",
    "ReportView",
    "RequirementsSection",
    "RisksSection",
    "ScoringSection",
    "SectionJob",
    "SectionPayload",
    "SectionView",
]
