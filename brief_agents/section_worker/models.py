"""
Data models shared across the section worker package.
"""

from __future__ import annotations

from typing import Any, Dict, List, TypedDict

from briefing.models.report import Report, SectionName
from briefing.schemas.report import SectionJob
from briefing.services.source_text import SourceText


class SectionState(TypedDict, total=False):
    """State tracked inside the LangGraph workflow."""

    job: SectionJob
    report: Report
    skipped: bool
    source: SourceText
    system_prompt: str
    user_prompt: str
    data: Dict[str, Any]
    top_level_patch: Dict[str, Any]
    unblocked: List[SectionName]


__all__ = ["SectionJob", "SectionState"]
