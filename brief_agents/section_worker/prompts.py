"""Prompt text for each brief section."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping

_BASE_SYSTEM = (
    "You are a senior capture manager reviewing a government solicitation for a "
    "bid/no-bid decision. Use only facts stated in the solicitation. When a value is "
    "not stated, omit it or use null rather than guessing. Respond with a single JSON "
    "object and nothing else: no markdown fences, no commentary."
)

SECTION_INSTRUCTIONS: Dict[str, str] = {
    "summary": (
        "Produce a quick summary of the opportunity. JSON keys: title, agency, office, "
        "solicitationNumber, naics, contractType, setAside, placeOfPerformance, "
        "estimatedValueUsd, periodOfPerformance, summary (2-4 sentences), evidence "
        "(list of {source, snippet})."
    ),
    "deadlines": (
        "List every dated milestone (questions due, site visit, proposal due, etc.). "
        "JSON keys: deadlines (list of {type, label, dateTimeIso, rawText, timezone, "
        "notes, evidence}), hasSubmissionDeadline, submissionDeadlineIso, warnings."
    ),
    "requirements": (
        "Extract the requirements an offeror must meet. JSON keys: overview, "
        "requirements (list of {category, requirement, mustHave, evidence}), "
        "deliverables, evaluationFactors, submissionCompliance ({format, "
        "requiredVolumes, attachmentsAndForms})."
    ),
    "contacts": (
        "List the government points of contact. JSON keys: contacts (list of {role, "
        "name, title, email, phone, organization, notes, evidence}) where role is one "
        "of CONTRACTING_OFFICER, CONTRACT_SPECIALIST, TECHNICAL_POC, PROGRAM_MANAGER, "
        "SMALL_BUSINESS_SPECIALIST, PROCUREMENT_POC, SUBCONTRACTING_POC, "
        "GENERAL_INQUIRY, OTHER; missingRecommendedRoles."
    ),
    "risks": (
        "Identify bid risks. JSON keys: risks and redFlags (lists of {severity: LOW|"
        "MEDIUM|HIGH|CRITICAL, flag, whyItMatters, mitigation, impactsScore, "
        "evidence}), incumbentInfo ({knownIncumbent, incumbentName, recompete, notes})."
    ),
    "scoring": (
        "Score the opportunity using the solicitation and the completed analysis "
        "sections. JSON keys: criteria (list of {name, score 1-5, rationale, gaps}), "
        "recommendation (GO|NO_GO|NEEDS_REVIEW), confidence (0-100), "
        "summaryJustification, decision (GO|CONDITIONAL_GO|NO_GO), decisionRationale, "
        "blockers, requiredActions, confidenceExplanation, confidenceDrivers (list of "
        "{factor, direction: UP|DOWN})."
    ),
}


def build_system_prompt(section: str) -> str:
    return f"{_BASE_SYSTEM}\n\n{SECTION_INSTRUCTIONS[section]}"


def build_user_prompt(
    section: str,
    solicitation_text: str,
    prior_sections: Mapping[str, Any] | None = None,
) -> str:
    """Solicitation text, preceded by earlier section results when scoring."""
    parts = []
    for name, data in (prior_sections or {}).items():
        parts.append(f"### {name.upper()} ANALYSIS\n{json.dumps(data, ensure_ascii=False)}")
    parts.append(f"### SOLICITATION\n{solicitation_text}")
    parts.append(f"Return the {section} JSON object now.")
    return "\n\n".join(parts)


__all__ = ["SECTION_INSTRUCTIONS", "build_system_prompt", "build_user_prompt"]
