try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from briefing.core.errors import ModelOutputSchemaInvalid
from briefing.schemas.sections import (
    ContactsSection,
    DeadlinesSection,
    RisksSection,
    ScoringSection,
    normalize_contacts,
    normalize_deadlines,
    normalize_risks,
    normalize_scoring,
)
from briefing.services.model_invoker import validate_payload


def _validate(value, schema, normalizer=None):
    return validate_payload(value, schema, raw_output="raw", normalizer=normalizer)


def test_risks_default_impact_from_severity() -> None:
    data = _validate(
        {
            "risks": [
                {"severity": "HIGH", "flag": "Tight transition window"},
                {"severity": "MEDIUM", "flag": "Unclear staffing levels"},
                {"severity": "LOW", "flag": "Page limit is short", "impactsScore": True},
            ],
            "redFlags": [{"severity": "CRITICAL", "flag": "Mandatory facility clearance"}],
        },
        RisksSection,
        normalize_risks,
    )

    assert [risk["impactsScore"] for risk in data["risks"]] == [True, False, True]
    assert data["redFlags"][0]["impactsScore"] is True
    assert data["incumbentInfo"]["knownIncumbent"] is False


def test_deadlines_derive_submission_flag() -> None:
    with_date = _validate(
        {
            "deadlines": [{"label": "Proposals due", "dateTimeIso": "2026-01-15T17:00:00Z"}],
            "submissionDeadlineIso": "2026-01-15T17:00:00Z",
        },
        DeadlinesSection,
        normalize_deadlines,
    )
    without_date = _validate(
        {"deadlines": [{"label": "Questions due", "rawText": "two weeks after release"}]},
        DeadlinesSection,
        normalize_deadlines,
    )
    explicit = _validate(
        {"deadlines": [{"label": "Proposals due"}], "hasSubmissionDeadline": True},
        DeadlinesSection,
        normalize_deadlines,
    )

    assert with_date["hasSubmissionDeadline"] is True
    assert without_date["hasSubmissionDeadline"] is False
    assert explicit["hasSubmissionDeadline"] is True


def test_deadlines_require_at_least_one_entry() -> None:
    with pytest.raises(ModelOutputSchemaInvalid):
        _validate({"deadlines": []}, DeadlinesSection, normalize_deadlines)


def test_contacts_report_missing_recommended_roles() -> None:
    data = _validate(
        {
            "contacts": [
                {"role": "CONTRACTING_OFFICER", "name": "Pat Lee"},
                {"role": "TECHNICAL_POC", "email": "tech@agency.gov"},
            ]
        },
        ContactsSection,
        normalize_contacts,
    )
    assert data["missingRecommendedRoles"] == [
        "CONTRACT_SPECIALIST",
        "SMALL_BUSINESS_SPECIALIST",
    ]


def test_contacts_reject_unknown_roles() -> None:
    with pytest.raises(ModelOutputSchemaInvalid):
        _validate({"contacts": [{"role": "JANITOR"}]}, ContactsSection, normalize_contacts)


@pytest.mark.parametrize(
    ("scores", "expected"),
    [([4, 3, 5], 4.0), ([4, 3], 3.5), ([1, 2, 2], 1.7), ([], 0.0)],
)
def test_scoring_composite_is_rounded_mean(scores, expected) -> None:
    data = _validate(
        {"criteria": [{"name": f"c{i}", "score": score} for i, score in enumerate(scores)]},
        ScoringSection,
        normalize_scoring,
    )
    assert data["compositeScore"] == expected


@pytest.mark.parametrize(
    ("recommendation", "decision"),
    [("GO", "GO"), ("NO_GO", "NO_GO"), ("NEEDS_REVIEW", "CONDITIONAL_GO"), (None, "CONDITIONAL_GO")],
)
def test_scoring_decision_defaults_from_recommendation(recommendation, decision) -> None:
    payload = {"criteria": [{"name": "fit", "score": 3}], "compositeScore": 99}
    if recommendation:
        payload["recommendation"] = recommendation
    data = _validate(payload, ScoringSection, normalize_scoring)

    assert data["decision"] == decision
    assert data["compositeScore"] == 3.0
    assert data["blockers"] == []
    assert data["requiredActions"] == []
    assert data["confidenceDrivers"] == []


def test_scoring_keeps_explicit_decision() -> None:
    data = _validate(
        {"criteria": [], "recommendation": "GO", "decision": "CONDITIONAL_GO", "blockers": ["OCI"]},
        ScoringSection,
        normalize_scoring,
    )
    assert data["decision"] == "CONDITIONAL_GO"
    assert data["blockers"] == ["OCI"]


def test_scoring_rejects_out_of_range_scores() -> None:
    with pytest.raises(ModelOutputSchemaInvalid):
        _validate({"criteria": [{"name": "fit", "score": 9}]}, ScoringSection, normalize_scoring)
