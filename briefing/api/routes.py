"""
FastAPI routes for the solicitation brief pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException

from briefing.core.config import AppSettings
from briefing.core.errors import PrerequisitesNotMet, ReportNotFound
from briefing.dependencies import (
    get_app_settings,
    get_section_dispatcher,
    get_section_store,
)
from briefing.models.report import ALL_SECTIONS, SectionName
from briefing.schemas import (
    DispatchAllResult,
    DispatchRequest,
    DispatchResult,
    ReportView,
    SectionView,
)
from briefing.services import SectionDispatcher, SectionStore
from briefing.services.pipeline import overall_status_for

router = APIRouter()
logger = logging.getLogger(__name__)


def _not_found(exc: ReportNotFound) -> HTTPException:
    return HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=exc.message)


def _conflict(exc: PrerequisitesNotMet) -> HTTPException:
    return HTTPException(
        status_code=HTTPStatus.CONFLICT,
        detail={"error": exc.kind.value, "message": exc.message, "missing": exc.missing},
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "backend": settings.pipeline.backend}


@router.post(
    "/reports/{report_id}/sections/{section}",
    status_code=HTTPStatus.ACCEPTED,
    response_model=DispatchResult,
    response_model_by_alias=True,
)
async def dispatch_section(
    report_id: str,
    section: SectionName,
    dispatcher: Annotated[SectionDispatcher, Depends(get_section_dispatcher)],
    request: Annotated[DispatchRequest | None, Body()] = None,
) -> DispatchResult:
    """Queue one section, or reuse its stored result when the inputs are unchanged."""
    force = request.force if request else False
    try:
        return await asyncio.to_thread(dispatcher.dispatch, report_id, section, force=force)
    except ReportNotFound as exc:
        raise _not_found(exc) from exc
    except PrerequisitesNotMet as exc:
        raise _conflict(exc) from exc


@router.post(
    "/reports/{report_id}/sections",
    status_code=HTTPStatus.ACCEPTED,
    response_model=DispatchAllResult,
    response_model_by_alias=True,
)
async def dispatch_all_sections(
    report_id: str,
    dispatcher: Annotated[SectionDispatcher, Depends(get_section_dispatcher)],
    request: Annotated[DispatchRequest | None, Body()] = None,
) -> DispatchAllResult:
    force = request.force if request else False
    try:
        return await asyncio.to_thread(dispatcher.dispatch_all, report_id, force=force)
    except ReportNotFound as exc:
        raise _not_found(exc) from exc


@router.get(
    "/reports/{report_id}",
    response_model=ReportView,
    response_model_by_alias=True,
)
async def get_report(
    report_id: str,
    store: Annotated[SectionStore, Depends(get_section_store)],
) -> ReportView:
    """Return the report with every section and the reduced overall status."""
    try:
        report = await asyncio.to_thread(store.get_report, report_id)
    except ReportNotFound as exc:
        raise _not_found(exc) from exc

    sections = {
        section.value: SectionView.model_validate(report.section(section).model_dump())
        for section in ALL_SECTIONS
    }
    return ReportView(
        report_id=report.report_id,
        project_id=report.project_id,
        opportunity_id=report.opportunity_id,
        status=overall_status_for(report),
        sections=sections,
        composite_score=report.composite_score,
        recommendation=report.recommendation,
        decision=report.decision,
        confidence=report.confidence,
        created_at=report.created_at,
        updated_at=report.updated_at,
    )


__all__ = ["router"]
