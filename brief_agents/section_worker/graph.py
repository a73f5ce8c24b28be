"""
LangGraph workflow computing one brief section per job.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from langgraph.graph import END, START, StateGraph

from briefing.models.report import SectionName, SectionStatus
from briefing.services.pipeline import (
    check_prerequisites,
    overall_status_for,
    prerequisites_of,
    unblocked_dependents,
)
from brief_agents.section_worker.models import SectionState
from brief_agents.section_worker.prompts import build_system_prompt, build_user_prompt
from brief_agents.section_worker.sections import SCORING_TOP_LEVEL_FIELDS, get_definition
from brief_agents.section_worker.tools import SectionTools

logger = logging.getLogger(__name__)


async def _load_report(state: SectionState, tools: SectionTools) -> SectionState:
    job = state["job"]
    state["report"] = await tools.get_report(job.report_id)
    return state


def _check_cache(state: SectionState) -> SectionState:
    """Skip redelivered jobs whose result is already stored for the same inputs."""
    job = state["job"]
    record = state["report"].section(job.section)
    state["skipped"] = (
        record.status is SectionStatus.COMPLETE and record.input_hash == job.input_hash
    )
    if state["skipped"]:
        logger.info(
            "Section %s/%s already complete for this input; skipping",
            job.report_id,
            job.section.value,
        )
    return state


def _route_after_cache(state: SectionState) -> str:
    return "skip" if state.get("skipped") else "compute"


def _gate(state: SectionState) -> SectionState:
    check_prerequisites(state["report"], state["job"].section)
    return state


async def _mark_in_progress(state: SectionState, tools: SectionTools) -> SectionState:
    job = state["job"]
    await tools.mark_in_progress(job.report_id, job.section, job.input_hash)
    return state


async def _load_source(state: SectionState, tools: SectionTools) -> SectionState:
    state["source"] = await tools.load_source_text(state["report"])
    return state


def _build_prompt(state: SectionState) -> SectionState:
    section = state["job"].section
    report = state["report"]
    prior: Dict[str, Any] = {
        required.value: report.section(required).data or {}
        for required in prerequisites_of(section)
    }
    state["system_prompt"] = build_system_prompt(section.value)
    state["user_prompt"] = build_user_prompt(section.value, state["source"].text, prior)
    return state


async def _invoke_model(state: SectionState, tools: SectionTools) -> SectionState:
    state["data"] = await tools.generate_section(
        get_definition(state["job"].section),
        system_prompt=state["system_prompt"],
        user_prompt=state["user_prompt"],
    )
    return state


async def _mark_complete(state: SectionState, tools: SectionTools) -> SectionState:
    job = state["job"]
    data = state["data"]
    # Re-read so the overall status reflects sections finished meanwhile.
    report = await tools.get_report(job.report_id)
    patch: Dict[str, Any] = {
        "status": overall_status_for(report, {job.section: SectionStatus.COMPLETE}).value
    }
    if job.section is SectionName.SCORING:
        patch.update({field: data.get(field) for field in SCORING_TOP_LEVEL_FIELDS})

    await tools.mark_complete(job.report_id, job.section, data, patch)

    # Sections completed concurrently with this one are only visible after our write.
    completed = await tools.get_report(job.report_id)
    status = overall_status_for(completed)
    if completed.status is not status:
        await tools.set_overall_status(job.report_id, status)
        completed = completed.model_copy(update={"status": status})
    state["report"] = completed
    state["top_level_patch"] = patch
    state["unblocked"] = unblocked_dependents(completed)
    return state


def create_section_graph(tools: SectionTools) -> Any:
    """Compile and return the section LangGraph workflow."""
    graph = StateGraph(SectionState)

    async def load_report_node(state: SectionState) -> SectionState:
        return await _load_report(state, tools)

    async def mark_in_progress_node(state: SectionState) -> SectionState:
        return await _mark_in_progress(state, tools)

    async def load_source_node(state: SectionState) -> SectionState:
        return await _load_source(state, tools)

    async def invoke_model_node(state: SectionState) -> SectionState:
        return await _invoke_model(state, tools)

    async def mark_complete_node(state: SectionState) -> SectionState:
        return await _mark_complete(state, tools)

    graph.add_node("load_report", load_report_node)
    graph.add_node("check_cache", _check_cache)
    graph.add_node("gate", _gate)
    graph.add_node("mark_in_progress", mark_in_progress_node)
    graph.add_node("load_source", load_source_node)
    graph.add_node("build_prompt", _build_prompt)
    graph.add_node("invoke_model", invoke_model_node)
    graph.add_node("mark_complete", mark_complete_node)

    graph.add_edge(START, "load_report")
    graph.add_edge("load_report", "check_cache")
    graph.add_conditional_edges(
        "check_cache", _route_after_cache, {"skip": END, "compute": "gate"}
    )
    graph.add_edge("gate", "mark_in_progress")
    graph.add_edge("mark_in_progress", "load_source")
    graph.add_edge("load_source", "build_prompt")
    graph.add_edge("build_prompt", "invoke_model")
    graph.add_edge("invoke_model", "mark_complete")
    graph.add_edge("mark_complete", END)
    return graph.compile()


__all__ = ["create_section_graph"]
