"""Tool abstractions used by the section worker."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping, Optional

from briefing.models.report import Report, SectionName, SectionStatus
from briefing.services import ModelInvoker, SectionStore, SourceText, SourceTextLoader
from brief_agents.section_worker.sections import SectionDefinition


class SectionTools:
    """Facade over the store, the source loader, and the model.

    Store and object-storage calls block, so they run in a worker thread.
    """

    def __init__(
        self,
        store: SectionStore,
        source_loader: SourceTextLoader,
        invoker: ModelInvoker,
        model_name: Optional[str] = None,
    ) -> None:
        self._store = store
        self._source_loader = source_loader
        self._invoker = invoker
        self._model_name = model_name

    async def get_report(self, report_id: str) -> Report:
        return await asyncio.to_thread(self._store.get_report, report_id)

    async def mark_in_progress(
        self, report_id: str, section: SectionName, input_hash: str
    ) -> None:
        await asyncio.to_thread(self._store.mark_in_progress, report_id, section, input_hash)

    async def mark_complete(
        self,
        report_id: str,
        section: SectionName,
        data: Dict[str, Any],
        top_level_patch: Mapping[str, Any],
    ) -> None:
        await asyncio.to_thread(
            self._store.mark_complete, report_id, section, data, top_level_patch
        )

    async def set_overall_status(self, report_id: str, status: SectionStatus) -> None:
        await asyncio.to_thread(self._store.set_overall_status, report_id, status)

    async def mark_failed(self, report_id: str, section: SectionName, error: object) -> None:
        await asyncio.to_thread(self._store.mark_failed, report_id, section, error)

    async def load_source_text(self, report: Report) -> SourceText:
        return await asyncio.to_thread(self._source_loader.load, report)

    async def generate_section(
        self,
        definition: SectionDefinition,
        *,
        system_prompt: str,
        user_prompt: str,
    ) -> Dict[str, Any]:
        """Run the model for one section and return the normalized payload."""
        return await self._invoker.invoke_json(
            model_id=self._model_name,
            system=system_prompt,
            user=user_prompt,
            output_schema=definition.schema,
            max_tokens=definition.max_tokens,
            temperature=definition.temperature,
            normalizer=definition.normalizer,
        )


__all__ = ["SectionTools"]
