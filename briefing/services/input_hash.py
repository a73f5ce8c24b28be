"""Deterministic fingerprint of a section's computation inputs."""

from __future__ import annotations

import hashlib
from typing import Iterable, Optional

from briefing.models.report import SectionName


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def build_section_input_hash(
    report_id: str,
    section: SectionName | str,
    source_text_keys: Optional[Iterable[str]],
) -> str:
    """Fingerprint ``reportId:section:sortedJoinedKeys``.

    Key order is irrelevant; adding, removing, or renaming a key changes the digest.
    """
    section_name = section.value if isinstance(section, SectionName) else section
    keys = ",".join(sorted(key for key in (source_text_keys or ()) if key))
    return sha256_hex(f"{report_id}:{section_name}:{keys}")


__all__ = ["build_section_input_hash", "sha256_hex"]
