"""Directory-backed substitute for S3 text objects."""

from __future__ import annotations

from pathlib import Path


class LocalTextStore:
    """Resolve object keys as paths below a root directory."""

    def __init__(self, root_dir: str) -> None:
        self._root = Path(root_dir).resolve()

    def get_text(self, key: str) -> str:
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise FileNotFoundError(f"Key escapes the documents directory: {key}")
        return path.read_text(encoding="utf-8", errors="replace")


__all__ = ["LocalTextStore"]
