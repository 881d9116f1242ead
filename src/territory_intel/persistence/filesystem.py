"""File-based persistence helpers for whole-document JSON stores."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..config import settings

logger = logging.getLogger(__name__)


class FileStorage:
    """Thin wrapper around the data root for reading and writing JSON documents."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()

    def resolve(self, path: Path | str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    def read_json(self, path: Path | str, default: Any) -> Any:
        """Load a JSON document, returning ``default`` when it is missing.

        Malformed documents raise ``ValueError``; callers decide whether to degrade.
        """
        target = self.resolve(path)
        try:
            with target.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except FileNotFoundError:
            return default

    def write_json(self, path: Path | str, data: Any, *, indent: int = 2) -> None:
        """Rewrite the whole document, replacing it atomically."""
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=indent)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def stat(self, path: Path | str) -> os.stat_result | None:
        try:
            return self.resolve(path).stat()
        except OSError:
            return None
