"""Shared plumbing for the JSON-file repositories.

Every repository keeps one JSON document on disk. Reads and
read-modify-write cycles hold a per-file lock, so repositories stay safe
when the domain services call them from several worker threads. Writes go
to a temporary file first and replace the old file in one step.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any


class JsonFileStore:

    def __init__(self, file_path: Path, empty: Any) -> None:
        self._file_path = file_path
        self._empty = empty
        self._io_lock = threading.RLock()
        self._ensure_file()

    @property
    def file_path(self) -> Path:
        return self._file_path

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> Any:
        with self._io_lock:
            return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, data: Any) -> None:
        with self._io_lock:
            tmp = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
            os.replace(tmp, self._file_path)

    def _update_raw(self, change: Callable[[Any], Any]) -> Any:
        """Load, apply *change* in place, persist. Returns what *change* returned."""
        with self._io_lock:
            data = self._load_raw()
            result = change(data)
            self._persist_raw(data)
            return result

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(json.dumps(self._empty), encoding="utf-8")
