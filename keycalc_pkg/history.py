"""Calculation history stores.

A history store keeps CalculationHistoryEntry records newest first, capped
at HISTORY_LIMIT entries (the oldest are evicted). The engine only appends;
loading and clearing belong to the surrounding application.

- InMemoryHistoryStore: process-lifetime list, used by tests and --no-history
- JsonHistoryStore: JSON file storage that survives process restarts
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from . import config
from .logging_config import get_logger, safe_log
from .types import CalculationHistoryEntry

logger = get_logger("history")


class HistoryStore:
    """Contract for history persistence: append, load_all, clear."""

    def append(self, expression: str, result: str) -> CalculationHistoryEntry:
        raise NotImplementedError

    def load_all(self) -> list[CalculationHistoryEntry]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemoryHistoryStore(HistoryStore):
    """History kept in a list for the lifetime of the process."""

    def __init__(self, limit: int | None = None):
        self.limit = config.HISTORY_LIMIT if limit is None else limit
        self._entries: list[CalculationHistoryEntry] = []

    def append(self, expression: str, result: str) -> CalculationHistoryEntry:
        entry = CalculationHistoryEntry(expression=expression, result=result)
        self._entries.insert(0, entry)
        del self._entries[self.limit :]
        return entry

    def load_all(self) -> list[CalculationHistoryEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()


class JsonHistoryStore(InMemoryHistoryStore):
    """History persisted as a versioned JSON document.

    The file is read once on construction and rewritten atomically after
    every change. I/O failures are logged and the store keeps working from
    memory.
    """

    def __init__(self, path: str | Path | None = None, limit: int | None = None):
        super().__init__(limit)
        self.path = Path(path) if path is not None else config.HISTORY_FILE
        self._entries = self._load()

    def _load(self) -> list[CalculationHistoryEntry]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            safe_log("history", "warning", "Failed to load history: %s, starting empty", e)
            return []

        if not isinstance(data, dict) or data.get("version") != config.HISTORY_VERSION:
            logger.info("History version mismatch, starting empty")
            return []

        entries: list[CalculationHistoryEntry] = []
        for item in data.get("entries") or []:
            try:
                entries.append(CalculationHistoryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed history entry %r: %s", item, e)
        logger.debug("Loaded %d history entries from %s", len(entries), self.path)
        return entries[: self.limit]

    def _save(self) -> None:
        document: dict[str, Any] = {
            "version": config.HISTORY_VERSION,
            "entries": [entry.to_dict() for entry in self._entries],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write atomically (write to temp file then rename)
            temp_file = self.path.with_suffix(".tmp")
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
            temp_file.replace(self.path)
        except (OSError, TypeError) as e:
            safe_log("history", "warning", "Failed to save history: %s", e)

    def append(self, expression: str, result: str) -> CalculationHistoryEntry:
        entry = super().append(expression, result)
        self._save()
        return entry

    def clear(self) -> None:
        super().clear()
        self._save()
