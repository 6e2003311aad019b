from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol


logger = logging.getLogger(__name__)


class SessionStorage(Protocol):
    def load(self) -> dict | None:
        ...

    def save(self, data: dict) -> None:
        ...

    def clear(self) -> None:
        ...


class MemorySessionStorage:
    def __init__(self, data: dict | None = None):
        self._data = dict(data) if data else None

    def load(self) -> dict | None:
        return dict(self._data) if self._data else None

    def save(self, data: dict) -> None:
        self._data = dict(data)

    def clear(self) -> None:
        self._data = None


class FileSessionStorage:
    def __init__(self, path: str | Path):
        self._path = Path(path)

    def load(self) -> dict | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("session_storage: unreadable path=%s error=%s", self._path, exc)
            return None
        return data if isinstance(data, dict) else None

    def save(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data), encoding="utf-8")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
