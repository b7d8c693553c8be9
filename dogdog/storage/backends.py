from __future__ import annotations

"""Synchronous string key-value backends used by ProgressStore."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...

    def clear(self) -> None: ...


class MemoryBackend:
    """Dict-backed backend; nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class JsonFileBackend:
    """All keys in one JSON object on disk.

    Every write replaces the file atomically (temp file in the same directory,
    then os.replace), so a crash leaves either the old or the new document.
    An unreadable file is logged, moved aside to `<name>.corrupt` and treated
    as empty.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is None:
            data: Dict[str, str] = {}
            if self.path.exists():
                try:
                    with self.path.open("r", encoding="utf-8") as f:
                        raw = json.load(f)
                    if not isinstance(raw, dict):
                        raise ValueError("save file is not a JSON object")
                    data = {str(k): str(v) for k, v in raw.items()}
                except (OSError, ValueError, RecursionError) as e:
                    self._quarantine(e)
                    data = {}
            self._data = data
        return self._data

    def _quarantine(self, error: BaseException) -> None:
        aside = self.path.with_name(self.path.name + ".corrupt")
        logger.warning("Unreadable save file %s (%s); moving it to %s", self.path, error, aside)
        try:
            os.replace(self.path, aside)
        except OSError as e:
            logger.warning("Could not move %s aside: %s", self.path, e)

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data or {}, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._load()[key] = value
            self._flush()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._load().pop(key, None) is not None:
                self._flush()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._load())

    def clear(self) -> None:
        with self._lock:
            self._data = {}
            self._flush()
