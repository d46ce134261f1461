from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import threading
from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from absence_bot.errors import CacheUnavailable

logger = logging.getLogger(__name__)

# Serializes read-modify-write cycles on registry files across executor threads.
_write_lock = threading.Lock()


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError


def load_registry(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Registry %s is not valid JSON, starting empty", path)
        return {}
    return data if isinstance(data, dict) else {}


def save_registry(path: Path, registry: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f"{path.name}.", suffix=".tmp", delete=False
    ) as fh:
        json.dump(registry, fh, ensure_ascii=False, indent=2)
    try:
        os.replace(fh.name, path)
    except OSError:
        Path(fh.name).unlink(missing_ok=True)
        raise


def read_value(path: Path, key: str) -> Optional[str]:
    value = load_registry(path).get(key)
    return value if isinstance(value, str) else None


def write_value(path: Path, key: str, value: str) -> None:
    with _write_lock:
        registry = load_registry(path)
        registry[key] = value
        save_registry(path, registry)


class JsonKeyValueStore:
    """String key-value store kept in a single JSON object file.

    File access runs in the default executor so the event loop never blocks.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(read_value, self._path, key))
        except OSError as exc:
            raise CacheUnavailable(f"Could not read {self._path}") from exc

    async def set(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            async with self._lock:
                await loop.run_in_executor(None, partial(write_value, self._path, key, value))
        except OSError as exc:
            raise CacheUnavailable(f"Could not write {self._path}") from exc


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


__all__ = [
    "JsonKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "load_registry",
    "read_value",
    "save_registry",
    "write_value",
]
