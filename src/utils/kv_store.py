# -*- coding: utf-8 -*-
"""Durable key-value stores for local operator state.

The checklist persists one flag per item id and must survive a restart
without a server round trip. Stores implement a four-call interface so the
engine can run against a JSON file in production and a dict in tests.

Usage:
    store = JsonFileStore(Path("data/checklist.json"))
    store.set("pop_check_A_1", "true")
    store.keys_with_prefix("pop_check_")
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from src.utils import ensure_dir

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String key-value store with prefix enumeration."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, overwriting any previous one."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""

    @abstractmethod
    def keys_with_prefix(self, prefix: str) -> List[str]:
        """List every stored key starting with prefix."""


class InMemoryStore(KeyValueStore):
    """Dict-backed store. State is lost with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys_with_prefix(self, prefix: str) -> List[str]:
        return [k for k in self._data if k.startswith(prefix)]


class JsonFileStore(KeyValueStore):
    """Store persisted as a flat JSON object, rewritten on every mutation.

    Last write wins: two processes sharing one file overwrite each other.
    """

    def __init__(self, path: Path):
        """Initialize store, loading existing entries if the file exists.

        Args:
            path: JSON file location. Parent directories are created on write.
        """
        self.path = Path(path)
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring non-object store file {self.path}")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        ensure_dir(self.path.parent)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def keys_with_prefix(self, prefix: str) -> List[str]:
        return [k for k in self._data if k.startswith(prefix)]
