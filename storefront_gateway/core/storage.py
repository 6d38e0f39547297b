"""
Durable key-value state shared by the session resolver and the health monitor.

Every write replaces whole values; nothing is patched in place. The file-backed
store rewrites its JSON document through a temporary file and ``os.replace``,
so a single ``set`` or a multi-key ``delete_many`` lands completely or not at all.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Protocol

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "ocop_auth_token"
PROFILE_KEY = "ocop_user_profile"
BANNER_DISMISSED_KEY = "ocop_backend_banner_dismissed_at"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def delete_many(self, keys: Iterable[str]) -> None: ...


class MemoryStore:
    """Process-local store. Contents disappear with the process."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        self.delete_many([key])

    def delete_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)


class JsonFileStore:
    """Store persisted as a single JSON object on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        self.delete_many([key])

    def delete_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            data = self._read()
            present = [key for key in keys if key in data]
            if not present:
                return
            for key in present:
                del data[key]
            self._write(data)

    def _read(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as state_file:
                data = json.load(state_file)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            logger.warning("State file %s is not valid JSON, starting empty: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("State file %s does not hold a JSON object, starting empty", self.path)
            return {}
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                json.dump(data, tmp_file, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
