"""Key-value persistence and the profile load/save contract."""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol

from childcost_sim_sg.params import Profile, ProfileValidationError, validate_profile

logger = logging.getLogger(__name__)

PROFILE_KEY_PREFIX = "profile_"


class KeyValueStore(Protocol):
    """String keys mapped to JSON-serialisable values."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, used by tests and one-shot CLI runs."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStore:
    """Store backed by a single JSON file, rewritten on every change."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        tmp.replace(self.path)

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


class ProfileRepository:
    """Loads and saves household profiles through a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load(self, profile_id: str = "default") -> Profile | None:
        raw = self.store.get(PROFILE_KEY_PREFIX + profile_id)
        if raw is None:
            return None
        try:
            return Profile.from_dict(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Stored profile %r is malformed: %s", profile_id, e)
            return None

    def save(self, profile: Profile) -> None:
        errors = validate_profile(profile)
        if errors:
            raise ProfileValidationError(errors)
        self.store.set(PROFILE_KEY_PREFIX + profile.profile_id, profile.to_dict())

    def delete(self, profile_id: str) -> None:
        self.store.remove(PROFILE_KEY_PREFIX + profile_id)
