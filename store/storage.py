"""Client-side key/value storage and persisted user preferences."""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """String-keyed, string-valued storage (local or session scope)."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> Iterable[str]:
        pass


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> Iterable[str]:
        return list(self._items)


class JsonFileStorage(KeyValueStorage):
    """Storage backed by a single JSON object on disk, rewritten on every change."""

    def __init__(self, path):
        self.path = Path(path)
        self._items: Dict[str, str] = {}
        if self.path.exists():
            try:
                self._items = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Discarding unreadable storage file %s: %s", self.path, exc)
                self._items = {}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._items), encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._flush()

    def keys(self) -> Iterable[str]:
        return list(self._items)


# ── Preferences ───────────────────────────────────────────────────────────────

CLOCK_FORMAT_KEY = "clock-format"
TIMEZONE_KEY = "user-timezone"
LANGUAGE_KEY = "app-language"

CLOCK_FORMATS = ("12h", "24h")
LANGUAGES = ("en", "ar", "es", "fr")


class Preferences:
    """Display preferences persisted in local storage. Bad stored values read as defaults."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    @property
    def clock_format(self) -> str:
        value = self.storage.get_item(CLOCK_FORMAT_KEY)
        return value if value in CLOCK_FORMATS else "12h"

    @clock_format.setter
    def clock_format(self, value: str) -> None:
        if value not in CLOCK_FORMATS:
            raise ValueError(f"Unsupported clock format: {value}")
        self.storage.set_item(CLOCK_FORMAT_KEY, value)

    @property
    def timezone(self) -> str:
        value = self.storage.get_item(TIMEZONE_KEY)
        if value and _is_valid_timezone(value):
            return value
        return "UTC"

    @timezone.setter
    def timezone(self, value: str) -> None:
        if not _is_valid_timezone(value):
            raise ValueError(f"Unknown timezone: {value}")
        self.storage.set_item(TIMEZONE_KEY, value)

    @property
    def language(self) -> str:
        value = self.storage.get_item(LANGUAGE_KEY)
        return value if value in LANGUAGES else "en"

    @language.setter
    def language(self, value: str) -> None:
        if value not in LANGUAGES:
            raise ValueError(f"Unsupported language: {value}")
        self.storage.set_item(LANGUAGE_KEY, value)

    @property
    def is_rtl(self) -> bool:
        return self.language == "ar"


def _is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True
