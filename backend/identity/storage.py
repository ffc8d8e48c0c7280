from __future__ import annotations

import json
import threading
import time
from http.cookiejar import CookieJar, FileCookieJar
from pathlib import Path
from typing import Dict, Optional, Protocol

from requests.cookies import RequestsCookieJar, create_cookie

ATTENDEE_ID_KEY = "demo_day_attendee_id"
COOKIE_NAME = "demo_day_aid"
COOKIE_MAX_AGE = 365 * 24 * 60 * 60  # 1 year in seconds
COOKIE_DOMAIN = "demo-day.local"


class KeyValueStore(Protocol):
    """Minimal capability the identity resolver needs from a storage tier.

    Implementations may raise from either method; the resolver treats any
    failure as "tier unavailable" and moves on.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store. Also the last-resort tier in tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """Durable key/value store kept as a small JSON object on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._load().get(key)
        return str(value) if value else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            try:
                data = self._load()
            except ValueError:
                data = {}
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self.path)


class CookieStore:
    """Cookie-backed tier.

    Keys are mapped to cookie names (the attendee id lives in ``demo_day_aid``).
    When the jar is a ``FileCookieJar`` it is saved after every write so the
    value survives restarts.
    """

    def __init__(
        self,
        jar: Optional[CookieJar] = None,
        *,
        domain: str = COOKIE_DOMAIN,
        max_age: int = COOKIE_MAX_AGE,
        names: Optional[Dict[str, str]] = None,
    ) -> None:
        self.jar = jar if jar is not None else RequestsCookieJar()
        self.domain = domain
        self.max_age = max_age
        self.names = names if names is not None else {ATTENDEE_ID_KEY: COOKIE_NAME}

    def _name(self, key: str) -> str:
        return self.names.get(key, key)

    def get(self, key: str) -> Optional[str]:
        name = self._name(key)
        now = time.time()
        for cookie in self.jar:
            if cookie.name != name:
                continue
            if cookie.expires is not None and cookie.expires <= now:
                continue
            return cookie.value or None
        return None

    def set(self, key: str, value: str) -> None:
        cookie = create_cookie(
            self._name(key),
            value,
            domain=self.domain,
            path="/",
            expires=int(time.time()) + self.max_age,
            rest={"SameSite": "Lax"},
        )
        self.jar.set_cookie(cookie)
        if isinstance(self.jar, FileCookieJar) and self.jar.filename:
            self.jar.save(ignore_discard=True, ignore_expires=False)


__all__ = [
    "ATTENDEE_ID_KEY",
    "COOKIE_NAME",
    "COOKIE_MAX_AGE",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "CookieStore",
]
