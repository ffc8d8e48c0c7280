from __future__ import annotations

import logging
import threading
import uuid
from http.cookiejar import LoadError, LWPCookieJar
from pathlib import Path
from typing import Callable, Optional, Sequence

from pydantic import BaseModel

from config import settings
from .fingerprint import DeviceProfile, collect_device_profile, compute_fingerprint
from .storage import ATTENDEE_ID_KEY, CookieStore, JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)


class AttendeeIdentity(BaseModel):
    attendee_id: str
    fingerprint: str


class IdentityResolver:
    """Resolve a durable pseudonymous attendee id plus a device fingerprint.

    ``stores`` are tried in priority order. The first tier holding an id wins
    and the id is mirrored into every other tier; if none holds one, a fresh
    UUID4 is written to all of them. A tier that raises is skipped. With no
    working tier the id lives only as long as this resolver (a new one per
    process), which is accepted.

    The fingerprint is computed once and cached on the instance; it is never
    written to any store. ``resolve`` never raises.
    """

    def __init__(
        self,
        stores: Sequence[KeyValueStore] = (),
        *,
        profile_provider: Callable[[], DeviceProfile] = collect_device_profile,
        key: str = ATTENDEE_ID_KEY,
    ) -> None:
        self.stores = list(stores)
        self.profile_provider = profile_provider
        self.key = key
        self._lock = threading.Lock()
        self._attendee_id: Optional[str] = None
        self._fingerprint: Optional[str] = None
        self._identity: Optional[AttendeeIdentity] = None

    def _read(self, store: KeyValueStore) -> Optional[str]:
        try:
            return store.get(self.key) or None
        except Exception as e:
            logger.debug(f"Identity store {type(store).__name__} unreadable: {e}")
            return None

    def _write(self, store: KeyValueStore, value: str) -> None:
        try:
            store.set(self.key, value)
        except Exception as e:
            logger.debug(f"Identity store {type(store).__name__} unwritable: {e}")

    def _load_or_create_attendee_id(self) -> str:
        for index, store in enumerate(self.stores):
            found = self._read(store)
            if found:
                for other_index, other in enumerate(self.stores):
                    if other_index != index:
                        self._write(other, found)
                return found

        new_id = str(uuid.uuid4())
        for store in self.stores:
            self._write(store, new_id)
        logger.info("Generated new attendee id")
        return new_id

    def _compute_fingerprint(self) -> str:
        try:
            profile = self.profile_provider()
        except Exception as e:
            logger.debug(f"Device profile unavailable: {e}")
            profile = DeviceProfile()
        return compute_fingerprint(profile)

    def attendee_id(self) -> str:
        with self._lock:
            if self._attendee_id is None:
                self._attendee_id = self._load_or_create_attendee_id()
            return self._attendee_id

    def fingerprint(self) -> str:
        with self._lock:
            if self._fingerprint is None:
                self._fingerprint = self._compute_fingerprint()
            return self._fingerprint

    def resolve(self) -> AttendeeIdentity:
        with self._lock:
            if self._identity is None:
                if self._attendee_id is None:
                    self._attendee_id = self._load_or_create_attendee_id()
                if self._fingerprint is None:
                    self._fingerprint = self._compute_fingerprint()
                self._identity = AttendeeIdentity(attendee_id=self._attendee_id, fingerprint=self._fingerprint)
            return self._identity

    def clear_cache(self) -> None:
        """Forget cached values; the next call re-reads the stores."""
        with self._lock:
            self._attendee_id = None
            self._fingerprint = None
            self._identity = None


def default_resolver(identity_dir: Optional[Path] = None) -> IdentityResolver:
    """Resolver over a JSON file (primary) and a saved cookie jar (fallback)."""
    base = Path(identity_dir or settings.IDENTITY_DIR)
    jar = LWPCookieJar(str(base / "cookies.txt"))
    try:
        jar.load(ignore_discard=True)
    except (FileNotFoundError, LoadError, OSError) as e:
        logger.debug(f"No saved identity cookies: {e}")
    return IdentityResolver([JsonFileStore(base / "identity.json"), CookieStore(jar)])


__all__ = ["AttendeeIdentity", "IdentityResolver", "default_resolver"]
