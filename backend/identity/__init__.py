from __future__ import annotations

# Public API facade for attendee identity

from .storage import (
    ATTENDEE_ID_KEY,
    COOKIE_NAME,
    KeyValueStore,
    MemoryStore,
    JsonFileStore,
    CookieStore,
)
from .fingerprint import DeviceProfile, collect_device_profile, compute_fingerprint, simple_hash
from .resolver import AttendeeIdentity, IdentityResolver, default_resolver


__all__ = [
    "ATTENDEE_ID_KEY",
    "COOKIE_NAME",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "CookieStore",
    "DeviceProfile",
    "collect_device_profile",
    "compute_fingerprint",
    "simple_hash",
    "AttendeeIdentity",
    "IdentityResolver",
    "default_resolver",
]
