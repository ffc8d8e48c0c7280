from __future__ import annotations

import hashlib
import json
import locale
import logging
import os
import platform
import time
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class DeviceProfile(BaseModel):
    """Device characteristics hashed into the fingerprint.

    Display fields are 0 when the host has no notion of a screen.
    """

    user_agent: str = ""
    platform: str = ""
    language: str = ""
    languages: List[str] = Field(default_factory=list)
    screen_width: int = 0
    screen_height: int = 0
    device_pixel_ratio: float = 1.0
    cores: int = 0
    timezone_offset: int = 0  # minutes, positive west of UTC
    color_depth: int = 0
    touch_points: int = 0

    def canonical(self) -> Dict[str, Any]:
        return {
            "ua": self.user_agent,
            "platform": self.platform,
            "language": self.language,
            "languages": list(self.languages),
            "screen": [self.screen_width, self.screen_height],
            "dpr": self.device_pixel_ratio,
            "cores": self.cores,
            "tz": self.timezone_offset,
            "colorDepth": self.color_depth,
            "touchPoints": self.touch_points,
        }

    def canonical_json(self) -> str:
        return json.dumps(self.canonical(), sort_keys=True, separators=(",", ":"))


def _local_timezone_offset() -> int:
    # Same sign convention as the browser: UTC+2 reports -120
    offset = time.altzone if time.localtime().tm_isdst > 0 else time.timezone
    return offset // 60


def collect_device_profile() -> DeviceProfile:
    """Profile of the host running the client."""
    lang: Optional[str] = None
    try:
        lang = locale.getlocale()[0]
    except ValueError:
        lang = None
    env_langs = [part for part in os.getenv("LANGUAGE", "").split(":") if part]
    return DeviceProfile(
        user_agent=requests.utils.default_user_agent(),
        platform=platform.platform(),
        language=lang or "",
        languages=env_langs or ([lang] if lang else []),
        cores=os.cpu_count() or 0,
        timezone_offset=_local_timezone_offset(),
    )


def simple_hash(message: str) -> str:
    """32-bit rolling string hash, hex encoded. Not cryptographic."""
    h = 0
    for ch in message:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(abs(h), "x").rjust(8, "0")


def digest(message: str) -> str:
    """SHA-256 hex digest, or ``simple_hash`` where SHA-256 is unavailable."""
    try:
        return hashlib.sha256(message.encode("utf-8")).hexdigest()
    except (ValueError, AttributeError) as e:
        logger.debug(f"sha256 unavailable, using fallback hash: {e}")
        return simple_hash(message)


def compute_fingerprint(profile: DeviceProfile) -> str:
    return digest(profile.canonical_json())


__all__ = [
    "DeviceProfile",
    "collect_device_profile",
    "simple_hash",
    "digest",
    "compute_fingerprint",
]
