from __future__ import annotations

from .attempt import AttemptStatus, AppreciationNotAllowed, AppreciationControl
from .appreciation_client import AppreciationClient


__all__ = [
    "AttemptStatus",
    "AppreciationNotAllowed",
    "AppreciationControl",
    "AppreciationClient",
]
