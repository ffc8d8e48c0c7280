from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from models.schemas import AppreciationResult
from services.budget import (
    AppreciationLimits,
    AppreciationState,
    apply_appreciation,
    can_appreciate,
    eligibility_error,
    remaining_budget,
    remaining_for_team,
)

logger = logging.getLogger(__name__)


class AttemptStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SETTLED = "settled"
    ROLLED_BACK = "rolled_back"


class AppreciationNotAllowed(Exception):
    """Raised when a heart is triggered on a control that should be disabled."""


class AppreciationControl:
    """Optimistic state for one heart button (one attendee, one team).

    ``baseline`` is the last authoritative state. ``state`` is what the UI
    shows: the baseline plus one heart while a submission is pending. The
    displayed value only becomes the baseline once the server confirms it;
    a rejection restores the baseline exactly.
    """

    def __init__(
        self,
        state: AppreciationState,
        limits: AppreciationLimits,
        *,
        event_is_live: bool,
        attendee_id: Optional[str],
    ) -> None:
        self.baseline = state
        self.state = state
        self.limits = limits
        self.event_is_live = event_is_live
        self.attendee_id = attendee_id
        self.status = AttemptStatus.IDLE
        self.error: Optional[str] = None

    @property
    def remaining_budget(self) -> int:
        return remaining_budget(self.state, self.limits)

    @property
    def remaining_for_team(self) -> int:
        return remaining_for_team(self.state, self.limits)

    def can_trigger(self) -> bool:
        if self.status == AttemptStatus.PENDING:
            return False
        return can_appreciate(self.state, self.limits, self.event_is_live, self.attendee_id)

    def begin(self) -> AppreciationState:
        if self.status == AttemptStatus.PENDING:
            raise AppreciationNotAllowed("An appreciation is already pending")
        reason = eligibility_error(self.state, self.limits, self.event_is_live, self.attendee_id)
        if reason is not None:
            raise AppreciationNotAllowed(reason)
        self.baseline = self.state
        self.state = apply_appreciation(self.baseline)
        self.status = AttemptStatus.PENDING
        self.error = None
        return self.state

    def settle(self, result: AppreciationResult) -> AppreciationState:
        if self.status != AttemptStatus.PENDING:
            raise RuntimeError(f"Cannot settle an attempt in state {self.status.value}")
        if result.success:
            # Keep the projection; limits here may not match the event's overrides
            self.baseline = self.state
            self.status = AttemptStatus.SETTLED
            return self.state
        return self.roll_back(result.error or "Failed to send appreciation")

    def roll_back(self, error: str) -> AppreciationState:
        self.state = self.baseline
        self.status = AttemptStatus.ROLLED_BACK
        self.error = error
        logger.info(f"Appreciation rolled back: {error}")
        return self.state

    def refresh(
        self,
        state: AppreciationState,
        limits: Optional[AppreciationLimits] = None,
        event_is_live: Optional[bool] = None,
    ) -> None:
        """Reconcile with a fresh authoritative read."""
        if limits is not None:
            self.limits = limits
        if event_is_live is not None:
            self.event_is_live = event_is_live
        if self.status == AttemptStatus.PENDING:
            # The pending response decides; a read racing it may predate the write
            return
        self.baseline = state
        self.state = state

    def run(self, submit: Callable[[], AppreciationResult]) -> AppreciationResult:
        """Begin, submit, and settle one attempt. Never retries."""
        self.begin()
        try:
            result = submit()
        except Exception as e:
            self.roll_back(str(e) or "Network error")
            return AppreciationResult.rejected(self.error or "Network error")
        self.settle(result)
        return result


__all__ = ["AttemptStatus", "AppreciationNotAllowed", "AppreciationControl"]
