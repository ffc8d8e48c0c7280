"""Appreciation budget rules.

The same predicate drives the disabled state of the heart button on the
client and the accept/reject decision in ``services.appreciations``, so the
boundaries here (strict ``<`` on the team cap, strictly positive remaining
budget) are the contract for both sides.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from config import settings

MISSING_IDENTITY_ERROR = "Missing attendee identity"
NOT_LIVE_ERROR = "Appreciations open once the event is live"


class AppreciationLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_per_attendee: int = Field(default=settings.MAX_PER_ATTENDEE, ge=0)
    max_per_team: int = Field(default=settings.MAX_PER_TEAM, ge=0)


class AppreciationState(BaseModel):
    model_config = ConfigDict(frozen=True)

    attendee_total_count: int = Field(default=0, ge=0)
    attendee_count_for_team: int = Field(default=0, ge=0)


def limits_for_event(event) -> AppreciationLimits:
    """Per-event overrides on top of the configured defaults."""
    max_per_team = event["appreciation_max_per_team"] if event is not None else None
    budget = event["appreciation_budget_per_attendee"] if event is not None else None
    return AppreciationLimits(
        max_per_attendee=settings.MAX_PER_ATTENDEE if budget is None else budget,
        max_per_team=settings.MAX_PER_TEAM if max_per_team is None else max_per_team,
    )


def remaining_budget(state: AppreciationState, limits: AppreciationLimits) -> int:
    return max(0, limits.max_per_attendee - state.attendee_total_count)


def remaining_for_team(state: AppreciationState, limits: AppreciationLimits) -> int:
    return max(0, limits.max_per_team - state.attendee_count_for_team)


def eligibility_error(
    state: AppreciationState,
    limits: AppreciationLimits,
    event_is_live: bool,
    attendee_id: Optional[str],
) -> Optional[str]:
    """Return why one more heart is not allowed, or None when it is."""
    if not attendee_id:
        return MISSING_IDENTITY_ERROR
    if not event_is_live:
        return NOT_LIVE_ERROR
    if state.attendee_count_for_team >= limits.max_per_team:
        return f"You've already given {limits.max_per_team} appreciations to this team"
    if limits.max_per_attendee - state.attendee_total_count <= 0:
        return f"You've used all {limits.max_per_attendee} appreciations for this event"
    return None


def can_appreciate(
    state: AppreciationState,
    limits: AppreciationLimits,
    event_is_live: bool,
    attendee_id: Optional[str],
) -> bool:
    return eligibility_error(state, limits, event_is_live, attendee_id) is None


def apply_appreciation(state: AppreciationState) -> AppreciationState:
    """Project one accepted heart onto ``state``. Callers check eligibility first."""
    return state.model_copy(
        update={
            "attendee_total_count": state.attendee_total_count + 1,
            "attendee_count_for_team": state.attendee_count_for_team + 1,
        }
    )


__all__ = [
    "MISSING_IDENTITY_ERROR",
    "NOT_LIVE_ERROR",
    "AppreciationLimits",
    "AppreciationState",
    "limits_for_event",
    "remaining_budget",
    "remaining_for_team",
    "eligibility_error",
    "can_appreciate",
    "apply_appreciation",
]
