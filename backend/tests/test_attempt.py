from __future__ import annotations

import pytest
import requests

from client import AppreciationControl, AppreciationNotAllowed, AttemptStatus
from models.schemas import AppreciationResult
from services.budget import AppreciationLimits, AppreciationState

LIMITS = AppreciationLimits(max_per_attendee=100, max_per_team=3)
ATTENDEE = "attendee-1"


def _control(team: int = 1, total: int = 10, *, limits: AppreciationLimits = LIMITS, live: bool = True):
    return AppreciationControl(
        AppreciationState(attendee_count_for_team=team, attendee_total_count=total),
        limits,
        event_is_live=live,
        attendee_id=ATTENDEE,
    )


def test_begin_projects_optimistic_state():
    control = _control()
    assert control.status == AttemptStatus.IDLE
    projected = control.begin()
    assert control.status == AttemptStatus.PENDING
    assert (projected.attendee_count_for_team, projected.attendee_total_count) == (2, 11)
    # control is disabled while the write is in flight
    assert control.can_trigger() is False
    with pytest.raises(AppreciationNotAllowed):
        control.begin()


def test_rejection_restores_exact_baseline():
    control = _control(team=1, total=10)
    control.begin()
    restored = control.settle(
        AppreciationResult(success=False, error="You've used all 100 appreciations for this event")
    )
    assert control.status == AttemptStatus.ROLLED_BACK
    assert restored == AppreciationState(attendee_count_for_team=1, attendee_total_count=10)
    assert control.state == restored
    assert control.error == "You've used all 100 appreciations for this event"
    # user may try again
    assert control.can_trigger() is True


def test_success_keeps_projection_even_with_mismatched_limits():
    # Control built with default limits while the event overrides the budget to 5
    control = _control(team=0, total=0)
    control.begin()
    control.settle(AppreciationResult(success=True, remaining_for_team=2, remaining_total=4))
    assert control.status == AttemptStatus.SETTLED
    assert control.state == AppreciationState(attendee_count_for_team=1, attendee_total_count=1)
    assert control.baseline == control.state

    # Hearts spent in another tab arrive through the next authoritative read
    control.refresh(AppreciationState(attendee_count_for_team=1, attendee_total_count=5),
                    AppreciationLimits(max_per_attendee=5, max_per_team=3))
    assert control.remaining_budget == 0
    assert control.can_trigger() is False


def test_end_to_end_reaches_team_cap():
    limits = AppreciationLimits(max_per_team=3, max_per_attendee=5)
    control = _control(team=2, total=4, limits=limits)
    assert control.can_trigger() is True
    result = control.run(lambda: AppreciationResult(success=True, remaining_for_team=0, remaining_total=0))
    assert result.success
    assert control.state == AppreciationState(attendee_count_for_team=3, attendee_total_count=5)
    assert control.can_trigger() is False


def test_run_rolls_back_on_transport_error():
    control = _control()

    def submit():
        raise requests.Timeout("read timed out")

    result = control.run(submit)
    assert result.success is False
    assert result.error == "read timed out"
    assert control.status == AttemptStatus.ROLLED_BACK
    assert control.state == AppreciationState(attendee_count_for_team=1, attendee_total_count=10)


def test_not_live_or_exhausted_cannot_begin():
    with pytest.raises(AppreciationNotAllowed, match="live"):
        _control(live=False).begin()
    with pytest.raises(AppreciationNotAllowed, match="this team"):
        _control(team=3).begin()
    missing = AppreciationControl(AppreciationState(), LIMITS, event_is_live=True, attendee_id=None)
    assert missing.can_trigger() is False


def test_settle_requires_pending():
    with pytest.raises(RuntimeError):
        _control().settle(AppreciationResult(success=True))


def test_refresh_is_ignored_while_pending():
    control = _control()
    control.begin()
    control.refresh(AppreciationState(attendee_count_for_team=0, attendee_total_count=0))
    assert control.state == AppreciationState(attendee_count_for_team=2, attendee_total_count=11)
    control.settle(AppreciationResult(success=False, error="Team not found"))
    control.refresh(AppreciationState(attendee_count_for_team=0, attendee_total_count=3), event_is_live=False)
    assert control.state == AppreciationState(attendee_count_for_team=0, attendee_total_count=3)
    assert control.can_trigger() is False
