"""Authoritative appreciation service backed by SQLite."""

from __future__ import annotations

import logging
from typing import Optional

from config import settings
from models.db import (
    get_connection,
    get_event,
    get_team,
    list_teams,
    count_attendee_appreciations,
    count_ip_appreciations_since,
    count_team_appreciations,
    insert_appreciation,
    team_appreciation_totals,
    attendee_team_counts,
    event_appreciation_totals,
    delete_team_appreciations,
    delete_event_appreciations,
)
from models.schemas import (
    AppreciationResult,
    EventAppreciationState,
    EventAppreciationSummary,
    TeamAppreciationCount,
    TeamAppreciationState,
    TeamSummary,
    Team,
)
from services.budget import (
    NOT_LIVE_ERROR,
    AppreciationState,
    eligibility_error,
    limits_for_event,
    remaining_budget,
    remaining_for_team,
)
from services.event_status import is_event_live, now_ms

logger = logging.getLogger(__name__)

RATE_LIMITED_ERROR = "Too many requests from this network. Please try again later."


class EventNotFound(LookupError):
    pass


class TeamNotFound(LookupError):
    pass


def submit_appreciation(
    event_id: str,
    team_id: str,
    attendee_id: str,
    fingerprint_key: str,
    ip_address: str = "unknown",
    user_agent: str = "unknown",
    now: Optional[int] = None,
) -> AppreciationResult:
    """Record one heart if the budget rules allow it.

    Reads and the insert share one IMMEDIATE transaction, so two tabs using
    the same attendee id are serialized and the second sees the first's heart.
    """
    current = now_ms() if now is None else now
    with get_connection(immediate=True) as conn:
        event = get_event(event_id, conn=conn)
        if event is None:
            return AppreciationResult.rejected("Event not found")
        if event["mode"] != "demo_day":
            return AppreciationResult.rejected("Event is not in Demo Day mode")
        limits = limits_for_event(event)
        live = is_event_live(event, now=current)
        if not live:
            return AppreciationResult.rejected(NOT_LIVE_ERROR)

        team = get_team(team_id, conn=conn)
        if team is None or team["event_id"] != event_id:
            return AppreciationResult.rejected("Team not found")

        state = AppreciationState(
            attendee_total_count=count_attendee_appreciations(event_id, attendee_id, conn=conn),
            attendee_count_for_team=count_attendee_appreciations(event_id, attendee_id, team_id=team_id, conn=conn),
        )
        error = eligibility_error(state, limits, live, attendee_id)
        if error is not None:
            logger.info(f"Rejected appreciation from {attendee_id} to team {team_id}: {error}")
            return AppreciationResult.rejected(
                error,
                remaining_for_team=remaining_for_team(state, limits),
                remaining_total=remaining_budget(state, limits),
            )

        window_start = current - settings.IP_RATE_LIMIT_WINDOW_SECONDS * 1000
        if count_ip_appreciations_since(ip_address, window_start, conn=conn) >= settings.IP_RATE_LIMIT_MAX:
            logger.info(f"Rate limited appreciation from ip {ip_address}")
            return AppreciationResult.rejected(
                RATE_LIMITED_ERROR,
                remaining_for_team=remaining_for_team(state, limits),
                remaining_total=remaining_budget(state, limits),
            )

        insert_appreciation(
            event_id, team_id, attendee_id, fingerprint_key, ip_address, user_agent, current, conn=conn
        )

    return AppreciationResult(
        success=True,
        remaining_for_team=limits.max_per_team - state.attendee_count_for_team - 1,
        remaining_total=limits.max_per_attendee - state.attendee_total_count - 1,
    )


def _require_event(event_id: str):
    event = get_event(event_id)
    if event is None:
        raise EventNotFound("Event not found")
    return event


def get_team_appreciations(event_id: str, attendee_id: Optional[str] = None) -> EventAppreciationState:
    """Per-team totals for an event plus the attendee's own counts and budget."""
    event = _require_event(event_id)
    limits = limits_for_event(event)
    totals = team_appreciation_totals(event_id)
    mine = attendee_team_counts(event_id, attendee_id) if attendee_id else {}

    teams = [
        TeamAppreciationCount(
            team_id=team["id"],
            total_count=totals.get(team["id"], 0),
            attendee_count=mine.get(team["id"], 0),
        )
        for team in list_teams(event_id)
    ]
    attendee_total = sum(mine.values())
    return EventAppreciationState(
        teams=teams,
        attendee_total_count=attendee_total,
        attendee_remaining_budget=remaining_budget(AppreciationState(attendee_total_count=attendee_total), limits),
        max_per_attendee=limits.max_per_attendee,
        max_per_team=limits.max_per_team,
    )


def get_single_team_appreciation(
    event_id: str, team_id: str, attendee_id: Optional[str] = None
) -> TeamAppreciationState:
    event = _require_event(event_id)
    team = get_team(team_id)
    if team is None or team["event_id"] != event_id:
        raise TeamNotFound("Team not found")
    limits = limits_for_event(event)

    state = AppreciationState()
    if attendee_id:
        state = AppreciationState(
            attendee_total_count=count_attendee_appreciations(event_id, attendee_id),
            attendee_count_for_team=count_attendee_appreciations(event_id, attendee_id, team_id=team_id),
        )
    return TeamAppreciationState(
        total_count=count_team_appreciations(team_id),
        attendee_count=state.attendee_count_for_team,
        attendee_total_count=state.attendee_total_count,
        attendee_remaining_budget=remaining_budget(state, limits),
        max_per_attendee=limits.max_per_attendee,
        max_per_team=limits.max_per_team,
    )


def get_event_summary(event_id: str) -> EventAppreciationSummary:
    """Admin view: totals, distinct attendees and teams ranked by raw score."""
    _require_event(event_id)
    totals = event_appreciation_totals(event_id)
    per_team = team_appreciation_totals(event_id)
    teams = []
    for team in map(Team.from_row, list_teams(event_id)):
        counted = per_team.get(team.id, 0)
        teams.append(
            TeamSummary(
                team_id=team.id,
                team_name=team.name,
                course_code=team.course_code,
                raw_score=team.raw_score,
                # Unmoderated teams report their plain count
                clean_score=counted if team.clean_score is None else team.clean_score,
                flagged=team.flagged,
            )
        )
    teams.sort(key=lambda t: t.raw_score, reverse=True)
    return EventAppreciationSummary(
        total_appreciations=totals["total"],
        unique_attendees=totals["attendees"],
        teams=teams,
    )


def clear_team_appreciations(team_id: str) -> int:
    if get_team(team_id) is None:
        raise TeamNotFound("Team not found")
    deleted = delete_team_appreciations(team_id)
    logger.info(f"Cleared {deleted} appreciations for team {team_id}")
    return deleted


def clear_event_appreciations(event_id: str) -> dict:
    _require_event(event_id)
    deleted, team_updates = delete_event_appreciations(event_id)
    logger.info(f"Cleared {deleted} appreciations for event {event_id} ({team_updates} teams reset)")
    return {"deleted_count": deleted, "team_updates": team_updates}
