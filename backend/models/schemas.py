from __future__ import annotations

from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self, *, exclude_none: bool = False) -> dict:
        return self.model_dump(by_alias=True, exclude_none=exclude_none)


class Team(BaseModel):
    id: str
    event_id: str
    name: str
    course_code: Optional[str] = None
    raw_score: int = 0
    clean_score: Optional[int] = None
    flagged: bool = False

    @classmethod
    def from_row(cls, row) -> "Team":
        return cls(
            id=row["id"],
            event_id=row["event_id"],
            name=row["name"],
            course_code=row["course_code"],
            raw_score=row["raw_score"],
            clean_score=row["clean_score"],
            flagged=bool(row["flagged"]),
        )


class AppreciationRequest(_WireModel):
    # All optional so a missing field yields the endpoint's own 400 message
    event_id: Optional[str] = Field(default=None, alias="eventId")
    team_id: Optional[str] = Field(default=None, alias="teamId")
    attendee_id: Optional[str] = Field(default=None, alias="attendeeId")
    fingerprint_key: Optional[str] = Field(default=None, alias="fingerprintKey")

    def missing_fields(self) -> bool:
        return not (self.event_id and self.team_id and self.attendee_id and self.fingerprint_key)


class AppreciationResult(_WireModel):
    success: bool
    error: Optional[str] = None
    remaining_for_team: int = Field(default=0, alias="remainingForTeam")
    remaining_total: int = Field(default=0, alias="remainingTotal")

    @classmethod
    def rejected(cls, error: str, remaining_for_team: int = 0, remaining_total: int = 0) -> "AppreciationResult":
        return cls(
            success=False,
            error=error,
            remaining_for_team=max(0, remaining_for_team),
            remaining_total=max(0, remaining_total),
        )


class TeamAppreciationCount(_WireModel):
    team_id: str = Field(alias="teamId")
    total_count: int = Field(alias="totalCount")
    attendee_count: int = Field(alias="attendeeCount")


class EventAppreciationState(_WireModel):
    teams: List[TeamAppreciationCount] = Field(default_factory=list)
    attendee_total_count: int = Field(alias="attendeeTotalCount")
    attendee_remaining_budget: int = Field(alias="attendeeRemainingBudget")
    max_per_attendee: int = Field(alias="maxPerAttendee")
    max_per_team: int = Field(alias="maxPerTeam")

    def count_for_team(self, team_id: str) -> int:
        for team in self.teams:
            if team.team_id == team_id:
                return team.attendee_count
        return 0


class TeamAppreciationState(_WireModel):
    total_count: int = Field(alias="totalCount")
    attendee_count: int = Field(alias="attendeeCount")
    attendee_total_count: int = Field(alias="attendeeTotalCount")
    attendee_remaining_budget: int = Field(alias="attendeeRemainingBudget")
    max_per_attendee: int = Field(alias="maxPerAttendee")
    max_per_team: int = Field(alias="maxPerTeam")


class TeamSummary(_WireModel):
    team_id: str = Field(alias="teamId")
    team_name: str = Field(alias="teamName")
    course_code: Optional[str] = Field(default=None, alias="courseCode")
    raw_score: int = Field(alias="rawScore")
    clean_score: int = Field(alias="cleanScore")
    flagged: bool = False


class EventAppreciationSummary(_WireModel):
    total_appreciations: int = Field(alias="totalAppreciations")
    unique_attendees: int = Field(alias="uniqueAttendees")
    teams: List[TeamSummary] = Field(default_factory=list)
