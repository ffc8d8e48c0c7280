from __future__ import annotations

from pathlib import Path
import tempfile

from models.db import set_db_path, init_db, create_event, create_team, get_team
from models.schemas import AppreciationRequest, AppreciationResult, Team


def test_team_from_row():
    with tempfile.TemporaryDirectory() as td:
        set_db_path(Path(td) / "db.sqlite")
        init_db()
        eid = create_event("Demo Day", 0, 1)
        tid = create_team(eid, "Alpha", course_code="DS519")
        team = Team.from_row(get_team(tid))
        assert team.id == tid and team.event_id == eid
        assert team.course_code == "DS519" and team.raw_score == 0
        assert team.clean_score is None and team.flagged is False


def test_wire_names_are_camel_case():
    req = AppreciationRequest.model_validate({"eventId": "e", "teamId": "t", "attendeeId": "a", "fingerprintKey": "f"})
    assert req.missing_fields() is False
    assert AppreciationRequest(event_id="e").missing_fields() is True

    result = AppreciationResult.rejected("nope", remaining_for_team=-2, remaining_total=5)
    assert result.to_wire() == {"success": False, "error": "nope", "remainingForTeam": 0, "remainingTotal": 5}
    assert "error" not in AppreciationResult(success=True).to_wire(exclude_none=True)
