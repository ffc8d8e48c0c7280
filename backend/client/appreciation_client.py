from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError
from requests.exceptions import RequestException

from config import settings
from identity import IdentityResolver
from models.schemas import AppreciationResult, EventAppreciationState, TeamAppreciationState
from services.budget import AppreciationLimits, AppreciationState

from .attempt import AppreciationControl

logger = logging.getLogger(__name__)

SEND_FAILED_ERROR = "Failed to send appreciation"


class AppreciationClient:
    """HTTP client for the Demo Day appreciation endpoints."""

    def __init__(
        self,
        base_url: str,
        resolver: IdentityResolver,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = settings.CLIENT_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.resolver = resolver
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/demo-day{path}"

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = self.session.get(self._url(path), params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def send_appreciation(self, event_id: str, team_id: str) -> AppreciationResult:
        """POST one heart. Transport failures come back as a failed result."""
        identity = self.resolver.resolve()
        payload = {
            "eventId": event_id,
            "teamId": team_id,
            "attendeeId": identity.attendee_id,
            "fingerprintKey": identity.fingerprint,
        }
        try:
            resp = self.session.post(self._url("/appreciations"), json=payload, timeout=self.timeout)
        except RequestException as e:
            logger.warning(f"Appreciation request failed: {e}")
            return AppreciationResult.rejected(str(e) or "Network error")
        try:
            # Rejections arrive as 400 with a result body
            return AppreciationResult.model_validate(resp.json())
        except (ValidationError, ValueError) as e:
            # Proxy pages and framework errors are not result bodies
            logger.warning(f"Unexpected appreciation response ({resp.status_code}): {e}")
            return AppreciationResult.rejected(SEND_FAILED_ERROR)

    def fetch_event_state(self, event_id: str) -> EventAppreciationState:
        identity = self.resolver.resolve()
        data = self._get_json(f"/events/{event_id}/appreciations", params={"attendee_id": identity.attendee_id})
        return EventAppreciationState.model_validate(data)

    def fetch_team_state(self, event_id: str, team_id: str) -> TeamAppreciationState:
        identity = self.resolver.resolve()
        data = self._get_json(
            f"/events/{event_id}/teams/{team_id}/appreciations",
            params={"attendee_id": identity.attendee_id},
        )
        return TeamAppreciationState.model_validate(data)

    def control_for(self, event_id: str, team_id: str, *, event_is_live: bool) -> AppreciationControl:
        """Build a heart-button control seeded from the authoritative read."""
        team_state = self.fetch_team_state(event_id, team_id)
        return AppreciationControl(
            AppreciationState(
                attendee_total_count=team_state.attendee_total_count,
                attendee_count_for_team=team_state.attendee_count,
            ),
            AppreciationLimits(
                max_per_attendee=team_state.max_per_attendee,
                max_per_team=team_state.max_per_team,
            ),
            event_is_live=event_is_live,
            attendee_id=self.resolver.resolve().attendee_id,
        )

    def appreciate(self, control: AppreciationControl, event_id: str, team_id: str) -> AppreciationResult:
        """Run one optimistic attempt through ``control``."""
        return control.run(lambda: self.send_appreciation(event_id, team_id))


__all__ = ["AppreciationClient"]
