import logging
from typing import Optional

from fastapi import APIRouter, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from models.schemas import AppreciationRequest
from services.appreciations import (
    EventNotFound,
    TeamNotFound,
    submit_appreciation,
    get_team_appreciations,
    get_single_team_appreciation,
    get_event_summary,
    clear_team_appreciations,
    clear_event_appreciations,
)
from .common import get_client_ip, get_user_agent, admin_token_valid, error_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/demo-day")

MISSING_FIELDS_ERROR = "Missing required fields: eventId, teamId, attendeeId, fingerprintKey"
INVALID_BODY_ERROR = "Request body must be a JSON object"
INVALID_FIELDS_ERROR = "Invalid fields: eventId, teamId, attendeeId, fingerprintKey must be strings"


@router.post("/appreciations")
async def post_appreciation(request: Request):
    try:
        payload = await request.json()
        if not isinstance(payload, dict):
            return JSONResponse(status_code=400, content={"success": False, "error": INVALID_BODY_ERROR})
        try:
            body = AppreciationRequest.model_validate(payload)
        except ValidationError:
            return JSONResponse(status_code=400, content={"success": False, "error": INVALID_FIELDS_ERROR})
        if body.missing_fields():
            return JSONResponse(status_code=400, content={"success": False, "error": MISSING_FIELDS_ERROR})
        result = await run_in_threadpool(
            submit_appreciation,
            event_id=body.event_id,
            team_id=body.team_id,
            attendee_id=body.attendee_id,
            fingerprint_key=body.fingerprint_key,
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
        )
    except Exception as e:
        logger.error(f"Error creating appreciation: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e) or "Internal server error"})
    return JSONResponse(
        status_code=200 if result.success else 400,
        content=result.to_wire(exclude_none=True),
    )


@router.get("/events/{event_id}/appreciations")
def get_event_appreciations(event_id: str, attendee_id: Optional[str] = Query(None)):
    try:
        return get_team_appreciations(event_id, attendee_id=attendee_id).to_wire()
    except EventNotFound as e:
        return error_response(404, str(e))


@router.get("/events/{event_id}/teams/{team_id}/appreciations")
def get_team_appreciation(event_id: str, team_id: str, attendee_id: Optional[str] = Query(None)):
    try:
        return get_single_team_appreciation(event_id, team_id, attendee_id=attendee_id).to_wire()
    except (EventNotFound, TeamNotFound) as e:
        return error_response(404, str(e))


@router.get("/events/{event_id}/appreciation-summary")
def get_appreciation_summary(event_id: str):
    try:
        return get_event_summary(event_id).to_wire()
    except EventNotFound as e:
        return error_response(404, str(e))


@router.delete("/teams/{team_id}/appreciations")
def delete_team_appreciations_route(team_id: str, x_admin_token: Optional[str] = Header(None)):
    if not admin_token_valid(x_admin_token):
        return error_response(403, "Not authorized - admin access required")
    try:
        return {"deletedCount": clear_team_appreciations(team_id)}
    except TeamNotFound as e:
        return error_response(404, str(e))


@router.delete("/events/{event_id}/appreciations")
def delete_event_appreciations_route(event_id: str, x_admin_token: Optional[str] = Header(None)):
    if not admin_token_valid(x_admin_token):
        return error_response(403, "Not authorized - admin access required")
    try:
        out = clear_event_appreciations(event_id)
    except EventNotFound as e:
        return error_response(404, str(e))
    return {"deletedCount": out["deleted_count"], "teamUpdates": out["team_updates"]}
