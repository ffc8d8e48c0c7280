from typing import Optional

import hmac
from fastapi import Request
from fastapi.responses import JSONResponse

from config import settings


def get_client_ip(request: Request) -> str:
    """Best-effort client IP, honouring the usual proxy headers in order."""
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_ip = forwarded_for.split(",")[0].strip()
        if first_ip:
            return first_ip
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or "unknown"


def admin_token_valid(token: Optional[str]) -> bool:
    """Maintenance routes stay closed unless DEMO_DAY_ADMIN_TOKEN is set and matches."""
    expected = settings.ADMIN_TOKEN
    if not expected or not token:
        return False
    return hmac.compare_digest(expected, token)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})
