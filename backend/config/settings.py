"""Runtime configuration for the Demo Day appreciation backend."""

import os
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]

# Storage
DB_PATH = os.getenv("DEMO_DAY_DB_PATH", str(BACKEND_DIR / "data" / "app.db"))

# Appreciation limits (per-event columns override these)
MAX_PER_TEAM = int(os.getenv("DEMO_DAY_MAX_PER_TEAM", "3"))
MAX_PER_ATTENDEE = int(os.getenv("DEMO_DAY_MAX_PER_ATTENDEE", "100"))

# Soft per-IP rate limit
IP_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("DEMO_DAY_IP_WINDOW_SECONDS", "600"))
IP_RATE_LIMIT_MAX = int(os.getenv("DEMO_DAY_IP_MAX", "100"))

# Client
CLIENT_TIMEOUT_SECONDS = float(os.getenv("DEMO_DAY_CLIENT_TIMEOUT", "10"))
IDENTITY_DIR = Path(os.getenv("DEMO_DAY_IDENTITY_DIR", str(Path.home() / ".demo_day")))

# Admin-only maintenance routes are disabled when no token is set
ADMIN_TOKEN = os.getenv("DEMO_DAY_ADMIN_TOKEN", "")

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("DEMO_DAY_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]

LOG_LEVEL = os.getenv("DEMO_DAY_LOG_LEVEL", "INFO")
