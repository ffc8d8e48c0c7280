from __future__ import annotations

import sqlite3
import uuid
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence
from contextlib import contextmanager

from config import settings


_DB_PATH: Path = Path(settings.DB_PATH)


def set_db_path(path: Path | str) -> None:
    global _DB_PATH
    _DB_PATH = Path(path)
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)


def get_db_path() -> Path:
    return _DB_PATH


def _connect(path: Optional[Path] = None) -> sqlite3.Connection:
    target = Path(path) if path else get_db_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(target, check_same_thread=False, timeout=30.0)
    conn.row_factory = sqlite3.Row
    # Enforce foreign keys
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def get_connection(path: Optional[Path] = None, *, immediate: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a connection that commits on success and rolls back on error.

    With ``immediate=True`` the write lock is taken up front, so every read
    inside the block sees the same state the final write is applied to.
    """
    conn = _connect(path)
    try:
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def _use_connection(conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
    if conn is not None:
        yield conn
        return
    with get_connection() as own:
        yield own


def _ensure_schema_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )


def _get_applied_versions(conn: sqlite3.Connection) -> set[str]:
    _ensure_schema_migrations_table(conn)
    cur = conn.execute("SELECT version FROM schema_migrations")
    return {row[0] for row in cur.fetchall()}


def _record_applied(conn: sqlite3.Connection, version: str) -> None:
    conn.execute("INSERT OR IGNORE INTO schema_migrations(version) VALUES (?)", (version,))


def _migration_files() -> Sequence[Path]:
    migrations_dir = settings.BACKEND_DIR / "migrations"
    if not migrations_dir.is_dir():
        return []
    return sorted(p for p in migrations_dir.iterdir() if p.suffix == ".sql")


def run_migrations(path: Optional[Path] = None) -> None:
    """Run pending SQL migrations found in backend/migrations/*.sql in sorted order."""
    with get_connection(path) as conn:
        applied = _get_applied_versions(conn)
        for sql_file in _migration_files():
            version = sql_file.stem
            if version in applied:
                continue
            sql = sql_file.read_text(encoding="utf-8")
            try:
                conn.executescript(sql)
            except sqlite3.OperationalError as e:
                # Re-running an ALTER TABLE ADD COLUMN is harmless
                if "duplicate column name" not in str(e).lower():
                    raise
            _record_applied(conn, version)


def init_db(path: Optional[Path] = None) -> None:
    """Initialize database by running migrations. Safe to call multiple times."""
    run_migrations(path)


# --- Events and teams (seeding helpers; lifecycle management lives elsewhere) ---

def create_event(
    name: str,
    start_date: int,
    end_date: int,
    *,
    mode: str = "demo_day",
    status: str = "active",
    max_per_team: Optional[int] = None,
    budget_per_attendee: Optional[int] = None,
) -> str:
    event_id = uuid.uuid4().hex
    with get_connection() as conn:
        conn.execute(
            """
            INSERT INTO events(id, name, mode, status, start_date, end_date,
                               appreciation_max_per_team, appreciation_budget_per_attendee)
            VALUES(?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (event_id, name, mode, status, start_date, end_date, max_per_team, budget_per_attendee),
        )
    return event_id


def get_event(event_id: str, conn: Optional[sqlite3.Connection] = None) -> Optional[sqlite3.Row]:
    with _use_connection(conn) as c:
        return c.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()


# Stored "past" closes an event regardless of its window
def update_event_status(event_id: str, status: str) -> bool:
    with get_connection() as conn:
        cur = conn.execute("UPDATE events SET status = ? WHERE id = ?", (status, event_id))
        return cur.rowcount > 0


def create_team(
    event_id: str,
    name: str,
    *,
    course_code: Optional[str] = None,
) -> str:
    team_id = uuid.uuid4().hex
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO teams(id, event_id, name, course_code) VALUES(?, ?, ?, ?)",
            (team_id, event_id, name, course_code),
        )
    return team_id


def get_team(team_id: str, conn: Optional[sqlite3.Connection] = None) -> Optional[sqlite3.Row]:
    with _use_connection(conn) as c:
        return c.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()


def list_teams(event_id: str, conn: Optional[sqlite3.Connection] = None) -> list[sqlite3.Row]:
    with _use_connection(conn) as c:
        cur = c.execute("SELECT * FROM teams WHERE event_id = ? ORDER BY created_at ASC, name ASC", (event_id,))
        return list(cur.fetchall())


# --- Appreciations ---

def count_attendee_appreciations(
    event_id: str,
    attendee_id: str,
    team_id: Optional[str] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> int:
    """Count hearts one attendee gave in an event, optionally to one team."""
    with _use_connection(conn) as c:
        if team_id is None:
            cur = c.execute(
                "SELECT COUNT(*) FROM appreciations WHERE event_id = ? AND attendee_id = ?",
                (event_id, attendee_id),
            )
        else:
            cur = c.execute(
                "SELECT COUNT(*) FROM appreciations WHERE event_id = ? AND team_id = ? AND attendee_id = ?",
                (event_id, team_id, attendee_id),
            )
        return int(cur.fetchone()[0])


def count_ip_appreciations_since(ip_address: str, since_ms: int, conn: Optional[sqlite3.Connection] = None) -> int:
    with _use_connection(conn) as c:
        cur = c.execute(
            "SELECT COUNT(*) FROM appreciations WHERE ip_address = ? AND timestamp >= ?",
            (ip_address, since_ms),
        )
        return int(cur.fetchone()[0])


def insert_appreciation(
    event_id: str,
    team_id: str,
    attendee_id: str,
    fingerprint_key: str,
    ip_address: str,
    user_agent: str,
    timestamp: int,
    conn: Optional[sqlite3.Connection] = None,
) -> int:
    """Insert one appreciation and bump the team's denormalized score."""
    with _use_connection(conn) as c:
        cur = c.execute(
            """
            INSERT INTO appreciations(event_id, team_id, attendee_id, fingerprint_key, ip_address, user_agent, timestamp)
            VALUES(?, ?, ?, ?, ?, ?, ?)
            """,
            (event_id, team_id, attendee_id, fingerprint_key, ip_address, user_agent, timestamp),
        )
        c.execute("UPDATE teams SET raw_score = raw_score + 1 WHERE id = ?", (team_id,))
        return int(cur.lastrowid)


def team_appreciation_totals(event_id: str, conn: Optional[sqlite3.Connection] = None) -> dict[str, int]:
    with _use_connection(conn) as c:
        cur = c.execute(
            "SELECT team_id, COUNT(*) AS c FROM appreciations WHERE event_id = ? GROUP BY team_id",
            (event_id,),
        )
        return {row["team_id"]: int(row["c"]) for row in cur.fetchall()}


def attendee_team_counts(event_id: str, attendee_id: str, conn: Optional[sqlite3.Connection] = None) -> dict[str, int]:
    with _use_connection(conn) as c:
        cur = c.execute(
            "SELECT team_id, COUNT(*) AS c FROM appreciations WHERE event_id = ? AND attendee_id = ? GROUP BY team_id",
            (event_id, attendee_id),
        )
        return {row["team_id"]: int(row["c"]) for row in cur.fetchall()}


def count_team_appreciations(team_id: str, conn: Optional[sqlite3.Connection] = None) -> int:
    with _use_connection(conn) as c:
        cur = c.execute("SELECT COUNT(*) FROM appreciations WHERE team_id = ?", (team_id,))
        return int(cur.fetchone()[0])


def event_appreciation_totals(event_id: str, conn: Optional[sqlite3.Connection] = None) -> dict[str, Any]:
    """Return total appreciations and distinct attendees for an event."""
    with _use_connection(conn) as c:
        row = c.execute(
            "SELECT COUNT(*) AS total, COUNT(DISTINCT attendee_id) AS attendees FROM appreciations WHERE event_id = ?",
            (event_id,),
        ).fetchone()
        return {"total": int(row["total"]), "attendees": int(row["attendees"])}


def delete_team_appreciations(team_id: str) -> int:
    with get_connection() as conn:
        cur = conn.execute("DELETE FROM appreciations WHERE team_id = ?", (team_id,))
        conn.execute("UPDATE teams SET raw_score = 0, clean_score = 0 WHERE id = ?", (team_id,))
        return cur.rowcount or 0


def delete_event_appreciations(event_id: str) -> tuple[int, int]:
    """Delete every appreciation in an event. Returns (deleted rows, teams reset)."""
    with get_connection() as conn:
        cur = conn.execute("DELETE FROM appreciations WHERE event_id = ?", (event_id,))
        deleted = cur.rowcount or 0
        cur = conn.execute("UPDATE teams SET raw_score = 0, clean_score = 0 WHERE event_id = ?", (event_id,))
        return deleted, cur.rowcount or 0
