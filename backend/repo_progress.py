"""
Repository: SQL operations for `goal_progress`.

This file contains only DB interaction code. It maps Pydantic models
to SQL parameters and converts DB rows back to frozen `CompletionEvent`
objects. Keep business rules (validation, streak math, caching) out of
this module.

Important notes:
- SQL strings use positional parameters for psycopg.
- `logged_at` is a TIMESTAMPTZ column; psycopg hands back aware datetimes.
- `insert_events` commits after executing the batch; callers expect
  that the DB write is durable after the method returns.
"""

from typing import List, Optional
from db import get_conn
from models import CompletionEvent, CompletionEventIn

_SELECT_COLUMNS = "id, entity_id, user_id, logged_at, note"


def _row_to_event(row) -> CompletionEvent:
    return CompletionEvent(
        id=str(row[0]),
        entity_id=row[1],
        user_id=row[2],
        logged_at=row[3],
        note=row[4],
    )


class ProgressRepo:
    """DB access only. No business logic here.

    Responsibilities:
    - Map `CompletionEventIn` -> SQL parameters
    - Execute queries and return `CompletionEvent` objects
    - Keep transaction/commit boundaries local and explicit
    """

    def insert_events(self, events: List[CompletionEventIn]) -> int:
        """Batch-insert progress logs with one executemany() and one commit."""

        rows = [(e.entity_id, e.user_id, e.logged_at, e.note) for e in events]
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.executemany(
                    "INSERT INTO goal_progress (entity_id, user_id, logged_at, note) VALUES (%s, %s, %s, %s)",
                    rows,
                )
            conn.commit()
        return len(rows)

    def list_events(self, entity_id: str) -> List[CompletionEvent]:
        """Every progress log for `entity_id`, newest first. No pagination."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM goal_progress "
                    "WHERE entity_id=%s ORDER BY logged_at DESC",
                    (entity_id,),
                )
                return [_row_to_event(r) for r in cur.fetchall()]

    def update_note(self, entity_id: str, event_id: int, note: Optional[str]) -> Optional[CompletionEvent]:
        """Rewrite the note of one log. Returns None when no row matched."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"UPDATE goal_progress SET note=%s WHERE entity_id=%s AND id=%s "
                    f"RETURNING {_SELECT_COLUMNS}",
                    (note, entity_id, event_id),
                )
                row = cur.fetchone()
            conn.commit()
        return _row_to_event(row) if row else None

    def delete_event(self, entity_id: str, event_id: int) -> bool:
        """Remove one mistaken log. Returns False when no row matched."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM goal_progress WHERE entity_id=%s AND id=%s",
                    (entity_id, event_id),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted > 0

    def ping(self) -> None:
        """Lightweight DB health check. Raises on error."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
