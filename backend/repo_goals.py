"""
Repository: SQL operations for `goals`.

Goal ids are generated by the service and stored as TEXT; progress rows
reference them through `goal_progress.entity_id`. Only SQL and row
mapping live here.
"""

from typing import Any, Dict, List, Optional

from psycopg import sql

from db import get_conn
from models import Goal, GoalIn

_COLUMNS = (
    "id, user_id, goal_key, title, description, frequency, "
    "target_count, is_public, created_at, updated_at"
)

# columns a GoalUpdate may touch
_UPDATABLE = ("title", "description", "frequency", "target_count", "is_public")


def _row_to_goal(row) -> Goal:
    return Goal(
        id=row[0],
        user_id=row[1],
        goal_key=row[2],
        title=row[3],
        description=row[4],
        frequency=row[5],
        target_count=row[6],
        is_public=row[7],
        created_at=row[8],
        updated_at=row[9],
    )


class GoalRepo:
    """DB access only for goal records."""

    def insert_goal(self, goal_id: str, goal: GoalIn) -> Goal:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO goals (id, user_id, goal_key, title, description, frequency, target_count, is_public) "
                    f"VALUES (%s, %s, %s, %s, %s, %s, %s, %s) RETURNING {_COLUMNS}",
                    (
                        goal_id,
                        goal.user_id,
                        goal.goal_key,
                        goal.title,
                        goal.description,
                        goal.frequency,
                        goal.target_count,
                        goal.is_public,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        return _row_to_goal(row)

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM goals WHERE id=%s", (goal_id,))
                row = cur.fetchone()
        return _row_to_goal(row) if row else None

    def list_goals(self, user_id: str) -> List[Goal]:
        """A user's goals, newest first."""
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM goals WHERE user_id=%s ORDER BY created_at DESC",
                    (user_id,),
                )
                return [_row_to_goal(r) for r in cur.fetchall()]

    def update_goal(self, goal_id: str, changes: Dict[str, Any]) -> Optional[Goal]:
        """Apply `changes` (a subset of the updatable columns) to one goal."""
        assignments = [
            sql.SQL("{} = {}").format(sql.Identifier(col), sql.Placeholder())
            for col in _UPDATABLE
            if col in changes
        ]
        params = [changes[col] for col in _UPDATABLE if col in changes]
        query = sql.SQL("UPDATE goals SET {}, updated_at = now() WHERE id = %s RETURNING {}").format(
            sql.SQL(", ").join(assignments),
            sql.SQL(_COLUMNS),
        )
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, (*params, goal_id))
                row = cur.fetchone()
            conn.commit()
        return _row_to_goal(row) if row else None

    def delete_goal(self, goal_id: str) -> bool:
        """Delete a goal; its progress rows go with it (ON DELETE CASCADE)."""
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM goals WHERE id=%s", (goal_id,))
                deleted = cur.rowcount
            conn.commit()
        return deleted > 0
