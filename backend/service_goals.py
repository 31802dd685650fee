"""
Service layer for goal records.

A goal owns the `frequency` its streak is judged by. Progress logs and
streak lookups go through `require_goal` so an unknown goal is a 404
rather than an empty streak.
"""

import uuid
from typing import List, Optional

from psycopg import errors as pg_errors

from errors import ConflictError, NotFoundError, PermissionDeniedError
from log_setup import get_logger
from models import Goal, GoalIn, GoalUpdate
from repo_goals import GoalRepo

logger = get_logger("goals")


class GoalService:
    def __init__(self, repo: GoalRepo):
        self.repo = repo

    def create_goal(self, goal: GoalIn, caller_user: str | None = None, goal_id: Optional[str] = None) -> Goal:
        """Store a new goal. `goal_key` is unique per user (409 otherwise)."""
        if caller_user and goal.user_id != caller_user:
            raise PermissionDeniedError("Cannot create goals for another user")
        try:
            created = self.repo.insert_goal(goal_id or str(uuid.uuid4()), goal)
        except pg_errors.UniqueViolation as e:
            raise ConflictError(f"Goal {goal.goal_key!r} already exists") from e
        logger.info("goal.created", extra={"goal_id": created.id, "frequency": created.frequency})
        return created

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        return self.repo.get_goal(goal_id)

    def require_goal(self, goal_id: str) -> Goal:
        goal = self.repo.get_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"No goal {goal_id}")
        return goal

    def list_goals(self, user_id: str) -> List[Goal]:
        return self.repo.list_goals(user_id)

    def update_goal(self, goal_id: str, update: GoalUpdate) -> Goal:
        # an explicit null only clears `description`; the other columns are NOT NULL
        changes = {
            k: v
            for k, v in update.model_dump(exclude_unset=True).items()
            if v is not None or k == "description"
        }
        if not changes:
            return self.require_goal(goal_id)
        updated = self.repo.update_goal(goal_id, changes)
        if updated is None:
            raise NotFoundError(f"No goal {goal_id}")
        logger.info("goal.updated", extra={"goal_id": goal_id, "fields": sorted(changes)})
        return updated

    def delete_goal(self, goal_id: str) -> None:
        if not self.repo.delete_goal(goal_id):
            raise NotFoundError(f"No goal {goal_id}")
        logger.info("goal.deleted", extra={"goal_id": goal_id})
