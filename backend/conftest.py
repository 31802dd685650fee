# backend/conftest.py
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import psycopg
import pytest
from psycopg import errors as pg_errors

# Add backend root to PYTHONPATH
BACKEND_ROOT = Path(__file__).resolve().parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from cache import StreakCache  # noqa: E402
from models import CompletionEvent, CompletionEventIn, Goal, GoalIn  # noqa: E402
from service_goals import GoalService  # noqa: E402
from service_progress import ProgressService  # noqa: E402


class InMemoryProgressRepo:
    """Stands in for ProgressRepo; same methods, no database."""

    def __init__(self):
        self.rows: Dict[str, CompletionEvent] = {}
        self.next_id = 1
        self.fail_reads = False
        self.list_calls = 0

    def insert_events(self, events: List[CompletionEventIn]) -> int:
        for e in events:
            event_id = str(self.next_id)
            self.next_id += 1
            self.rows[event_id] = CompletionEvent(id=event_id, **e.model_dump())
        return len(events)

    def list_events(self, entity_id: str) -> List[CompletionEvent]:
        self.list_calls += 1
        if self.fail_reads:
            raise psycopg.OperationalError("connection refused")
        matching = [r for r in self.rows.values() if r.entity_id == entity_id]
        return sorted(matching, key=lambda r: r.logged_at.astimezone(timezone.utc), reverse=True)

    def update_note(self, entity_id: str, event_id: int, note: Optional[str]) -> Optional[CompletionEvent]:
        row = self.rows.get(str(event_id))
        if row is None or row.entity_id != entity_id:
            return None
        self.rows[row.id] = row.model_copy(update={"note": note})
        return self.rows[row.id]

    def delete_event(self, entity_id: str, event_id: int) -> bool:
        row = self.rows.get(str(event_id))
        if row is None or row.entity_id != entity_id:
            return False
        del self.rows[row.id]
        return True

    def ping(self) -> None:
        if self.fail_reads:
            raise psycopg.OperationalError("connection refused")


class InMemoryGoalRepo:
    """Stands in for GoalRepo, including the (user_id, goal_key) constraint."""

    def __init__(self):
        self.goals: Dict[str, Goal] = {}
        self.fail_reads = False

    def insert_goal(self, goal_id: str, goal: GoalIn) -> Goal:
        if goal_id in self.goals or any(
            g.user_id == goal.user_id and g.goal_key == goal.goal_key for g in self.goals.values()
        ):
            raise pg_errors.UniqueViolation("duplicate key value violates unique constraint")
        stamp = datetime.now(timezone.utc)
        self.goals[goal_id] = Goal(id=goal_id, created_at=stamp, updated_at=stamp, **goal.model_dump())
        return self.goals[goal_id]

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        if self.fail_reads:
            raise psycopg.OperationalError("connection refused")
        return self.goals.get(goal_id)

    def list_goals(self, user_id: str) -> List[Goal]:
        mine = [g for g in self.goals.values() if g.user_id == user_id]
        return sorted(mine, key=lambda g: g.created_at, reverse=True)

    def update_goal(self, goal_id: str, changes: Dict[str, Any]) -> Optional[Goal]:
        goal = self.goals.get(goal_id)
        if goal is None:
            return None
        self.goals[goal_id] = goal.model_copy(update={**changes, "updated_at": datetime.now(timezone.utc)})
        return self.goals[goal_id]

    def delete_goal(self, goal_id: str) -> bool:
        return self.goals.pop(goal_id, None) is not None


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def add_goal(goals: GoalService, goal_id: str, frequency: str = "daily", user_id: str = "u1") -> Goal:
    return goals.create_goal(
        GoalIn(user_id=user_id, goal_key=goal_id, title=f"Goal {goal_id}", frequency=frequency),
        goal_id=goal_id,
    )


@pytest.fixture
def repo():
    return InMemoryProgressRepo()


@pytest.fixture
def goal_repo():
    return InMemoryGoalRepo()


@pytest.fixture
def goals(goal_repo):
    svc = GoalService(goal_repo)
    add_goal(svc, "goal-1")
    add_goal(svc, "goal-2")
    return svc


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(repo, goals, clock):
    return ProgressService(repo, goals, cache=StreakCache(ttl_seconds=60, clock=clock))


@pytest.fixture
def make_goal(goals):
    def _make(goal_id: str, frequency: str = "daily", user_id: str = "u1") -> Goal:
        return add_goal(goals, goal_id, frequency=frequency, user_id=user_id)

    return _make
