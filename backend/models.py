"""
Pydantic models used across the backend.

Input shapes validate at the FastAPI boundary; the stored and derived
shapes are frozen so nothing downstream can alter a logged event or a
computed streak in place.

Guidelines:
- `CompletionEventIn` is what clients send; `CompletionEvent` is what the
  repository reads back (it carries the DB `id`).
- `StreakResult` is a pure function of (events, now, timezone) and is
  never persisted.
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

GoalFrequency = Literal["daily", "weekly", "monthly"]


class GoalIn(BaseModel):
    """A trackable goal. Its `id` is the `entity_id` progress logs point at.

    `frequency` is declared per goal; only `daily` goals have streaks.
    """

    user_id: str = Field(..., min_length=1)
    goal_key: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    frequency: GoalFrequency = "daily"
    target_count: int = Field(1, ge=1)
    is_public: bool = False


class Goal(GoalIn):
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    updated_at: datetime


class GoalUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    frequency: Optional[GoalFrequency] = None
    target_count: Optional[int] = Field(None, ge=1)
    is_public: Optional[bool] = None


class NoteUpdate(BaseModel):
    note: Optional[str] = None


class CompletionEventIn(BaseModel):
    """Input shape for one "I did this" log sent by clients.

    Fields:
    - `entity_id`: the goal/habit being tracked (opaque string).
    - `user_id`: who logged it; checked against the caller by the service.
    - `logged_at`: ISO-8601 timestamp. Service enforces timezone-awareness.
    - `note`: free text, carried through and never interpreted.
    """

    entity_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    logged_at: datetime
    note: Optional[str] = None


class CompletionEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    entity_id: str
    user_id: str
    logged_at: datetime
    note: Optional[str] = None


class StreakResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_streak: int = Field(0, ge=0)
    best_streak: int = Field(0, ge=0)
    total_days: int = Field(0, ge=0)
    last_logged_date: Optional[date] = None
    is_active_today: bool = False

    @classmethod
    def empty(cls) -> "StreakResult":
        return cls()


class StreakReport(BaseModel):
    """What a caller gets back for one entity.

    `available` is False when the progress log could not be read; in that
    case `result` is either the last known value (`stale` is True) or the
    all-zero result, never a guess.
    """

    entity_id: str
    timezone: str
    frequency: GoalFrequency = "daily"
    available: bool = True
    stale: bool = False
    result: StreakResult
    error: Optional[str] = None


class ContinuousDuration(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: date
    total_days: int = Field(0, ge=0)
    years: int = 0
    months: int = 0
    days: int = 0
    formatted: str
