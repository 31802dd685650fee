from fastapi import FastAPI, Query, HTTPException
from typing import List, Optional
from datetime import date, datetime, timedelta
import random

import psycopg

from duration import continuous_duration
from errors import ValidationError, register_error_handlers
from log_setup import configure_logging
from models import (
    CompletionEvent,
    CompletionEventIn,
    ContinuousDuration,
    Goal,
    GoalIn,
    GoalUpdate,
    NoteUpdate,
    StreakReport,
)
from repo_goals import GoalRepo
from repo_progress import ProgressRepo
from service_goals import GoalService
from service_progress import ProgressService, utc_now
from settings import settings
from streaks import resolve_timezone, today_in

logger = configure_logging(settings.env, settings.log_level)

app = FastAPI(title="Streakline Backend")
register_error_handlers(app)

# Routes stay thin: everything goes through the services, which tests can
# replace with ones built on in-memory repos.
goal_svc = GoalService(GoalRepo())
svc = ProgressService(ProgressRepo(), goal_svc)


def _aware(now: Optional[datetime]) -> Optional[datetime]:
    if now is not None and now.tzinfo is None:
        raise ValidationError("`now` must include timezone info (e.g., 2025-01-10T12:00:00Z)")
    return now


@app.get("/health")
def health():
    try:
        svc.health_check()
        return {"ok": True}
    except psycopg.Error as e:
        raise HTTPException(status_code=500, detail=f"DB health check failed: {e}")


# Goals -------------------------------------------------------------------------

@app.post("/goals", response_model=Goal, status_code=201)
def create_goal(goal: GoalIn):
    try:
        return goal_svc.create_goal(goal, caller_user=None)  # later: auth user here
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Insert failed: {e}")


@app.get("/goals", response_model=List[Goal])
def list_goals(user_id: str = settings.default_user):
    try:
        return goal_svc.list_goals(user_id)
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Goals unavailable: {e}")


@app.get("/goals/{goal_id}", response_model=Goal)
def get_goal(goal_id: str):
    try:
        return goal_svc.require_goal(goal_id)
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Goals unavailable: {e}")


@app.patch("/goals/{goal_id}", response_model=Goal)
def update_goal(goal_id: str, update: GoalUpdate):
    try:
        return goal_svc.update_goal(goal_id, update)
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Update failed: {e}")


@app.delete("/goals/{goal_id}")
def delete_goal(goal_id: str):
    try:
        svc.delete_goal(goal_id)
        return {"deleted": True}
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Delete failed: {e}")


# Progress ----------------------------------------------------------------------

@app.post("/progress")
def log_progress(events: List[CompletionEventIn]):
    try:
        inserted = svc.log_events(events, caller_user=None)  # later: auth user here
        return {"inserted": inserted}
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Insert failed: {e}")


@app.get("/entities/{entity_id}/progress", response_model=List[CompletionEvent])
def list_progress(entity_id: str):
    try:
        return svc.list_events(entity_id)
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Progress log unavailable: {e}")


@app.patch("/entities/{entity_id}/progress/{event_id}", response_model=CompletionEvent)
def update_progress(entity_id: str, event_id: str, update: NoteUpdate):
    try:
        return svc.update_event(entity_id, event_id, update.note)
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Update failed: {e}")


@app.delete("/entities/{entity_id}/progress/{event_id}")
def delete_progress(entity_id: str, event_id: str):
    try:
        svc.delete_event(entity_id, event_id)
        return {"deleted": True}
    except psycopg.Error as e:
        raise HTTPException(status_code=503, detail=f"Delete failed: {e}")


@app.get("/entities/{entity_id}/streak", response_model=StreakReport)
def get_streak(
    entity_id: str,
    tz: Optional[str] = Query(None, description="IANA zone; defaults to REFERENCE_TIMEZONE"),
    now: Optional[datetime] = Query(None, description="Pin the evaluation instant"),
):
    return svc.get_streak(entity_id, tz=tz, now=_aware(now))


@app.get("/duration", response_model=ContinuousDuration)
def get_duration(
    start_date: date = Query(...),
    tz: Optional[str] = None,
    now: Optional[datetime] = None,
):
    zone = resolve_timezone(tz or settings.reference_timezone)
    today = today_in(zone, _aware(now) or utc_now())
    return continuous_duration(start_date, today)


@app.post("/seed")
def seed(
    entity_id: str = "demo-goal",
    user_id: str = settings.default_user,
    days: int = Query(7, ge=1, le=366),
    days_ago: int = Query(0, ge=0),
):
    if goal_svc.get_goal(entity_id) is None:
        goal_svc.create_goal(
            GoalIn(user_id=user_id, goal_key=entity_id, title=f"Seeded goal {entity_id}"),
            goal_id=entity_id,
        )

    now = utc_now()
    local_now = now.astimezone(resolve_timezone(settings.reference_timezone))

    events: List[CompletionEventIn] = []
    for offset in range(days_ago, days_ago + days):
        day = local_now - timedelta(days=offset)
        logged_at = day.replace(
            hour=random.randint(6, 21), minute=random.randint(0, 59), second=0, microsecond=0
        )
        events.append(CompletionEventIn(
            entity_id=entity_id,
            user_id=user_id,
            logged_at=min(logged_at, local_now),
            note="seeded",
        ))

    # NOTE: call the facade/service, NOT the raw repo
    inserted = svc.log_events(events, caller_user=None, now=now)
    logger.info("seed.done", extra={"entity_id": entity_id, "inserted": inserted})
    return {"inserted": inserted}
