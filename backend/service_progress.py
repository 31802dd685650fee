"""
Service / facade layer for progress logs and streaks.

This module implements business rules and normalization before any DB
interaction. It is free of SQL: it calls `ProgressRepo` for reads and
writes, `GoalService` for the goal each log belongs to, and the pure
`streaks` engine for the math. All write paths go through this service
so the cache is invalidated in one place.

Key responsibilities:
- protect the system (max batch sizes, unknown goals)
- enforce timestamp rules (timezone-awareness, future policy, UTC storage)
- permission check using `caller_user`
- refuse streaks for goals whose declared frequency is not daily
- fetch-then-compute sequencing and the streak cache
- degrade to an explicit "unavailable" report when the store fails
"""

from datetime import datetime, timezone
from typing import List, Optional

import psycopg

from cache import StreakCache
from errors import NotFoundError, PermissionDeniedError, UnsupportedFrequencyError, ValidationError
from log_setup import get_logger
from models import CompletionEvent, CompletionEventIn, StreakReport, StreakResult
from repo_progress import ProgressRepo
from service_goals import GoalService
from settings import settings
from streaks import calculate_streaks, resolve_timezone

logger = get_logger("service")

# goal_progress.id is a BIGSERIAL
_MAX_EVENT_ID = 2**63 - 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_event_id(event_id: str) -> Optional[int]:
    """Row id for `event_id`, or None if it cannot name a stored row."""
    if not (event_id.isascii() and event_id.isdigit()):
        return None
    value = int(event_id)
    return value if 0 < value <= _MAX_EVENT_ID else None


class ProgressService:
    """Business rules + validation + caching around the streak engine.

    Example usage:
        goals = GoalService(GoalRepo())
        svc = ProgressService(ProgressRepo(), goals)
        svc.log_events(events, caller_user='alice')
        svc.get_streak(goal.id)
    """

    def __init__(self, repo: ProgressRepo, goals: GoalService, cache: Optional[StreakCache] = None):
        self.repo = repo
        self.goals = goals
        self.cache = cache if cache is not None else StreakCache(
            settings.streak_cache_ttl_seconds, max_entries=settings.streak_cache_max_entries
        )

    def check_timestamp(self, event: CompletionEventIn, now: datetime) -> None:
        """Raise `ValidationError` if `event.logged_at` may not be stored."""
        if event.logged_at.tzinfo is None:
            raise ValidationError("Timestamp must include timezone info (e.g., 2025-01-10T10:00:00Z)")
        if settings.future_event_policy == "reject" and event.logged_at > now:
            raise ValidationError(f"Timestamp is in the future: {event.logged_at.isoformat()}")

    def log_events(
        self,
        events: List[CompletionEventIn],
        caller_user: str | None = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Validate and persist a batch of progress logs.

        Nothing is written unless every event in the batch passes.

        Raises:
        - `ValidationError` for a too-large batch, a naive timestamp, or a
          future timestamp while `future_event_policy` is `reject`
        - `PermissionDeniedError` if `caller_user` writes for another user
        - `NotFoundError` if an event names a goal that does not exist
        """

        if len(events) == 0:
            return 0
        if len(events) > settings.max_batch_size:
            raise ValidationError(
                f"Too many events in one request: {len(events)} (max {settings.max_batch_size})"
            )

        now = now or utc_now()
        normalized: List[CompletionEventIn] = []
        for e in events:
            self.check_timestamp(e, now)

            if caller_user and e.user_id != caller_user:
                raise PermissionDeniedError("Cannot log progress for another user")

            # Stored as UTC; the caller's object is left untouched.
            normalized.append(e.model_copy(update={"logged_at": e.logged_at.astimezone(timezone.utc)}))

        entity_ids = {e.entity_id for e in normalized}
        for entity_id in entity_ids:
            self.goals.require_goal(entity_id)

        inserted = self.repo.insert_events(normalized)
        for entity_id in entity_ids:
            self.cache.invalidate(entity_id)
        logger.info("progress.logged", extra={"inserted": inserted, "entities": len(entity_ids)})
        return inserted

    def delete_goal(self, goal_id: str) -> None:
        """Delete a goal with its log and drop its cached streaks."""
        self.goals.delete_goal(goal_id)
        self.cache.invalidate(goal_id)

    def list_events(self, entity_id: str) -> List[CompletionEvent]:
        return self.repo.list_events(entity_id)

    def update_event(self, entity_id: str, event_id: str, note: Optional[str]) -> CompletionEvent:
        """Correct the note on one log. Timestamps stay immutable."""
        row_id = parse_event_id(event_id)
        updated = self.repo.update_note(entity_id, row_id, note) if row_id is not None else None
        if updated is None:
            raise NotFoundError(f"No progress entry {event_id} for {entity_id}")
        logger.info("progress.note_updated", extra={"entity_id": entity_id, "event_id": event_id})
        return updated

    def delete_event(self, entity_id: str, event_id: str) -> None:
        row_id = parse_event_id(event_id)
        if row_id is None or not self.repo.delete_event(entity_id, row_id):
            raise NotFoundError(f"No progress entry {event_id} for {entity_id}")
        self.cache.invalidate(entity_id)
        logger.info("progress.deleted", extra={"entity_id": entity_id, "event_id": event_id})

    def get_streak(
        self,
        entity_id: str,
        tz: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> StreakReport:
        """Fetch the goal and its full log, then compute its streaks.

        The goal's declared frequency decides whether a streak exists at
        all: weekly and monthly goals raise `UnsupportedFrequencyError`.
        Results are cached per (entity, zone) only when `now` is not pinned
        by the caller, and only when the log is non-empty. A store failure
        never raises: the report comes back with `available=False` and
        either the last known result or zeros.
        """

        tz_name = tz or settings.reference_timezone
        resolve_timezone(tz_name)
        key = (entity_id, tz_name)

        generation = self.cache.generation(entity_id)
        try:
            goal = self.goals.require_goal(entity_id)
            if goal.frequency != "daily":
                raise UnsupportedFrequencyError(
                    f"Goal {entity_id} is {goal.frequency}; only daily goals have streaks"
                )

            use_cache = now is None
            if use_cache:
                cached = self.cache.get(key)
                if cached is not None:
                    logger.debug("streak.cache_hit", extra={"entity_id": entity_id, "timezone": tz_name})
                    return StreakReport(
                        entity_id=entity_id, timezone=tz_name, frequency=goal.frequency, result=cached
                    )

            events = self.repo.list_events(entity_id)
        except psycopg.Error as e:
            logger.warning(
                "streak.fetch_failed",
                exc_info=True,
                extra={"entity_id": entity_id, "timezone": tz_name},
            )
            last_known = self.cache.last_known(key)
            return StreakReport(
                entity_id=entity_id,
                timezone=tz_name,
                available=False,
                stale=last_known is not None,
                result=last_known or StreakResult.empty(),
                error=f"Progress log unavailable: {e.__class__.__name__}",
            )

        result = calculate_streaks(events, tz_name, now or utc_now())
        if use_cache and result.total_days > 0:
            self.cache.put(key, result, generation)
        return StreakReport(entity_id=entity_id, timezone=tz_name, frequency=goal.frequency, result=result)

    def health_check(self) -> None:
        """Perform a lightweight DB ping via the repository."""

        self.repo.ping()
