"""
CSV import of progress logs.

Expected header: entity_id,user_id,logged_at,note

Every row is checked on its own before it joins a batch: rows that do not
parse, name a goal that does not exist, carry a naive timestamp, or
(under the `reject` future policy) lie in the future are logged and
skipped. A later bad row therefore never aborts an import whose earlier
batches were already committed.
"""

import csv
from datetime import datetime
from typing import Dict, List, Optional, TextIO, Tuple

from pydantic import ValidationError as ModelValidationError

from errors import ValidationError
from log_setup import get_logger
from models import CompletionEventIn
from service_progress import ProgressService, utc_now
from settings import settings

logger = get_logger("importer")

DEFAULT_BATCH_SIZE = 1000


def _parse_row(row: dict) -> CompletionEventIn:
    return CompletionEventIn(
        entity_id=row["entity_id"],
        user_id=row.get("user_id") or settings.default_user,
        logged_at=row["logged_at"],
        note=row.get("note") or None,
    )


def import_csv(
    fh: TextIO,
    svc: ProgressService,
    now: Optional[datetime] = None,
    batch_size: Optional[int] = None,
) -> Tuple[int, int]:
    """Stream `fh` into the progress log. Returns (inserted, skipped)."""

    now = now or utc_now()
    batch_size = min(batch_size or DEFAULT_BATCH_SIZE, settings.max_batch_size)
    inserted = 0
    skipped = 0
    batch: List[CompletionEventIn] = []
    known_goals: Dict[str, bool] = {}

    # Only one batch is held in memory at a time.
    for line_no, row in enumerate(csv.DictReader(fh), start=2):
        try:
            event = _parse_row(row)
            svc.check_timestamp(event, now)
            if event.entity_id not in known_goals:
                known_goals[event.entity_id] = svc.goals.get_goal(event.entity_id) is not None
            if not known_goals[event.entity_id]:
                raise ValidationError(f"No goal {event.entity_id}")
        except (KeyError, ModelValidationError, ValidationError) as e:
            logger.warning("import.row_skipped", extra={"line": line_no, "reason": str(e)})
            skipped += 1
            continue

        batch.append(event)
        if len(batch) >= batch_size:
            inserted += svc.log_events(batch, now=now)
            logger.info("import.progress", extra={"inserted": inserted})
            batch = []

    if batch:
        inserted += svc.log_events(batch, now=now)

    logger.info("import.complete", extra={"inserted": inserted, "skipped": skipped})
    return inserted, skipped
