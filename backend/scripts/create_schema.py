"""
Create the `goals` and `goal_progress` tables (idempotent).

Progress rows belong to a goal; deleting the goal removes its log.

Usage:
    python scripts/create_schema.py
"""

import psycopg

from log_setup import configure_logging
from settings import settings

SCHEMA = """
CREATE TABLE IF NOT EXISTS goals (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    goal_key     TEXT NOT NULL,
    title        TEXT NOT NULL,
    description  TEXT,
    frequency    TEXT NOT NULL DEFAULT 'daily'
                 CHECK (frequency IN ('daily', 'weekly', 'monthly')),
    target_count INTEGER NOT NULL DEFAULT 1 CHECK (target_count >= 1),
    is_public    BOOLEAN NOT NULL DEFAULT FALSE,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at   TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (user_id, goal_key)
);

CREATE TABLE IF NOT EXISTS goal_progress (
    id         BIGSERIAL PRIMARY KEY,
    entity_id  TEXT NOT NULL REFERENCES goals (id) ON DELETE CASCADE,
    user_id    TEXT NOT NULL,
    logged_at  TIMESTAMPTZ NOT NULL,
    note       TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS goal_progress_by_entity
    ON goal_progress (entity_id, logged_at DESC);
"""


def create_schema(db_url: str) -> None:
    with psycopg.connect(db_url, connect_timeout=5) as conn:
        conn.execute(SCHEMA)
        conn.commit()


if __name__ == "__main__":
    logger = configure_logging(settings.env, settings.log_level)
    create_schema(settings.db_url)
    logger.info("schema.applied", extra={"tables": ["goals", "goal_progress"]})
