"""
Database connection helper for the progress log.

Every repository call opens its own short-lived connection through
`get_conn()`; a pool can replace it here without touching `repo_progress`.

Usage:
    from db import get_conn
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT count(*) FROM goal_progress;")
"""

import psycopg
from settings import settings


def get_conn() -> psycopg.Connection:
    """Open a psycopg connection to `settings.db_url`.

    The short `connect_timeout` keeps a streak request from hanging when
    the store is down; the service turns that failure into an
    "unavailable" report instead of an error page.
    """

    return psycopg.connect(settings.db_url, connect_timeout=5)
