"""
Bulk-load a CSV export of progress logs into `goal_progress`.

`logged_at` must be ISO-8601 with an offset (e.g. 2025-01-10T08:15:00-06:00).
Rows that cannot be stored are skipped and reported; see `importer.import_csv`.

Usage:
    python scripts/import_progress.py <path_to_export.csv>
"""

import sys

from errors import AppError
from importer import import_csv
from log_setup import configure_logging
from repo_goals import GoalRepo
from repo_progress import ProgressRepo
from service_goals import GoalService
from service_progress import ProgressService
from settings import settings


def main(export_path: str) -> int:
    logger = configure_logging(settings.env, settings.log_level)
    svc = ProgressService(ProgressRepo(), GoalService(GoalRepo()))

    logger.info("import.start", extra={"path": export_path})
    with open(export_path, newline="", encoding="utf-8") as fh:
        inserted, _ = import_csv(fh, svc)
    return inserted


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/import_progress.py <path_to_export.csv>")
        sys.exit(1)

    try:
        main(sys.argv[1])
    except AppError as e:
        print(f"Import stopped: {e.message}")
        sys.exit(1)
