import io
from datetime import datetime, timezone

from importer import import_csv
from settings import settings

NOW = datetime(2025, 1, 10, 18, 0, tzinfo=timezone.utc)

HEADER = "entity_id,user_id,logged_at,note\n"


def export(*rows):
    return io.StringIO(HEADER + "".join(r + "\n" for r in rows))


def test_imports_all_good_rows(service, repo):
    fh = export(
        "goal-1,u1,2025-01-08T09:00:00-06:00,walk",
        "goal-1,,2025-01-09T09:00:00-06:00,",
        "goal-2,u1,2025-01-10T09:00:00Z,",
    )
    assert import_csv(fh, service, now=NOW) == (3, 0)

    stored = sorted(repo.rows.values(), key=lambda r: r.logged_at)
    assert stored[0].note == "walk"
    assert stored[1].user_id == settings.default_user
    assert stored[1].note is None


def test_future_row_in_later_batch_is_skipped(service, repo):
    fh = export(
        "goal-1,u1,2025-01-07T09:00:00Z,",
        "goal-1,u1,2025-01-08T09:00:00Z,",
        "goal-1,u1,2025-01-11T09:00:00Z,tomorrow",
        "goal-1,u1,2025-01-09T09:00:00Z,",
    )
    inserted, skipped = import_csv(fh, service, now=NOW, batch_size=2)

    assert (inserted, skipped) == (3, 1)
    assert all(r.note != "tomorrow" for r in repo.rows.values())
    assert service.get_streak("goal-1", tz="UTC", now=NOW).result.total_days == 3


def test_future_rows_kept_when_tolerated(service, repo, monkeypatch):
    monkeypatch.setattr(settings, "future_event_policy", "tolerate")
    fh = export("goal-1,u1,2025-01-11T09:00:00Z,")
    assert import_csv(fh, service, now=NOW) == (1, 0)


def test_unparseable_and_naive_rows_are_skipped(service, repo):
    fh = export(
        "goal-1,u1,not-a-date,",
        "goal-1,u1,2025-01-09T09:00:00,naive",
        ",u1,2025-01-09T09:00:00Z,",
        "goal-1,u1,2025-01-09T09:00:00Z,",
    )
    assert import_csv(fh, service, now=NOW) == (1, 3)
    assert len(repo.rows) == 1


def test_batch_size_never_exceeds_service_limit(service, repo, monkeypatch):
    monkeypatch.setattr(settings, "max_batch_size", 2)
    fh = export(*[f"goal-1,u1,2025-01-0{d}T09:00:00Z," for d in range(1, 6)])
    assert import_csv(fh, service, now=NOW, batch_size=1000) == (5, 0)


def test_rows_for_unknown_goals_are_skipped(service, repo):
    fh = export(
        "missing,u1,2025-01-08T09:00:00Z,",
        "goal-1,u1,2025-01-09T09:00:00Z,",
        "missing,u1,2025-01-09T09:00:00Z,",
    )
    assert import_csv(fh, service, now=NOW) == (1, 2)
    assert [r.entity_id for r in repo.rows.values()] == ["goal-1"]
