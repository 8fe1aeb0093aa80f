"""Tests for the rolling digest history file."""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path

import pytest

from news_digest.dates import format_display_date, to_timestamp_ms
from news_digest.store import DigestStore
from news_digest.types import Category, Digest, DigestArticle


def _digest(day: int, hour: int = 9, intro: str = "Intro") -> Digest:
    created = datetime(2024, 1, day, hour, 0)
    return Digest(
        date=format_display_date(created),
        intro_text=intro,
        categories=[
            Category(
                category="Tech",
                articles=[DigestArticle(title="T", url="https://example.com/t", source="Example")],
            )
        ],
        timestamp=to_timestamp_ms(created),
    )


def test_upsert_appends_and_sorts_newest_first(tmp_path: Path):
    store = DigestStore(tmp_path / "digests-data.json")

    store.upsert(_digest(14))
    store.upsert(_digest(16))
    digests = store.upsert(_digest(15))

    assert [d.date for d in digests] == [
        "January 16th, 2024",
        "January 15th, 2024",
        "January 14th, 2024",
    ]
    saved = json.loads((tmp_path / "digests-data.json").read_text(encoding="utf-8"))
    assert [item["date"] for item in saved] == [d.date for d in digests]


def test_upsert_replaces_same_calendar_day(tmp_path: Path):
    store = DigestStore(tmp_path / "digests-data.json")

    store.upsert(_digest(15, hour=8, intro="Morning"))
    digests = store.upsert(_digest(15, hour=18, intro="Evening"))

    assert len(digests) == 1
    assert digests[0].intro_text == "Evening"


def test_upsert_caps_history_at_max_entries(tmp_path: Path):
    store = DigestStore(tmp_path / "digests-data.json", max_entries=3)

    for day in range(1, 6):
        digests = store.upsert(_digest(day))

    assert len(digests) == 3
    assert [d.calendar_date.day for d in digests] == [5, 4, 3]


def test_default_store_keeps_thirty_most_recent(tmp_path: Path):
    store = DigestStore(tmp_path / "digests-data.json")

    for day in range(1, 32):
        digests = store.upsert(_digest(day))

    assert len(digests) == 30
    assert digests[0].calendar_date.day == 31
    assert digests[-1].calendar_date.day == 2
    saved = json.loads((tmp_path / "digests-data.json").read_text(encoding="utf-8"))
    assert len(saved) == 30


def test_save_writes_backup_of_previous_file(tmp_path: Path):
    path = tmp_path / "digests-data.json"
    store = DigestStore(path)

    store.upsert(_digest(1))
    store.upsert(_digest(2))

    backup = json.loads((tmp_path / "digests-data.json.backup").read_text(encoding="utf-8"))
    assert len(backup) == 1
    assert len(json.loads(path.read_text(encoding="utf-8"))) == 2


def test_load_missing_file_returns_empty(tmp_path: Path):
    assert DigestStore(tmp_path / "missing.json")._load() == []


def test_load_falls_back_to_backup_when_main_is_corrupt(tmp_path: Path):
    path = tmp_path / "digests-data.json"
    path.write_text("{not json", encoding="utf-8")
    backup = tmp_path / "digests-data.json.backup"
    backup.write_text(json.dumps([_digest(3).to_dict()]), encoding="utf-8")

    digests = DigestStore(path)._load()

    assert len(digests) == 1
    assert digests[0].calendar_date.day == 3


def test_load_rejects_entries_missing_required_fields(tmp_path: Path):
    path = tmp_path / "digests-data.json"
    path.write_text(json.dumps([{"date": "January 1st, 2024", "categories": []}]), encoding="utf-8")

    assert DigestStore(path)._load() == []


def test_load_returns_empty_when_backup_is_also_corrupt(tmp_path: Path):
    path = tmp_path / "digests-data.json"
    path.write_text("[", encoding="utf-8")
    (tmp_path / "digests-data.json.backup").write_text("also broken", encoding="utf-8")

    assert DigestStore(path)._load() == []


def test_save_failure_restores_main_file_and_reraises(tmp_path: Path, monkeypatch):
    path = tmp_path / "digests-data.json"
    store = DigestStore(path)
    store.upsert(_digest(1))
    original = path.read_text(encoding="utf-8")

    def _fail(self, *args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "write_text", _fail)

    with pytest.raises(OSError, match="disk full"):
        store.upsert(_digest(2))

    monkeypatch.undo()
    assert path.read_text(encoding="utf-8") == original
