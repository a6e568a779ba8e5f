"""Tests for HistoryRepository persistence."""

import pytest

from archive_gallery.io import DatabaseManager, HistoryRepository
from archive_gallery.services import HistoryError


@pytest.fixture
def database():
    db = DatabaseManager(":memory:")
    db.ensure_schema()
    yield db
    db.close()


@pytest.fixture
def repo(database):
    return HistoryRepository(database.connection)


def add(repo, key, accessed="2024-01-01T00:00:00+00:00", count=3):
    repo.append(name=f"{key}.zip", url=f"https://host/{key}.zip", image_count=count, last_accessed=accessed)


def test_repository_requires_connection():
    with pytest.raises(RuntimeError, match="Database connection required"):
        HistoryRepository(None)


def test_append_and_load_newest_first(repo):
    add(repo, "a")
    add(repo, "b")
    add(repo, "c")

    entries = repo.load_all()

    assert [entry.name for entry in entries] == ["c.zip", "b.zip", "a.zip"]
    assert all(entry.id for entry in entries)
    assert entries[0].image_count == 3
    assert not entries[0].starred


def test_reappend_updates_in_place(repo):
    """Opening the same URL again refreshes the entry without duplicating it."""
    add(repo, "a")
    add(repo, "b")
    original_id = repo.load_all()[1].id

    add(repo, "a", accessed="2024-02-01T00:00:00+00:00", count=9)

    entries = repo.load_all()
    assert [entry.name for entry in entries] == ["b.zip", "a.zip"]
    assert entries[1].id == original_id
    assert entries[1].image_count == 9
    assert entries[1].last_accessed == "2024-02-01T00:00:00+00:00"


def test_append_trims_oldest_unstarred(database):
    repo = HistoryRepository(database.connection, max_items=2)
    add(repo, "a", accessed="2024-01-01T00:00:00+00:00")
    add(repo, "b", accessed="2024-01-02T00:00:00+00:00")

    add(repo, "c", accessed="2024-01-03T00:00:00+00:00")

    assert [entry.name for entry in repo.load_all()] == ["c.zip", "b.zip"]


def test_trim_keeps_starred_entries(database):
    repo = HistoryRepository(database.connection, max_items=2)
    add(repo, "a", accessed="2024-01-01T00:00:00+00:00")
    repo.toggle_star(repo.load_all()[0].id)
    add(repo, "b", accessed="2024-01-02T00:00:00+00:00")

    add(repo, "c", accessed="2024-01-03T00:00:00+00:00")

    names = [entry.name for entry in repo.load_all()]
    assert names == ["c.zip", "a.zip"]


def test_get_entry_missing_raises(repo):
    with pytest.raises(HistoryError, match="History item not found"):
        repo.get_entry("nope")


def test_toggle_star(repo):
    add(repo, "a")
    entry_id = repo.load_all()[0].id

    assert repo.toggle_star(entry_id) is True
    assert repo.get_entry(entry_id).starred
    assert repo.toggle_star(entry_id) is False
    assert not repo.get_entry(entry_id).starred


def test_rename(repo):
    add(repo, "a")
    entry_id = repo.load_all()[0].id

    assert repo.rename(entry_id, "  Holiday photos ")
    assert repo.get_entry(entry_id).name == "Holiday photos"
    assert not repo.rename(entry_id, "   ")
    assert not repo.rename("unknown", "Name")


def test_reorder(repo):
    for key in ("a", "b", "c"):
        add(repo, key)
    ids = {entry.name: entry.id for entry in repo.load_all()}

    assert repo.reorder([ids["a.zip"], ids["c.zip"], ids["b.zip"]])

    assert [entry.name for entry in repo.load_all()] == ["a.zip", "c.zip", "b.zip"]


def test_reorder_rejects_partial_lists(repo):
    for key in ("a", "b"):
        add(repo, key)
    first = repo.load_all()[0].id

    assert not repo.reorder([first])
    assert [entry.name for entry in repo.load_all()] == ["b.zip", "a.zip"]


def test_delete(repo):
    add(repo, "a")
    add(repo, "b")
    entry_id = repo.load_all()[0].id

    repo.delete(entry_id)

    assert [entry.name for entry in repo.load_all()] == ["a.zip"]
    with pytest.raises(HistoryError):
        repo.delete(entry_id)


def test_clear_keeps_starred(repo):
    add(repo, "a")
    add(repo, "b")
    repo.toggle_star(repo.load_all()[1].id)

    repo.clear()

    entries = repo.load_all()
    assert [entry.name for entry in entries] == ["a.zip"]
    assert entries[0].starred


def test_history_survives_reopening(tmp_path):
    """Entries are persisted to the database file."""
    db_path = tmp_path / "gallery.db"
    first = DatabaseManager(db_path)
    first.ensure_schema()
    add(HistoryRepository(first.connection), "a")
    first.close()

    second = DatabaseManager(db_path)
    second.ensure_schema()
    entries = HistoryRepository(second.connection).load_all()
    second.close()

    assert [entry.url for entry in entries] == ["https://host/a.zip"]
