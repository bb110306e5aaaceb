"""Tests for graverip.record: the append-only record log."""

from __future__ import annotations

import stat
from datetime import datetime
from pathlib import Path

import pytest

from graverip.errors import CorruptRecordError
from graverip.record import RECORD_NAME, RecordEntry, RecordStore, format_timestamp


@pytest.fixture
def graveyard(tmp_path: Path) -> Path:
    return tmp_path / "graveyard"


@pytest.fixture
def store(graveyard: Path) -> RecordStore:
    return RecordStore.for_graveyard(graveyard)


def _bury_fake(store: RecordStore, graveyard: Path, original: str, exists: bool = True) -> Path:
    """Append an entry and optionally create its grave on disk."""
    grave = graveyard / original.lstrip("/")
    if exists:
        grave.parent.mkdir(parents=True, exist_ok=True)
        grave.write_text(original)
    store.append(Path(original), grave, timestamp="Sat Oct  3 09:05:01 2026")
    return grave


class TestFormatTimestamp:
    def test_day_is_space_padded(self) -> None:
        assert format_timestamp(datetime(2026, 10, 3, 9, 5, 1)) == "Sat Oct  3 09:05:01 2026"

    def test_two_digit_day(self) -> None:
        assert format_timestamp(datetime(2026, 10, 17, 23, 0, 0)) == "Sat Oct 17 23:00:00 2026"


class TestAppend:
    def test_creates_log_and_parents(self, store: RecordStore, graveyard: Path) -> None:
        store.append(Path("/home/u/notes.txt"), graveyard / "home/u/notes.txt")
        assert store.path == graveyard / RECORD_NAME
        assert store.path.exists()

    def test_line_format(self, store: RecordStore, graveyard: Path) -> None:
        store.append(Path("/home/u/notes.txt"), graveyard / "home/u/notes.txt", timestamp="T")
        assert store.path.read_text() == f"T\t/home/u/notes.txt\t{graveyard}/home/u/notes.txt\n"

    def test_appends_in_order(self, store: RecordStore, graveyard: Path) -> None:
        _bury_fake(store, graveyard, "/a")
        _bury_fake(store, graveyard, "/b")
        assert [e.original for e in store.scan()] == [Path("/a"), Path("/b")]

    def test_default_timestamp(self, store: RecordStore, graveyard: Path) -> None:
        entry = store.append(Path("/a"), graveyard / "a")
        assert entry.timestamp.endswith(str(datetime.now().year))


class TestScan:
    def test_missing_log_is_empty(self, store: RecordStore) -> None:
        assert store.scan() == []

    def test_parses_entries(self, store: RecordStore, graveyard: Path) -> None:
        grave = _bury_fake(store, graveyard, "/home/u/notes.txt")
        assert store.scan() == [
            RecordEntry("Sat Oct  3 09:05:01 2026", Path("/home/u/notes.txt"), grave),
        ]

    def test_skips_blank_lines(self, store: RecordStore, graveyard: Path) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text(f"T\t/a\t{graveyard}/a\n\n\nT\t/b\t{graveyard}/b\n")
        assert len(store.scan()) == 2

    def test_too_few_fields_is_corrupt(self, store: RecordStore, graveyard: Path) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text(f"T\t/a\t{graveyard}/a\nT\t/b\n")
        with pytest.raises(CorruptRecordError, match="Corrupt record") as excinfo:
            store.scan()
        assert excinfo.value.line_no == 2

    def test_too_many_fields_is_corrupt(self, store: RecordStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text("T\t/a\t/g/a\textra\n")
        with pytest.raises(CorruptRecordError):
            store.scan()


class TestRemove:
    def test_removes_only_selected(self, store: RecordStore, graveyard: Path) -> None:
        a = _bury_fake(store, graveyard, "/a")
        b = _bury_fake(store, graveyard, "/b")
        c = _bury_fake(store, graveyard, "/c")
        lines_before = store.path.read_text().splitlines()

        assert store.remove({b}) == 1

        lines_after = store.path.read_text().splitlines()
        assert lines_after == [lines_before[0], lines_before[2]]
        assert [e.grave for e in store.scan()] == [a, c]

    def test_empty_set_is_noop(self, store: RecordStore, graveyard: Path) -> None:
        _bury_fake(store, graveyard, "/a")
        before = store.path.read_text()
        assert store.remove(set()) == 0
        assert store.path.read_text() == before

    def test_unknown_graves(self, store: RecordStore, graveyard: Path) -> None:
        _bury_fake(store, graveyard, "/a")
        assert store.remove({graveyard / "nope"}) == 0
        assert len(store.scan()) == 1

    def test_no_temp_files_left(self, store: RecordStore, graveyard: Path) -> None:
        a = _bury_fake(store, graveyard, "/a")
        store.remove({a})
        assert [p.name for p in graveyard.iterdir() if p.name.startswith(".record.")] == []

    def test_keeps_file_mode(self, store: RecordStore, graveyard: Path) -> None:
        a = _bury_fake(store, graveyard, "/a")
        _bury_fake(store, graveyard, "/b")
        store.path.chmod(0o644)

        store.remove({a})

        assert stat.S_IMODE(store.path.stat().st_mode) == 0o644


class TestFindLatest:
    def test_returns_most_recent(self, store: RecordStore, graveyard: Path) -> None:
        _bury_fake(store, graveyard, "/a")
        b = _bury_fake(store, graveyard, "/b")
        assert store.find_latest().grave == b

    def test_empty(self, store: RecordStore) -> None:
        assert store.find_latest() is None

    def test_prunes_stale_entries(self, store: RecordStore, graveyard: Path) -> None:
        a = _bury_fake(store, graveyard, "/a")
        b = _bury_fake(store, graveyard, "/b")
        b.unlink()  # deleted out-of-band

        latest = store.find_latest()

        assert latest.grave == a
        assert [e.grave for e in store.scan()] == [a]

    def test_all_stale(self, store: RecordStore, graveyard: Path) -> None:
        _bury_fake(store, graveyard, "/a", exists=False)
        _bury_fake(store, graveyard, "/b", exists=False)
        assert store.find_latest() is None
        assert store.scan() == []

    def test_predicate_scopes_search(self, store: RecordStore, graveyard: Path) -> None:
        here = _bury_fake(store, graveyard, "/home/u/a")
        _bury_fake(store, graveyard, "/elsewhere/b")

        latest = store.find_latest(lambda e: e.original.is_relative_to("/home/u"))

        assert latest.grave == here

    def test_stale_outside_scope_is_kept(self, store: RecordStore, graveyard: Path) -> None:
        _bury_fake(store, graveyard, "/elsewhere/gone", exists=False)
        here = _bury_fake(store, graveyard, "/home/u/a")

        store.find_latest(lambda e: e.original.is_relative_to("/home/u"))

        assert len(store.scan()) == 2
        assert store.scan()[1].grave == here


class TestQueries:
    def test_lookup_in_log_order(self, store: RecordStore, graveyard: Path) -> None:
        a = _bury_fake(store, graveyard, "/a")
        b = _bury_fake(store, graveyard, "/b")
        _bury_fake(store, graveyard, "/c")
        assert [e.grave for e in store.lookup([b, a])] == [a, b]

    def test_lookup_prefers_latest_duplicate(self, store: RecordStore, graveyard: Path) -> None:
        grave = graveyard / "a"
        store.append(Path("/old"), grave, timestamp="first")
        store.append(Path("/new"), grave, timestamp="second")
        [entry] = store.lookup([grave])
        assert entry.timestamp == "second"

    def test_entries_under(self, store: RecordStore, graveyard: Path) -> None:
        a = _bury_fake(store, graveyard, "/home/u/a")
        _bury_fake(store, graveyard, "/srv/b")
        c = _bury_fake(store, graveyard, "/home/u/sub/c")
        assert [e.grave for e in store.entries_under(graveyard / "home/u")] == [a, c]
