"""Tests for graverip.paths: grave mirroring and conflict resolution."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from graverip.errors import ConflictResolutionExhausted
from graverip.paths import (
    find_blocking_ancestor,
    grave_destination,
    grave_path_for,
    is_under,
    resolve_conflict,
    restore_destination,
)


class TestGravePathFor:
    def test_mirrors_absolute_path(self) -> None:
        assert grave_path_for(Path("/tmp/graveyard-u"), "/home/u/notes.txt") == Path(
            "/tmp/graveyard-u/home/u/notes.txt"
        )

    def test_relative_path_is_joined(self) -> None:
        assert grave_path_for("/tmp/g", "home/u/x") == Path("/tmp/g/home/u/x")

    def test_multiple_leading_slashes(self) -> None:
        assert grave_path_for("/tmp/g", "//a/b") == Path("/tmp/g/a/b")

    def test_root_maps_to_graveyard(self) -> None:
        assert grave_path_for("/tmp/g", "/") == Path("/tmp/g")


class TestResolveConflict:
    def test_free_path_unchanged(self, tmp_path: Path) -> None:
        assert resolve_conflict(tmp_path / "free") == tmp_path / "free"

    def test_taken_path_gets_suffix(self, tmp_path: Path) -> None:
        (tmp_path / "f").write_text("x")
        assert resolve_conflict(tmp_path / "f") == tmp_path / "f~1"

    def test_skips_taken_suffixes(self, tmp_path: Path) -> None:
        for name in ("f", "f~1", "f~2"):
            (tmp_path / name).write_text("x")
        assert resolve_conflict(tmp_path / "f") == tmp_path / "f~3"

    def test_dangling_symlink_counts_as_taken(self, tmp_path: Path) -> None:
        os.symlink(tmp_path / "nowhere", tmp_path / "link")
        assert resolve_conflict(tmp_path / "link") == tmp_path / "link~1"

    def test_exhausted(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("graverip.paths.lexists", lambda p: True)
        monkeypatch.setattr("graverip.paths.MAX_SUFFIX", 4)
        with pytest.raises(ConflictResolutionExhausted):
            resolve_conflict(tmp_path / "f")

    def test_restore_destination_uses_same_chain(self, tmp_path: Path) -> None:
        (tmp_path / "notes.txt").write_text("x")
        assert restore_destination(tmp_path / "notes.txt") == tmp_path / "notes.txt~1"


class TestFindBlockingAncestor:
    def test_no_blocker(self, tmp_path: Path) -> None:
        assert find_blocking_ancestor(tmp_path / "a" / "b" / "c") is None

    def test_file_ancestor(self, tmp_path: Path) -> None:
        (tmp_path / "a").write_text("i am a file")
        assert find_blocking_ancestor(tmp_path / "a" / "b" / "c") == tmp_path / "a"

    def test_path_itself(self, tmp_path: Path) -> None:
        (tmp_path / "a").write_text("x")
        assert find_blocking_ancestor(tmp_path / "a") == tmp_path / "a"

    def test_directory_symlink_does_not_block(self, tmp_path: Path) -> None:
        (tmp_path / "real").mkdir()
        os.symlink(tmp_path / "real", tmp_path / "via")
        assert find_blocking_ancestor(tmp_path / "via" / "x") is None


class TestGraveDestination:
    def test_plain_mirror(self, tmp_path: Path) -> None:
        gy = tmp_path / "gy"
        assert grave_destination(gy, "/home/u/draft.txt") == gy / "home/u/draft.txt"

    def test_second_bury_of_same_name(self, tmp_path: Path) -> None:
        gy = tmp_path / "gy"
        (gy / "home/u").mkdir(parents=True)
        (gy / "home/u/draft.txt").write_text("first")
        assert grave_destination(gy, "/home/u/draft.txt") == gy / "home/u/draft.txt~1"

    def test_reroots_under_renamed_file_ancestor(self, tmp_path: Path) -> None:
        gy = tmp_path / "gy"
        (gy / "home/u").mkdir(parents=True)
        (gy / "home/u/docs").write_text("docs used to be a file")

        dest = grave_destination(gy, "/home/u/docs/a.txt")

        assert dest == gy / "home/u/docs~1/a.txt"
        assert (gy / "home/u/docs").read_text() == "docs used to be a file"


class TestIsUnder:
    def test_descendant(self) -> None:
        assert is_under("/tmp/g/a/b", "/tmp/g")

    def test_same(self) -> None:
        assert is_under("/tmp/g", "/tmp/g")

    def test_sibling_prefix_is_not_under(self) -> None:
        assert not is_under("/tmp/graveyard2/x", "/tmp/graveyard")

    def test_relative_is_not_under_absolute(self) -> None:
        assert not is_under("home/u", "/tmp/g")
