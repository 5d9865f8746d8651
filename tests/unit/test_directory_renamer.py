"""Unit tests for directory_renamer module."""

from __future__ import annotations

from pathlib import Path

import pytest

from avif_converter.handlers.directory_renamer import DirectoryRenamer
from avif_converter.reporters.error_log import ErrorLog


@pytest.fixture
def rename_log(temp_dir: Path) -> ErrorLog:
    """Provide a rename log outside the source tree."""
    return ErrorLog(temp_dir / "logs" / "rename_error.txt")


@pytest.fixture
def tree(temp_dir: Path) -> Path:
    """Create a source root for rename tests."""
    root = temp_dir / "src"
    root.mkdir()
    return root


class TestCollectDirectories:
    """Tests for collect_directories method."""

    def test_deepest_first(self, tree: Path, rename_log: ErrorLog) -> None:
        """Test that children are listed before their parents."""
        (tree / "a" / "b" / "c").mkdir(parents=True)
        (tree / "d").mkdir()

        directories = DirectoryRenamer(rename_log).collect_directories(tree)

        assert directories == [
            tree / "a" / "b" / "c",
            tree / "a" / "b",
            tree / "a",
            tree / "d",
        ]


class TestRenameAll:
    """Tests for rename_all method."""

    def test_nested_unsafe_names(self, tree: Path, rename_log: ErrorLog) -> None:
        """Test that every level of a nested unsafe path is renamed."""
        (tree / "Trip (2021)" / "day #1").mkdir(parents=True)
        (tree / "Trip (2021)" / "day #1" / "a.png").write_bytes(b"x")

        summary = DirectoryRenamer(rename_log).rename_all(tree)

        assert summary.renamed_count == 2
        assert summary.failed_count == 0
        assert (tree / "Trip__2021_" / "day__1" / "a.png").read_bytes() == b"x"
        assert not (tree / "Trip (2021)").exists()

    def test_safe_names_untouched(self, tree: Path, rename_log: ErrorLog) -> None:
        """Test that sanitized names are left alone."""
        (tree / "already_safe").mkdir()

        summary = DirectoryRenamer(rename_log).rename_all(tree)

        assert summary.renamed_count == 0
        assert (tree / "already_safe").is_dir()
        assert not rename_log.path.exists()

    def test_root_never_renamed(self, temp_dir: Path, rename_log: ErrorLog) -> None:
        """Test that the source root keeps its name."""
        root = temp_dir / "my photos"
        (root / "x y").mkdir(parents=True)

        DirectoryRenamer(rename_log).rename_all(root)

        assert root.is_dir()
        assert (root / "x_y").is_dir()

    def test_collision_uses_numbered_alternative(
        self, tree: Path, rename_log: ErrorLog
    ) -> None:
        """Test that an existing target is never merged into."""
        (tree / "a_b").mkdir()
        (tree / "a_b" / "keep.png").write_bytes(b"1")
        (tree / "a b").mkdir()
        (tree / "a b" / "moved.png").write_bytes(b"2")

        summary = DirectoryRenamer(rename_log).rename_all(tree)

        assert summary.renamed == [(tree / "a b", tree / "a_b_1")]
        assert (tree / "a_b" / "keep.png").read_bytes() == b"1"
        assert (tree / "a_b_1" / "moved.png").read_bytes() == b"2"

    def test_two_sources_same_sanitized_name(self, tree: Path, rename_log: ErrorLog) -> None:
        """Test that two unsafe names mapping to one safe name both survive."""
        (tree / "a b").mkdir()
        (tree / "a#b").mkdir()

        summary = DirectoryRenamer(rename_log).rename_all(tree)

        assert summary.renamed_count == 2
        assert sorted(p.name for p in tree.iterdir()) == ["a_b", "a_b_1"]

    def test_alternatives_exhausted(self, tree: Path, rename_log: ErrorLog) -> None:
        """Test that a directory keeps its name when no alternative is free."""
        (tree / "a_b").mkdir()
        (tree / "a_b_1").mkdir()
        (tree / "a b").mkdir()

        summary = DirectoryRenamer(rename_log, max_alternatives=1).rename_all(tree)

        assert summary.failed_count == 1
        assert (tree / "a b").is_dir()
        content = rename_log.path.read_text(encoding="utf-8")
        assert "Error renaming from" in content
        assert "Alternate method also failed" in content

    def test_fallback_after_rename_error(
        self, tree: Path, rename_log: ErrorLog, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a failed rename falls back to a numbered alternative."""
        (tree / "x y").mkdir()
        original_rename = Path.rename
        calls: list[Path] = []

        def flaky_rename(self: Path, target: Path) -> Path:
            calls.append(Path(target))
            if len(calls) == 1:
                raise PermissionError("locked")
            return original_rename(self, target)

        monkeypatch.setattr(Path, "rename", flaky_rename)

        summary = DirectoryRenamer(rename_log).rename_all(tree)

        assert calls == [tree / "x_y", tree / "x_y_1"]
        assert summary.renamed == [(tree / "x y", tree / "x_y_1")]
        assert summary.failed_count == 0
        content = rename_log.path.read_text(encoding="utf-8")
        assert "Used numbered alternative" in content

    def test_persistent_failure_keeps_name(
        self, tree: Path, rename_log: ErrorLog, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a directory that cannot be renamed is logged and kept."""
        (tree / "x y").mkdir()
        (tree / "other dir").mkdir()

        original_rename = Path.rename

        def failing_rename(self: Path, target: Path) -> Path:
            if self.name == "x y":
                raise PermissionError("locked")
            return original_rename(self, target)

        monkeypatch.setattr(Path, "rename", failing_rename)

        summary = DirectoryRenamer(rename_log).rename_all(tree)

        assert summary.failed_count == 1
        assert summary.renamed == [(tree / "other dir", tree / "other_dir")]
        assert (tree / "x y").is_dir()
        assert "Original error: locked" in rename_log.path.read_text(encoding="utf-8")

    def test_fallback_tried_once(
        self, tree: Path, rename_log: ErrorLog, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that only one numbered alternative is tried after a failure."""
        (tree / "x y").mkdir()
        calls: list[Path] = []

        def failing_rename(self: Path, target: Path) -> Path:
            calls.append(Path(target))
            raise PermissionError("locked")

        monkeypatch.setattr(Path, "rename", failing_rename)

        summary = DirectoryRenamer(rename_log).rename_all(tree)

        assert calls == [tree / "x_y", tree / "x_y_1"]
        assert summary.failed_count == 1
