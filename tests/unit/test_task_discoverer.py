"""Unit tests for task discovery and folder grouping."""

from __future__ import annotations

from pathlib import Path

import pytest

from avif_converter.core.types import ConversionTask
from avif_converter.extractors.folder_grouper import group_by_folder
from avif_converter.extractors.task_discoverer import TaskDiscoverer, is_supported_image
from avif_converter.reporters.error_log import ErrorLog


@pytest.fixture
def error_log(temp_dir: Path) -> ErrorLog:
    """Provide an error log outside the source tree."""
    return ErrorLog(temp_dir / "reports" / "error.txt")


class TestIsSupportedImage:
    """Tests for is_supported_image function."""

    @pytest.mark.parametrize(
        "name", ["a.png", "b.JPG", "c.jpeg", "d.bmp", "e.gif", "f.TIFF"]
    )
    def test_supported(self, name: str) -> None:
        """Test supported extensions in any case."""
        assert is_supported_image(name) is True

    @pytest.mark.parametrize("name", ["a.txt", "b.avif", "c.webp", "png", "d.tif"])
    def test_unsupported(self, name: str) -> None:
        """Test that other files are ignored."""
        assert is_supported_image(name) is False


class TestTaskDiscoverer:
    """Tests for TaskDiscoverer class."""

    def test_discovers_images(self, source_tree: Path, error_log: ErrorLog) -> None:
        """Test that every supported image becomes one task."""
        target = source_tree.parent / "photos_avif"

        result = TaskDiscoverer(source_tree, target, error_log).discover()

        assert len(result.tasks) == 6
        assert result.failed == []
        assert all(t.input_path.suffix.lower() != ".txt" for t in result.tasks)

    def test_target_directories_created(self, source_tree: Path, error_log: ErrorLog) -> None:
        """Test that the mirrored, sanitized directories exist after discovery."""
        target = source_tree.parent / "photos_avif"

        result = TaskDiscoverer(source_tree, target, error_log).discover()

        assert (target / "Trip__2021_").is_dir()
        assert (target / "Trip__2021_" / "day__1").is_dir()
        by_name = {t.input_path.name: t for t in result.tasks}
        assert by_name["a.gif"].output_directory == target / "Trip__2021_" / "day__1"
        assert by_name["a.gif"].sanitized_relative_path == Path("Trip__2021_/day__1")
        assert by_name["cover.png"].output_directory == target

    def test_deterministic_order(self, source_tree: Path, error_log: ErrorLog) -> None:
        """Test that two discoveries return the same order."""
        target = source_tree.parent / "photos_avif"

        first = TaskDiscoverer(source_tree, target, error_log).discover()
        second = TaskDiscoverer(source_tree, target, error_log).discover()

        assert [t.input_path for t in first.tasks] == [t.input_path for t in second.tasks]

    def test_empty_tree(self, temp_dir: Path, error_log: ErrorLog) -> None:
        """Test a tree without images."""
        root = temp_dir / "empty"
        (root / "sub").mkdir(parents=True)
        (root / "sub" / "readme.md").write_text("x")

        result = TaskDiscoverer(root, temp_dir / "empty_avif", error_log).discover()

        assert result.is_empty
        assert not (temp_dir / "empty_avif" / "sub").exists()

    def test_unwritable_target_skips_folder(
        self, source_tree: Path, error_log: ErrorLog
    ) -> None:
        """Test that files are logged when their target directory cannot be made."""
        target = source_tree.parent / "photos_avif"
        target.mkdir()
        (target / "Trip__2021_").write_text("a file in the way")

        result = TaskDiscoverer(source_tree, target, error_log).discover()

        assert [t.input_path.name for t in result.tasks] == ["cover.png"]
        assert len(result.failed) == 5
        lines = error_log.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 5
        assert all("Cannot create output directory" in line for line in lines)

    def test_custom_extensions(self, source_tree: Path, error_log: ErrorLog) -> None:
        """Test restricting discovery to a subset of extensions."""
        target = source_tree.parent / "photos_avif"

        result = TaskDiscoverer(source_tree, target, error_log, extensions={".gif"}).discover()

        assert [t.input_path.name for t in result.tasks] == ["a.gif"]


class TestGroupByFolder:
    """Tests for group_by_folder function."""

    def test_groups_preserve_order(self) -> None:
        """Test grouping and first-seen folder order."""
        tasks = [
            ConversionTask(Path("/s/b/1.png"), Path("/t/b"), Path("b")),
            ConversionTask(Path("/s/a/1.png"), Path("/t/a"), Path("a")),
            ConversionTask(Path("/s/b/2.png"), Path("/t/b"), Path("b")),
        ]

        folders = group_by_folder(tasks)

        assert [f.folder_path for f in folders] == [Path("/s/b"), Path("/s/a")]
        assert [t.input_path.name for t in folders[0].files] == ["1.png", "2.png"]
        assert all(not f.completed and not f.error_files for f in folders)

    def test_every_task_in_exactly_one_folder(
        self, source_tree: Path, error_log: ErrorLog
    ) -> None:
        """Test that grouping neither loses nor duplicates tasks."""
        result = TaskDiscoverer(
            source_tree, source_tree.parent / "photos_avif", error_log
        ).discover()

        folders = group_by_folder(result.tasks)

        grouped = [t for f in folders for t in f.files]
        assert sorted(t.input_path for t in grouped) == sorted(t.input_path for t in result.tasks)
        assert len(folders) == 3

    def test_empty(self) -> None:
        """Test grouping of no tasks."""
        assert group_by_folder([]) == []
