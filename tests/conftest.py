"""Shared pytest fixtures for avif_converter tests.

This module provides common fixtures used across all test modules,
including temporary directories, an isolated configuration and a fake
encoder script that stands in for the real AVIF encoder.

Example:
    def test_with_temp_dir(temp_dir):
        test_file = temp_dir / "test.txt"
        test_file.write_text("hello")
        assert test_file.exists()

    def test_with_encoder(make_config):
        config = make_config()
        assert config.encoder.command[0] == sys.executable
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from avif_converter.core import config as config_module
from avif_converter.core.config import Config
from avif_converter.core.logger import ROOT_LOGGER_NAME

# Reads --input=/--output= like the real encoder and writes <stem>.avif.
# Inputs containing FAIL exit 1; inputs containing FLAKY fail until a marker
# file next to the staged copy's source says they failed once before.
FAKE_ENCODER_SOURCE = '''\
import shutil
import sys
from pathlib import Path

args = dict(
    arg[2:].split("=", 1) for arg in sys.argv[1:] if arg.startswith("--") and "=" in arg
)
src = Path(args["input"])
out = Path(args["output"])
data = src.read_bytes()

if b"FAIL" in data:
    sys.stderr.write("decode error: unsupported image\\nstack line 2\\n")
    sys.exit(1)

if b"FLAKY" in data:
    marker = Path(data.decode().split("FLAKY:", 1)[1].strip())
    if not marker.exists():
        marker.write_text("failed once")
        sys.stderr.write("transient failure\\n")
        sys.exit(2)

if b"NOOUTPUT" in data:
    sys.exit(0)

shutil.copyfile(src, out / (src.stem + ".avif"))
'''


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test files.

    Args:
        tmp_path: Pytest's built-in temporary path fixture.

    Returns:
        Path: Temporary directory path.
    """
    return tmp_path


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's configuration file and environment out of tests.

    Args:
        tmp_path: Pytest's built-in temporary path fixture.
        monkeypatch: Pytest's monkeypatch fixture.
    """
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_FILE", tmp_path / "no-user-config.json")
    for key in list(os.environ):
        if key.startswith("AVIF_CONVERTER_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Remove handlers installed by configure_logging after each test."""
    yield
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_encoder(tmp_path: Path) -> tuple[str, ...]:
    """Write the fake encoder script and return its command prefix.

    Args:
        tmp_path: Pytest's built-in temporary path fixture.

    Returns:
        Command prefix running the script with the current interpreter.
    """
    script = tmp_path / "fake_encoder.py"
    script.write_text(FAKE_ENCODER_SOURCE, encoding="utf-8")
    return (sys.executable, str(script))


@pytest.fixture
def config_data(tmp_path: Path, fake_encoder: tuple[str, ...]) -> dict[str, Any]:
    """Provide configuration data pointing at the fake encoder.

    Returns:
        dict: Configuration dictionary with test values.
    """
    return {
        "encoder": {
            "command": list(fake_encoder),
            "keep_metadata": False,
            "verbose": False,
            "timeout": 30,
        },
        "processing": {
            "max_workers": 2,
            "max_retry_count": 2,
            "retry_delay": 0,
            "skip_existing": True,
        },
        "verification": {"max_retries": 1, "retry_delay": 0},
        "paths": {
            "scratch_dir": str(tmp_path / "scratch"),
            "report_dir": str(tmp_path / "reports"),
            "log_dir": str(tmp_path / "logs"),
        },
    }


@pytest.fixture
def config_file(tmp_path: Path, config_data: dict[str, Any]) -> Path:
    """Write the test configuration to a JSON file.

    Returns:
        Path: Path to the created config file.
    """
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def make_config(config_file: Path) -> Callable[..., Config]:
    """Provide a factory for test configurations.

    Keyword arguments are forwarded to ``Config.with_overrides``.
    """

    def factory(**overrides: Any) -> Config:
        return Config.load(config_file).with_overrides(**overrides)

    return factory


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """Create a small source tree with unsafe names and mixed files.

    Layout::

        photos/
            cover.png
            Trip (2021)/10.jpg, 2.jpg, 1.PNG, notes.txt
            Trip (2021)/day #1/a.gif, b.bmp

    Returns:
        Path: The ``photos`` directory.
    """
    root = tmp_path / "photos"
    trip = root / "Trip (2021)"
    day = trip / "day #1"
    day.mkdir(parents=True)

    (root / "cover.png").write_bytes(b"cover")
    for name in ("10.jpg", "2.jpg", "1.PNG"):
        (trip / name).write_bytes(f"image {name}".encode())
    (trip / "notes.txt").write_text("not an image")
    (day / "a.gif").write_bytes(b"gif")
    (day / "b.bmp").write_bytes(b"bmp")
    return root
