"""Configuration management for the AVIF converter.

This module provides an immutable configuration object built once at startup
and passed explicitly to every component. Values come from (highest priority
first) constructor arguments, ``AVIF_CONVERTER_`` environment variables and
a JSON file.

Example:
    >>> from avif_converter.core.config import Config
    >>> config = Config.load()
    >>> config.encoder.quality
    60

    >>> # Environment variable override
    >>> # AVIF_CONVERTER_PROCESSING__MAX_WORKERS=2
    >>> Config.load().processing.max_workers
    2

    >>> # CLI overrides produce a new instance
    >>> config = config.with_overrides(max_workers=8, skip_existing=False)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from pydantic_settings.sources import JsonConfigSettingsSource

from avif_converter import __version__
from avif_converter.core.logger import DEFAULT_LOG_DIR
from avif_converter.utils.constants import (
    DEFAULT_EFFORT,
    DEFAULT_ENCODER_COMMAND,
    DEFAULT_MAX_RETRY_COUNT,
    DEFAULT_MAX_WORKERS,
    DEFAULT_QUALITY,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SCRATCH_DIR,
    DEFAULT_SKIP_EXISTING,
    DEFAULT_VERIFY_MAX_RETRIES,
    DEFAULT_VERIFY_RETRY_DELAY,
    ENCODER_PROCESS_TIMEOUT,
    MAX_EFFORT,
    MAX_QUALITY,
    MAX_WORKERS,
    MIN_EFFORT,
    MIN_QUALITY,
    MIN_WORKERS,
    SUPPORTED_EXTENSIONS,
    TARGET_EXTENSION,
)

# Default paths
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "avif_converter"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"


class _JsonFileSettingsSource(JsonConfigSettingsSource):
    """Custom JSON settings source that loads from a specified file."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        json_file: Path | None = None,
    ) -> None:
        self._json_file = json_file
        super().__init__(settings_cls, json_file=json_file)


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class EncoderConfig(_Section):
    """Settings for the external AVIF encoder.

    Attributes:
        command: Command prefix that launches the encoder.
        quality: Encoder quality (0-100, higher is better).
        effort: Encoder effort (0-10, higher is slower).
        keep_metadata: Pass ``--keep-metadata`` to the encoder.
        verbose: Pass ``--verbose`` to the encoder.
        timeout: Per-conversion timeout in seconds.
        target_extension: Extension of the produced files.
    """

    command: tuple[str, ...] = DEFAULT_ENCODER_COMMAND
    quality: int = Field(default=DEFAULT_QUALITY, ge=MIN_QUALITY, le=MAX_QUALITY)
    effort: int = Field(default=DEFAULT_EFFORT, ge=MIN_EFFORT, le=MAX_EFFORT)
    keep_metadata: bool = True
    verbose: bool = True
    timeout: float = Field(default=ENCODER_PROCESS_TIMEOUT, gt=0)
    target_extension: str = TARGET_EXTENSION

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Reject an empty encoder command."""
        if not v:
            raise ValueError("encoder command must not be empty")
        return v

    @field_validator("target_extension")
    @classmethod
    def strip_dot(cls, v: str) -> str:
        """Store the extension without a leading dot."""
        return v.lstrip(".").lower()


class ProcessingConfig(_Section):
    """Settings for the batch workflow.

    Attributes:
        max_workers: Number of folders processed concurrently.
        max_retry_count: Retry attempts for files whose first attempt failed.
        retry_delay: Seconds to wait between retry attempts.
        skip_existing: Skip files whose numbered output already exists.
        supported_extensions: Source image extensions (lower-case, dotted).
    """

    max_workers: int = Field(
        default=min(DEFAULT_MAX_WORKERS, MAX_WORKERS),
        ge=MIN_WORKERS,
        le=MAX_WORKERS,
    )
    max_retry_count: int = Field(default=DEFAULT_MAX_RETRY_COUNT, ge=0)
    retry_delay: float = Field(default=DEFAULT_RETRY_DELAY, ge=0.0)
    skip_existing: bool = DEFAULT_SKIP_EXISTING
    supported_extensions: frozenset[str] = SUPPORTED_EXTENSIONS

    @field_validator("supported_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v: Any) -> Any:
        """Lower-case the extensions and make sure they start with a dot."""
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(
                ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v
            )
        return v


class VerificationConfig(_Section):
    """Settings for the completion checks.

    Attributes:
        max_retries: Extra attempts when a directory cannot be read.
        retry_delay: Seconds to wait between read attempts.
    """

    max_retries: int = Field(default=DEFAULT_VERIFY_MAX_RETRIES, ge=0)
    retry_delay: float = Field(default=DEFAULT_VERIFY_RETRY_DELAY, ge=0.0)


class PathsConfig(_Section):
    """Path settings.

    Attributes:
        scratch_dir: Root for per-conversion staging directories.
        report_dir: Directory receiving error logs and mismatch reports.
        log_dir: Directory for the rotating diagnostic log.
    """

    scratch_dir: Path = DEFAULT_SCRATCH_DIR
    report_dir: Path = Path(".")
    log_dir: Path = DEFAULT_LOG_DIR

    @field_validator("scratch_dir", "report_dir", "log_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        """Expand user home directory in paths.

        Args:
            v: Path value (string or Path).

        Returns:
            Path with ~ expanded to user home directory.
        """
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser()


class Config(BaseSettings):
    """Main configuration class for the AVIF converter.

    Instances are frozen; use ``with_overrides`` to derive a modified copy.

    Attributes:
        version: Configuration schema version.
        encoder: Encoder settings.
        processing: Batch workflow settings.
        verification: Completion check settings.
        paths: Path settings.

    Example:
        >>> config = Config.load()
        >>> config.processing.skip_existing
        True
    """

    model_config = SettingsConfigDict(
        env_prefix="AVIF_CONVERTER_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    version: str = Field(default_factory=lambda: __version__)
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources priority.

        Priority (highest to lowest):
        1. init_settings (direct arguments, including an explicit config file)
        2. env_settings (environment variables)
        3. JSON file settings from the user configuration directory
        4. Default values
        """
        _ = dotenv_settings
        _ = file_secret_settings

        json_file = cls._find_config_file()
        json_source = _JsonFileSettingsSource(settings_cls, json_file=json_file)

        return (
            init_settings,
            env_settings,
            json_source,
        )

    @classmethod
    def load(cls, config_path: Path | None = None, **overrides: Any) -> Config:
        """Build the configuration for one run.

        Args:
            config_path: Optional JSON file. Its values take precedence over
                environment variables and the user configuration file.
            **overrides: Top-level section values passed straight to the
                constructor.

        Returns:
            Config: A new, frozen configuration instance.

        Raises:
            ValueError: If the configuration file is unreadable or invalid.
            pydantic.ValidationError: If a value is out of range.
        """
        values: dict[str, Any] = {}
        if config_path is not None:
            values.update(cls._load_json(config_path))
        values.update(overrides)
        return cls(**values)

    @classmethod
    def _find_config_file(cls) -> Path | None:
        """Return the user configuration file if it exists."""
        if DEFAULT_CONFIG_FILE.exists():
            return DEFAULT_CONFIG_FILE
        return None

    @classmethod
    def _load_json(cls, path: Path) -> dict[str, Any]:
        """Load JSON configuration from file.

        Args:
            path: Path to JSON file.

        Returns:
            Dictionary with configuration data.

        Raises:
            ValueError: If the file is missing or the JSON is invalid.
        """
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ValueError(f"Configuration file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a JSON object")
        return data

    def with_overrides(
        self,
        *,
        max_workers: int | None = None,
        max_retry_count: int | None = None,
        skip_existing: bool | None = None,
        timeout: float | None = None,
        report_dir: Path | None = None,
    ) -> Config:
        """Return a copy with command-line overrides applied.

        Only arguments that are not None are applied; the result is validated
        the same way as a freshly loaded configuration.

        Args:
            max_workers: Number of concurrent folder workers.
            max_retry_count: Retry attempts per failed file.
            skip_existing: Whether to skip existing outputs.
            timeout: Per-conversion encoder timeout in seconds.
            report_dir: Directory for error logs and reports.

        Returns:
            Config: New configuration instance.
        """
        processing = {
            key: value
            for key, value in {
                "max_workers": max_workers,
                "max_retry_count": max_retry_count,
                "skip_existing": skip_existing,
            }.items()
            if value is not None
        }
        encoder = {"timeout": timeout} if timeout is not None else {}
        paths = {"report_dir": report_dir} if report_dir is not None else {}

        return self.model_copy(
            update={
                "processing": ProcessingConfig.model_validate(
                    {**self.processing.model_dump(), **processing}
                ),
                "encoder": EncoderConfig.model_validate({**self.encoder.model_dump(), **encoder}),
                "paths": PathsConfig.model_validate({**self.paths.model_dump(), **paths}),
            }
        )

    def save(self, config_path: Path | None = None) -> Path:
        """Save configuration to a JSON file.

        Args:
            config_path: Optional path to save to. Defaults to the user file.

        Returns:
            Path the configuration was written to.
        """
        save_path = config_path or DEFAULT_CONFIG_FILE
        save_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json")
        with save_path.open("w", encoding="utf-8") as f:
            json.dump(config_dict, f, indent=2, ensure_ascii=False, sort_keys=True)
            f.write("\n")
        return save_path

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration.
        """
        result: dict[str, Any] = self.model_dump()
        return result


__all__ = [
    "Config",
    "EncoderConfig",
    "PathsConfig",
    "ProcessingConfig",
    "VerificationConfig",
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_CONFIG_FILE",
]
