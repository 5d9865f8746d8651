"""Core module for the image conversion workflow.

This module provides configuration, logging, retry handling, the folder
worker pool and the type definitions shared by the conversion pipeline.

Note:
    To avoid circular imports, Orchestrator is imported separately:
    >>> from avif_converter.core.orchestrator import Orchestrator
"""

from avif_converter.core.concurrent import PoolStatus, WorkerPool
from avif_converter.core.config import (
    Config,
    EncoderConfig,
    PathsConfig,
    ProcessingConfig,
    VerificationConfig,
)
from avif_converter.core.logger import (
    LogLevel,
    configure_logging,
    get_log_dir,
    get_log_file_path,
    get_logger,
    set_log_level,
)
from avif_converter.core.retry import (
    RetryAttempt,
    RetryError,
    RetryPolicy,
    RetryResult,
    retry_async,
    retry_call,
)
from avif_converter.core.types import (
    BatchResult,
    ConversionTask,
    DirectoryMismatch,
    DiscoveryResult,
    FileError,
    FileOutcome,
    FolderResult,
    FolderTask,
    FolderVerification,
    ProgressInfo,
    ProgressOverflowError,
    ProgressSnapshot,
    RenameRecord,
    RenameSummary,
    RunReport,
    RunStatus,
)

__all__ = [
    # Concurrent
    "PoolStatus",
    "WorkerPool",
    # Config
    "Config",
    "EncoderConfig",
    "PathsConfig",
    "ProcessingConfig",
    "VerificationConfig",
    # Logger
    "LogLevel",
    "configure_logging",
    "get_log_dir",
    "get_log_file_path",
    "get_logger",
    "set_log_level",
    # Retry
    "RetryAttempt",
    "RetryError",
    "RetryPolicy",
    "RetryResult",
    "retry_async",
    "retry_call",
    # Types
    "BatchResult",
    "ConversionTask",
    "DirectoryMismatch",
    "DiscoveryResult",
    "FileError",
    "FileOutcome",
    "FolderResult",
    "FolderTask",
    "FolderVerification",
    "ProgressInfo",
    "ProgressOverflowError",
    "ProgressSnapshot",
    "RenameRecord",
    "RenameSummary",
    "RunReport",
    "RunStatus",
]
