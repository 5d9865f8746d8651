"""Encoder wrappers and the staged conversion executor."""

from avif_converter.converters.avif import AvifEncoder
from avif_converter.converters.base import (
    BaseEncoder,
    ConversionError,
    EncoderNotAvailableError,
    EncoderProcessError,
    EncoderTimeoutError,
    MissingOutputError,
    StagingError,
)
from avif_converter.converters.executor import ConversionExecutor

__all__ = [
    "AvifEncoder",
    "BaseEncoder",
    "ConversionError",
    "ConversionExecutor",
    "EncoderNotAvailableError",
    "EncoderProcessError",
    "EncoderTimeoutError",
    "MissingOutputError",
    "StagingError",
]
