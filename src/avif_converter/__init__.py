"""AVIF Converter - Bulk image to AVIF conversion for directory trees."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("avif-converter")
except PackageNotFoundError:
    __version__ = "0.0.0.dev"

__author__ = "AVIF Converter Team"
