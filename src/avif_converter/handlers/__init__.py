"""Handlers that modify the source tree before conversion."""

from avif_converter.handlers.directory_renamer import DirectoryRenamer

__all__ = ["DirectoryRenamer"]
