"""Path segment sanitizing and natural ordering helpers.

Folder names coming from scanned archives frequently contain characters that
the encoder or the shell chokes on. ``sanitize`` maps such a name onto a safe
form and ``natural_sort_key`` orders file names the way a human would read
them, so that ``2.png`` comes before ``10.png``.

Example:
    >>> from avif_converter.utils.sanitizer import sanitize, natural_sort_key
    >>> sanitize("Summer (2021) #1")
    'Summer__2021___1'
    >>> sorted(["10.png", "2.png", "1.png"], key=natural_sort_key)
    ['1.png', '2.png', '10.png']
"""

from __future__ import annotations

import re
from pathlib import Path

REPLACEMENT_CHAR = "_"

# < > : " / \ | ? * ( ) [ ] { } , ; ! @ # $ % ^ & + = ~ `
_FORBIDDEN_PATTERN = re.compile(r"[<>:\"/\\|?*()\[\]{},;!@#$%^&+=~`]")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_DIGITS_PATTERN = re.compile(r"(\d+)")


def sanitize(name: str) -> str:
    """Return a filesystem- and shell-safe version of a path segment.

    Every forbidden character is replaced by ``_``, runs of whitespace are
    collapsed to a single ``_`` and the result is stripped. The function is
    idempotent: ``sanitize(sanitize(x)) == sanitize(x)``.

    Args:
        name: A single path segment (not a full path).

    Returns:
        The sanitized segment. Never empty; an input that sanitizes to
        nothing becomes ``_``.

    Example:
        >>> sanitize("a b")
        'a_b'
        >>> sanitize("ok_name")
        'ok_name'
    """
    cleaned = _FORBIDDEN_PATTERN.sub(REPLACEMENT_CHAR, name)
    cleaned = _WHITESPACE_PATTERN.sub(REPLACEMENT_CHAR, cleaned)
    cleaned = cleaned.strip()
    return cleaned or REPLACEMENT_CHAR


def needs_sanitizing(name: str) -> bool:
    """Check whether ``sanitize`` would change the given segment."""
    return sanitize(name) != name


def natural_sort_key(name: str) -> tuple[tuple[tuple[int, int | str], ...], str]:
    """Build a case-insensitive, numeric-aware sort key.

    Digit runs compare by value and everything else compares case-folded.
    The raw name is appended as a tie-breaker so that the ordering is total
    and stable across runs.

    Args:
        name: File name to build the key for.

    Returns:
        A tuple usable as ``key=`` for ``sorted``.
    """
    parts: list[tuple[int, int | str]] = []
    for chunk in _DIGITS_PATTERN.split(name.casefold()):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk))
    return tuple(parts), name


def map_target_directory(source_root: Path, target_root: Path, directory: Path) -> Path:
    """Map a directory inside the source tree onto the mirrored target tree.

    Each relative segment is passed through ``sanitize``; the root itself maps
    to ``target_root``.

    Args:
        source_root: Root of the source tree.
        target_root: Root of the target tree.
        directory: A directory at or below ``source_root``.

    Returns:
        The corresponding directory below ``target_root``.

    Raises:
        ValueError: If ``directory`` is not inside ``source_root``.
    """
    relative = directory.relative_to(source_root)
    mapped = target_root
    for segment in relative.parts:
        mapped = mapped / sanitize(segment)
    return mapped


def sanitized_relative_path(source_root: Path, directory: Path) -> Path:
    """Return the sanitized path of ``directory`` relative to ``source_root``."""
    relative = directory.relative_to(source_root)
    return Path(*[sanitize(segment) for segment in relative.parts])


__all__ = [
    "REPLACEMENT_CHAR",
    "map_target_directory",
    "natural_sort_key",
    "needs_sanitizing",
    "sanitize",
    "sanitized_relative_path",
]
