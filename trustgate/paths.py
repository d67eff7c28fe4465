"""Path normalization helpers"""

import os
from typing import Iterable


def expand_home(path: str) -> str:
    """Expand a leading ``~`` exactly once."""
    if path == "~" or path.startswith("~/") or path.startswith("~" + os.sep):
        return os.path.expanduser("~") + path[1:]
    return path


def normalize_path(path: str) -> str:
    """Return the absolute, normalized form of a user-supplied path.

    Symlinks are left alone so the stored spelling matches what the user typed.
    """
    return os.path.normpath(os.path.abspath(expand_home(path.strip())))


def split_path_list(raw: str) -> list[str]:
    """Split comma separated input, dropping empty entries."""
    return [p.strip() for p in raw.split(",") if p.strip()]


def dedupe_paths(paths: Iterable[str]) -> list[tuple[str, str]]:
    """Return ``(original, normalized)`` pairs, keeping the first spelling of each path."""
    seen: set[str] = set()
    result = []
    for path in paths:
        original = path.strip()
        if not original:
            continue
        normalized = normalize_path(original)
        if normalized in seen:
            continue
        seen.add(normalized)
        result.append((original, normalized))
    return result


def ancestors(path: str) -> list[str]:
    """Strict ancestors of a normalized path, nearest first."""
    result = []
    current = os.path.dirname(path)
    while current and current != path:
        result.append(current)
        path, current = current, os.path.dirname(current)
    return result


def is_within(path: str, root: str) -> bool:
    """True when ``path`` equals ``root`` or lies underneath it."""
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)
