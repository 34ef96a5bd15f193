"""Path canonicalization and root-containment checks.

Every filesystem access of the engine goes through these helpers. They never
raise: failures are reported as ``False`` / ``None`` so callers can skip the
offending path and keep going.
"""

from __future__ import annotations

import os
import tempfile
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    StrPath = str | Path | os.PathLike[str]


def _resolve_from_existing_ancestor(absolute: str) -> str:
    """Canonicalize the deepest existing ancestor and re-append the missing tail."""
    current = absolute
    pending: list[str] = []
    while True:
        try:
            real = os.path.realpath(current, strict=True)
        except (OSError, RuntimeError, ValueError):
            parent = os.path.dirname(current)
            if parent == current:
                return absolute
            pending.append(os.path.basename(current))
            current = parent
            continue
        return os.path.join(real, *reversed(pending)) if pending else real


def resolve_real_path(path: StrPath) -> str:
    """Return the canonical (symlink-free, absolute) form of `path`.

    Paths that do not exist yet are resolved through their deepest existing
    ancestor. If canonicalization fails altogether, the absolute input path is
    returned.

    Args:
        path (StrPath): the path to canonicalize

    Returns:
        str: the canonical path
    """
    try:
        absolute = os.path.abspath(os.fspath(path))
    except (TypeError, ValueError):
        return str(path)
    try:
        return os.path.realpath(absolute, strict=True)
    except (OSError, RuntimeError, ValueError):
        return _resolve_from_existing_ancestor(absolute)


def _within(resolved_root: str, resolved_candidate: str) -> bool:
    if resolved_candidate == resolved_root:
        return True
    prefix = resolved_root if resolved_root.endswith(os.sep) else resolved_root + os.sep
    return resolved_candidate.startswith(prefix)


def is_path_within_root(root: StrPath | None, candidate: StrPath | None) -> bool:
    """Check whether `candidate` lies inside `root` once both are canonicalized.

    Containment is string-prefix based on ``root + os.sep``, so ``/root-secrets``
    is not inside ``/root``.

    Args:
        root (StrPath | None): the boundary directory
        candidate (StrPath | None): the path to test

    Returns:
        bool: True if the candidate equals the root or is beneath it
    """
    if not root or not candidate:
        return False
    return _within(resolve_real_path(root), resolve_real_path(candidate))


def resolve_authorized_path(root: StrPath | None, candidate: StrPath | None) -> str | None:
    """Resolve `candidate` against `root`, returning None unless it stays inside.

    Relative candidates are interpreted relative to `root`. The returned path is
    absolute and normalized but keeps symlinks as written; containment itself is
    checked on canonical paths.

    Args:
        root (StrPath | None): the authorized root, or None when nothing is authorized
        candidate (StrPath | None): the path requested by a caller

    Returns:
        str | None: the absolute candidate path, or None when access is denied
    """
    if not root or not candidate:
        return None
    try:
        resolved = os.path.abspath(os.path.join(os.fspath(root), os.fspath(candidate)))
    except (TypeError, ValueError):
        return None
    if not is_path_within_root(root, resolved):
        return None
    return resolved


def is_path_within_temp_root(candidate: StrPath | None, temp_root: StrPath | None = None) -> bool:
    """Check whether `candidate` lies inside the system temp directory (or `temp_root`)."""
    root = temp_root if temp_root is not None else tempfile.gettempdir()
    return is_path_within_root(root, candidate)
