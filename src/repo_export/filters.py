"""Per-path include/exclude decision shared by traversal and analysis.

Layers are evaluated in a fixed order and short-circuit on the first exclusion:

1. sensitive file names/extensions (secret policy),
2. extension allow-list,
3. custom exclude globs,
4. `.gitignore` rules, where a negated rule keeps the path.

Custom excludes run before the gitignore layer, so they win over gitignore
negations.
"""

from __future__ import annotations

import os
import posixpath
from typing import TYPE_CHECKING

from repo_export.config import FilterConfig
from repo_export.logging import logger
from repo_export.pattern_matcher import matches
from repo_export.secret_scanner import should_exclude_sensitive_file_path

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from repo_export.gitignore import GitignorePatterns


def normalize_path(path: str) -> str:
    """Use forward slashes regardless of platform."""
    return path.replace("\\", "/")


def get_relative_path(file_path: str | Path, root_path: str | Path) -> str:
    """Return `file_path` relative to `root_path` with POSIX separators.

    An empty root leaves the (already relative) path untouched.
    """
    if not root_path:
        return normalize_path(str(file_path))
    return normalize_path(os.path.relpath(os.fspath(file_path), os.fspath(root_path)))


def should_exclude_by_extension(item_path: str | Path, config: FilterConfig) -> bool:
    if not config.use_custom_includes or not config.include_extensions:
        return False
    ext = posixpath.splitext(normalize_path(str(item_path)))[1].lower()
    if not ext:
        return False
    return ext not in config.include_extensions


def _candidates(relative_path: str, *, is_dir: bool) -> list[str]:
    if is_dir and not relative_path.endswith("/"):
        return [relative_path, relative_path + "/"]
    return [relative_path]


def _matches_patterns(
    relative_path: str,
    item_name: str,
    patterns: Sequence[str],
    *,
    is_dir: bool = False,
) -> bool:
    for pattern in patterns:
        for candidate in _candidates(relative_path, is_dir=is_dir):
            if matches(candidate, pattern):
                return True
        if "/" not in pattern and matches(item_name, pattern):
            return True
    return False


def should_exclude(
    item_path: str | Path,
    root_path: str | Path,
    gitignore_patterns: GitignorePatterns | None,
    config: FilterConfig | None = None,
    *,
    is_dir: bool = False,
) -> bool:
    """Decide whether a path is filtered out.

    Args:
        item_path (str | Path): path of the entry (absolute, or relative when `root_path` is empty)
        root_path (str | Path): root the patterns are relative to
        gitignore_patterns (GitignorePatterns | None): parsed gitignore rules, if any
        config (FilterConfig | None): filter configuration; defaults when None
        is_dir (bool): the entry is a directory, so directory-only rules (``name/``) apply

    Returns:
        bool: True if the entry must be excluded
    """
    config = config or FilterConfig()
    try:
        item_name = posixpath.basename(normalize_path(str(item_path)).rstrip("/"))
        relative = get_relative_path(item_path, root_path)
        custom_excludes = config.custom_excludes

        if should_exclude_sensitive_file_path(relative, config):
            return True

        if not is_dir and should_exclude_by_extension(relative, config):
            return True

        if custom_excludes and _matches_patterns(relative, item_name, custom_excludes, is_dir=is_dir):
            return True

        if config.use_gitignore and gitignore_patterns is not None:
            includes = gitignore_patterns.include_patterns
            if includes and _matches_patterns(relative, item_name, includes, is_dir=is_dir):
                return False
            excludes = [p for p in gitignore_patterns.exclude_patterns if p not in custom_excludes]
            if excludes and _matches_patterns(relative, item_name, excludes, is_dir=is_dir):
                return True
    except (OSError, ValueError, TypeError) as e:
        logger.error("Error in should_exclude", path=str(item_path), error=str(e))
        return False
    return False
