from __future__ import annotations

import functools
import posixpath
import re

import pathspec

from repo_export.logging import logger


@functools.lru_cache(maxsize=2048)
def compile_pattern(pattern: str) -> pathspec.PathSpec | None:
    """Compile a single glob pattern, or return None if it is malformed.

    Compilation failures are logged once (the None result is cached too).

    Args:
        pattern (str): a gitwildmatch-style glob (``**``, ``*``, ``?``, ``[...]``)

    Returns:
        pathspec.PathSpec | None: the compiled matcher, or None
    """
    try:
        return pathspec.GitIgnoreSpec.from_lines([pattern])
    except (ValueError, TypeError, re.error) as e:
        logger.warning("Ignoring malformed pattern", pattern=pattern, error=str(e))
        return None


def matches(path: str, pattern: str) -> bool:
    """Check whether a relative path matches a glob pattern.

    ``*`` and ``?`` stay within one path segment, ``**`` spans any depth and
    dotfiles are matched. A pattern without ``/`` is also tried against the
    basename. Malformed patterns never match.

    Args:
        path (str): root-relative path (either separator style)
        pattern (str): the glob pattern

    Returns:
        bool: True if the path matches
    """
    if not isinstance(path, str) or not isinstance(pattern, str) or not path or not pattern:
        return False
    compiled = compile_pattern(pattern)
    if compiled is None:
        return False
    normalized = path.replace("\\", "/")
    try:
        if compiled.match_file(normalized):
            return True
        if "/" not in pattern:
            base = posixpath.basename(normalized.rstrip("/"))
            return bool(base) and compiled.match_file(base)
    except (ValueError, TypeError, re.error) as e:
        logger.warning("Pattern match failed", pattern=pattern, path=path, error=str(e))
    return False
