from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from repo_export.cache import PatternCache
from repo_export.logging import logger

BUILD_ARTIFACT_PATTERNS: tuple[str, ...] = (
    "**/bundle.js",
    "**/bundle.js.map",
    "**/bundle.js.LICENSE.txt",
    "**/index.js.map",
    "**/output.css",
)


class GitignorePatterns(BaseModel):
    """Ordered pattern sets derived from a `.gitignore` file.

    Attributes:
        exclude_patterns: Patterns that exclude a path.
        include_patterns: Negated (``!``) patterns that re-include a path.
    """

    model_config = ConfigDict(frozen=True)

    exclude_patterns: list[str] = Field(default_factory=list)
    include_patterns: list[str] = Field(default_factory=list)


EMPTY_GITIGNORE_PATTERNS = GitignorePatterns()


def _expand_rule(pattern: str) -> list[str]:
    """Expand one gitignore rule (without its ``!``) into glob variants.

    - leading ``/`` anchors the rule to the root (slash stripped);
    - otherwise the rule is stored as-is and ``**/``-prefixed;
    - trailing ``/`` marks a directory and adds a ``/**`` variant.
    """
    anchored = pattern.startswith("/")
    body = pattern[1:] if anchored else pattern
    is_dir = body.endswith("/")
    body = body.rstrip("/")
    if not body:
        return []

    bases = [body] if anchored else [body, f"**/{body}"]
    out: list[str] = []
    for base in bases:
        if is_dir:
            out.extend((f"{base}/", f"{base}/**"))
        else:
            out.append(base)
    return out


def parse_gitignore_content(content: str) -> GitignorePatterns:
    """Parse `.gitignore` text into exclude and include (negated) pattern lists.

    Fixed build-artifact patterns are always appended to the exclude list.

    Args:
        content (str): the raw `.gitignore` text

    Returns:
        GitignorePatterns: the parsed pattern sets
    """
    excludes: list[str] = []
    includes: list[str] = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        negated = stripped.startswith("!")
        pattern = stripped[1:].strip() if negated else stripped
        if not pattern:
            continue
        target = includes if negated else excludes
        for variant in _expand_rule(pattern):
            if variant not in target:
                target.append(variant)

    excludes.extend(p for p in BUILD_ARTIFACT_PATTERNS if p not in excludes)
    return GitignorePatterns(exclude_patterns=excludes, include_patterns=includes)


class GitignoreParser:
    """Parse `.gitignore` files, caching results per root path."""

    def __init__(self) -> None:
        self._cache: PatternCache[str, GitignorePatterns] = PatternCache()

    def clear_cache(self) -> None:
        self._cache.invalidate()

    def is_cached(self, root_path: str | Path) -> bool:
        return str(root_path) in self._cache

    def parse(self, root_path: str | Path) -> GitignorePatterns:
        """Return the pattern sets for `root_path`, reading `.gitignore` at most once.

        A missing file gives empty pattern lists; a read error is logged and
        cached the same way so it is not retried until the cache is cleared.

        Args:
            root_path (str | Path): repository root containing the `.gitignore`

        Returns:
            GitignorePatterns: the (possibly cached) pattern sets
        """
        key = str(root_path)
        return self._cache.get_or_compute(key, lambda: self._load(Path(key)))

    @staticmethod
    def _load(root: Path) -> GitignorePatterns:
        gitignore = root / ".gitignore"
        if not gitignore.is_file():
            return EMPTY_GITIGNORE_PATTERNS
        try:
            content = gitignore.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error("Error parsing .gitignore", path=str(gitignore), error=str(e))
            return EMPTY_GITIGNORE_PATTERNS
        return parse_gitignore_content(content)
