from __future__ import annotations

import os
import stat
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from repo_export.config import FilterConfig, parse_filter_config
from repo_export.filters import should_exclude
from repo_export.gitignore import GitignoreParser, GitignorePatterns
from repo_export.logging import logger
from repo_export.models import DirectoryTreeResult, TreeNode
from repo_export.path_guard import is_path_within_root, resolve_authorized_path, resolve_real_path

if TYPE_CHECKING:
    from pathlib import Path

    from repo_export.exceptions import ConfigError

FALLBACK_PATTERNS = GitignorePatterns(exclude_patterns=["**/.git/**"])


def _filter_settings(
    root_path: str,
    config_content: str | None,
    gitignore_parser: GitignoreParser,
) -> tuple[FilterConfig, GitignorePatterns | None, ConfigError | None]:
    parsed = parse_filter_config(config_content)
    if not parsed.ok:
        # A broken config must not hide the tree: keep only the .git exclusion.
        return FilterConfig(), FALLBACK_PATTERNS, parsed.error
    config = parsed.config
    patterns = gitignore_parser.parse(root_path) if config.use_gitignore else None
    return config, patterns, None


def _sort_key(node: TreeNode) -> tuple[int, str, str]:
    return (0 if node.is_dir else 1, node.name.lower(), node.name)


class _TreeWalker:
    """Depth-first walk sharing the ancestor chain and diagnostics of one traversal."""

    def __init__(
        self,
        root_path: str,
        config: FilterConfig,
        patterns: GitignorePatterns | None,
        result: DirectoryTreeResult,
    ) -> None:
        self.root_path = root_path
        self.config = config
        self.patterns = patterns
        self.result = result
        self.ancestors: set[str] = set()

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.result.warnings.append(message)

    def error(self, message: str, exc: BaseException) -> None:
        logger.error(message, error=str(exc))
        self.result.errors.append(f"{message} {exc}")

    def walk(self, directory: str) -> list[TreeNode]:
        real = resolve_real_path(directory)
        # Only the current descent path counts as a revisit.
        if real in self.ancestors:
            self.warn(f"Skipping previously visited directory to avoid recursion loops: {directory}")
            return []
        self.ancestors.add(real)
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)

            nodes: list[TreeNode] = []
            for entry in entries:
                try:
                    node = self._process_entry(entry)
                except OSError as e:
                    self.error(f"Error processing {entry.path}:", e)
                    continue
                if node is not None:
                    nodes.append(node)
        finally:
            self.ancestors.discard(real)
        return sorted(nodes, key=_sort_key)

    def _process_entry(self, entry: os.DirEntry[str]) -> TreeNode | None:
        item_path = entry.path
        is_symlink = entry.is_symlink()
        if is_symlink:
            target = resolve_real_path(item_path)
            if not is_path_within_root(self.root_path, target):
                self.warn(f"Skipping symlink outside current root directory: {item_path}")
                return None
            if not os.path.exists(item_path):
                self.warn(f"Skipping broken or cyclic symlink: {item_path}")
                return None
        elif not is_path_within_root(self.root_path, item_path):
            self.warn(f"Skipping path outside current root directory: {item_path}")
            return None

        is_dir = entry.is_dir()
        if should_exclude(item_path, self.root_path, self.patterns, self.config, is_dir=is_dir):
            return None

        st = entry.stat()
        modified = datetime.fromtimestamp(st.st_mtime, tz=UTC)
        if is_dir:
            children = self.walk(item_path)
            if not children:
                return None
            return TreeNode(
                name=entry.name,
                path=item_path,
                type="directory",
                size=st.st_size,
                last_modified=modified,
                children=children,
                item_count=len(children),
            )
        if not stat.S_ISREG(st.st_mode):
            return None
        return TreeNode(
            name=entry.name,
            path=item_path,
            type="file",
            size=st.st_size,
            last_modified=modified,
            extension=os.path.splitext(entry.name)[1].lower(),
        )


def build_directory_tree(
    root_path: str | Path,
    config_content: str | None,
    gitignore_parser: GitignoreParser | None = None,
    *,
    authorized_root: str | Path | None = None,
) -> DirectoryTreeResult:
    """List `root_path` into a filtered tree, collecting warnings and errors.

    Never raises: an unauthorized or unreadable root yields an empty item list.

    Args:
        root_path (str | Path): directory to list
        config_content (str | None): raw YAML filter configuration
        gitignore_parser (GitignoreParser | None): parser whose cache is used; a fresh one when None
        authorized_root (str | Path | None): boundary the root must resolve into; defaults to the root itself

    Returns:
        DirectoryTreeResult: sorted tree items plus diagnostics
    """
    result = DirectoryTreeResult()
    boundary = authorized_root if authorized_root is not None else root_path
    authorized = resolve_authorized_path(boundary, root_path)
    if authorized is None or not os.path.isdir(authorized):
        message = f"Rejected unauthorized directory tree request: {root_path}"
        logger.warning(message)
        result.warnings.append(message)
        return result

    parser = gitignore_parser or GitignoreParser()
    config, patterns, config_error = _filter_settings(authorized, config_content, parser)
    result.config_error = config_error
    if config_error is not None:
        result.errors.append(f"Error parsing config: {config_error}")

    walker = _TreeWalker(authorized, config, patterns, result)
    try:
        result.items = walker.walk(authorized)
    except OSError as e:
        walker.error("Error getting directory tree:", e)
        result.items = []
    return result


def get_directory_tree(
    root_path: str | Path,
    config_content: str | None,
    gitignore_parser: GitignoreParser | None = None,
    *,
    authorized_root: str | Path | None = None,
) -> list[TreeNode]:
    """Return only the items of :func:`build_directory_tree`."""
    return build_directory_tree(
        root_path,
        config_content,
        gitignore_parser,
        authorized_root=authorized_root,
    ).items
