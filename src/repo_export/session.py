"""Export session: the authorized root plus the caches and counters bound to it.

A session replaces process-wide state. A caller first selects a directory,
then every entry point checks that the root it is given resolves inside that
selection before touching the filesystem.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from repo_export import analysis, output_construction
from repo_export.config import ExportOptions, load_default_config
from repo_export.directory_tree import build_directory_tree
from repo_export.exceptions import UnauthorizedRootError
from repo_export.gitignore import GitignoreParser
from repo_export.logging import logger
from repo_export.models import DirectoryTreeResult
from repo_export.path_guard import resolve_authorized_path, resolve_real_path
from repo_export.token_counter import TokenCounter

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from repo_export.models import (
        AnalysisResult,
        CountFilesTokensResult,
        ExportResult,
        FileInfo,
        TreeNode,
    )
    from repo_export.token_counter import TokenCounterLike


class ExportSession:
    """Hold the authorized root, the gitignore cache and the token counter."""

    def __init__(
        self,
        token_counter: TokenCounterLike | None = None,
        gitignore_parser: GitignoreParser | None = None,
    ) -> None:
        self.token_counter: TokenCounterLike = token_counter or TokenCounter()
        self.gitignore_parser = gitignore_parser or GitignoreParser()
        self._authorized_root: str | None = None

    @property
    def authorized_root(self) -> str | None:
        return self._authorized_root

    def select_directory(self, path: str | Path) -> str | None:
        """Authorize `path` as the session root, replacing any previous one.

        Args:
            path (str | Path): directory chosen by the user

        Returns:
            str | None: the canonical root, or None when `path` is not a directory
        """
        if not path or not os.path.isdir(path):
            logger.warning("Rejected directory selection", path=str(path))
            return None
        self._authorized_root = resolve_real_path(path)
        logger.info("Authorized root directory", root=self._authorized_root)
        return self._authorized_root

    def _require_root(self, root_path: str | Path) -> str:
        resolved = resolve_authorized_path(self._authorized_root, root_path)
        if resolved is None:
            logger.warning("Rejected request for unauthorized root", root=str(root_path))
            raise UnauthorizedRootError(root_path=str(root_path))
        return resolved

    def directory_tree(self, root_path: str | Path, config_content: str | None = None) -> DirectoryTreeResult:
        """Build the filtered tree with its diagnostics (empty when unauthorized)."""
        if self._authorized_root is None:
            message = f"Rejected unauthorized directory tree request: {root_path}"
            logger.warning(message)
            return DirectoryTreeResult(warnings=[message])
        return build_directory_tree(
            root_path,
            config_content,
            self.gitignore_parser,
            authorized_root=self._authorized_root,
        )

    def get_directory_tree(self, root_path: str | Path, config_content: str | None = None) -> list[TreeNode]:
        return self.directory_tree(root_path, config_content).items

    def analyze_selection(
        self,
        root_path: str | Path,
        config_content: str | None,
        selected_files: Sequence[str],
    ) -> AnalysisResult:
        """Analyze `selected_files` under an authorized root.

        Raises:
            UnauthorizedRootError: when `root_path` is not inside the authorized root
        """
        root = self._require_root(root_path)
        return analysis.analyze_repository(
            root,
            config_content,
            selected_files,
            self.gitignore_parser,
            self.token_counter,
        )

    def process_repository(
        self,
        root_path: str | Path,
        files_info: Sequence[FileInfo | Mapping[str, object] | None] | None,
        tree_view: str | None = None,
        options: ExportOptions | Mapping[str, object] | None = None,
    ) -> ExportResult:
        """Export analyzed files under an authorized root into one document.

        Raises:
            UnauthorizedRootError: when `root_path` is not inside the authorized root
        """
        root = self._require_root(root_path)
        if options is not None and not isinstance(options, ExportOptions):
            options = ExportOptions.model_validate(dict(options))
        return output_construction.process_repository(
            root_path=root,
            files_info=files_info,
            tree_view=tree_view,
            options=options,
            token_counter=self.token_counter,
        )

    def count_files_tokens(self, root_path: str | Path, file_paths: Sequence[str]) -> CountFilesTokensResult:
        """Count tokens for many files under an authorized root.

        Raises:
            UnauthorizedRootError: when `root_path` is not inside the authorized root
        """
        root = self._require_root(root_path)
        return analysis.count_files_tokens(root, file_paths, self.token_counter)

    def reset_gitignore_cache(self) -> None:
        self.gitignore_parser.clear_cache()
        logger.info("Gitignore cache cleared")

    @staticmethod
    def load_default_config() -> str:
        return load_default_config()
