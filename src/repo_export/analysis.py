from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from repo_export.config import FilterConfig, parse_filter_config
from repo_export.file_manipulation import is_binary_file, is_regular_file, read_text_file
from repo_export.filters import get_relative_path, normalize_path, should_exclude
from repo_export.gitignore import EMPTY_GITIGNORE_PATTERNS, GitignoreParser, GitignorePatterns
from repo_export.logging import logger
from repo_export.models import AnalysisResult, CountFilesTokensResult, FileInfo, FileStat
from repo_export.path_guard import resolve_authorized_path
from repo_export.secret_scanner import scan_content_for_secrets_with_policy

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_export.token_counter import TokenCounterLike


class FileAnalyzer:
    """Decide which selected files are read, and count tokens for the ones that are."""

    def __init__(
        self,
        config: FilterConfig,
        token_counter: TokenCounterLike,
        *,
        root_path: str | Path = "",
        gitignore_patterns: GitignorePatterns | None = None,
    ) -> None:
        self.config = config
        self.token_counter = token_counter
        self.root_path = root_path
        self.gitignore_patterns = gitignore_patterns if config.use_gitignore else None

    def should_process_file(self, relative_path: str) -> bool:
        """Whether a root-relative path passes the filters and may be read at all."""
        normalized = normalize_path(relative_path)
        if "node_modules" in normalized.split("/"):
            return False
        item_path = os.path.join(self.root_path, normalized) if self.root_path else normalized
        return not should_exclude(item_path, self.root_path, self.gitignore_patterns, self.config)

    @staticmethod
    def should_read_file(file_path: str | Path) -> bool:
        return not is_binary_file(file_path)

    def analyze_file(self, file_path: str | Path) -> int | None:
        """Count tokens for one text file.

        Args:
            file_path (str | Path): absolute path of the file

        Returns:
            int | None: the token count, or None when the file is binary, unreadable
                or flagged by the secret scanner
        """
        if is_binary_file(file_path):
            logger.info("Skipping binary file", path=str(file_path))
            return None
        try:
            content = read_text_file(file_path)
        except OSError as e:
            logger.error("Error analyzing file", path=str(file_path), error=str(e))
            return None

        scan = scan_content_for_secrets_with_policy(content, self.config)
        if scan.is_suspicious:
            logger.warning(
                "Skipping suspicious file during analysis",
                path=str(file_path),
                rules=[m.id for m in scan.matches],
            )
            return None
        return self.token_counter.count_tokens(content)


def analyze_repository(
    root_path: str | Path,
    config_content: str | None,
    selected_files: Sequence[str],
    gitignore_parser: GitignoreParser,
    token_counter: TokenCounterLike,
) -> AnalysisResult:
    """Run the analysis pass over the selected files.

    Each path may be root-relative or absolute. Paths that escape the root are
    skipped, filtered and suspicious files are omitted, and binary files are
    reported with zero tokens.

    Args:
        root_path (str | Path): the (authorized) repository root
        config_content (str | None): raw YAML filter configuration
        selected_files (Sequence[str]): paths chosen by the caller
        gitignore_parser (GitignoreParser): parser whose cache is used
        token_counter (TokenCounterLike): token counting backend

    Returns:
        AnalysisResult: file infos sorted by descending token count, plus totals
    """
    parsed = parse_filter_config(config_content)
    config = parsed.config
    root = str(root_path)
    patterns = gitignore_parser.parse(root) if config.use_gitignore else EMPTY_GITIGNORE_PATTERNS
    analyzer = FileAnalyzer(config, token_counter, root_path=root, gitignore_patterns=patterns)

    files_info: list[FileInfo] = []
    total_tokens = 0
    skipped_binary = 0

    for selected in selected_files:
        resolved = resolve_authorized_path(root, selected) if selected else None
        if resolved is None:
            logger.warning("Skipping file outside current root directory", path=selected)
            continue

        relative = get_relative_path(resolved, root)
        if not analyzer.should_process_file(relative):
            continue

        if is_binary_file(resolved):
            logger.info("Binary file detected (will skip processing)", path=relative)
            skipped_binary += 1
            files_info.append(FileInfo(path=relative, tokens=0, is_binary=True))
            continue

        tokens = analyzer.analyze_file(resolved)
        if tokens is None:
            continue
        files_info.append(FileInfo(path=relative, tokens=tokens))
        total_tokens += tokens

    files_info.sort(key=lambda fi: fi.tokens, reverse=True)
    logger.info("Analysis complete", files=len(files_info), skipped_binary_files=skipped_binary)
    return AnalysisResult(
        files_info=files_info,
        total_tokens=total_tokens,
        skipped_binary_files=skipped_binary,
        config_error=parsed.error,
    )


def count_files_tokens(
    root_path: str | Path,
    file_paths: Sequence[str],
    token_counter: TokenCounterLike,
) -> CountFilesTokensResult:
    """Count tokens and collect stats for many files at once.

    Results are keyed by the normalized absolute path of each request. Entries
    outside the root, missing, unreadable or binary count as 0 tokens.

    Args:
        root_path (str | Path): the (authorized) repository root
        file_paths (Sequence[str]): root-relative or absolute paths
        token_counter (TokenCounterLike): token counting backend

    Returns:
        CountFilesTokensResult: token counts and size/mtime stats
    """
    out = CountFilesTokensResult()
    root = str(root_path)
    for file_path in file_paths:
        if not file_path:
            continue
        key = os.path.abspath(os.path.join(root, file_path))
        resolved = resolve_authorized_path(root, file_path)
        if resolved is None:
            logger.warning("Skipping file outside current root directory", path=file_path)
            out.results[key] = 0
            continue
        if not is_regular_file(Path(resolved)):
            logger.warning("File not found for token counting", path=file_path)
            out.results[key] = 0
            continue
        try:
            st = os.stat(resolved)
            out.stats[key] = FileStat(size=st.st_size, mtime=st.st_mtime)
            if is_binary_file(resolved):
                out.results[key] = 0
                continue
            out.results[key] = token_counter.count_tokens(read_text_file(resolved))
        except OSError as e:
            logger.error("Error counting tokens for file", path=file_path, error=str(e))
            out.results[key] = 0
    return out
