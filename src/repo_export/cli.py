"""repo-export: turn a selection of repository files into one LLM-ready document.

Usage
-----
Run ``repo-export --help`` for full options. Common examples:
    - Show the filtered tree:
        repo-export tree --repo .

    - Count tokens for every exportable file:
        repo-export analyze --repo .

    - Export the whole filtered tree as XML with a tree view:
        repo-export export --repo . --output repo.xml --format xml --tree

    - Export two files with approximate token counts, logging to a file:
        repo-export --approximate-tokens --log-file export.log export --repo . --output out.md src/a.py src/b.py
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from repo_export import __version__
from repo_export.config import ExportOptions, parse_filter_config
from repo_export.exceptions import InvalidSelectionError, UnauthorizedRootError
from repo_export.file_manipulation import render_tree_nodes
from repo_export.filters import get_relative_path
from repo_export.logging import logger, setup_logging
from repo_export.session import ExportSession
from repo_export.settings import Settings, load_environment
from repo_export.token_counter import TokenCounter

if TYPE_CHECKING:
    from collections.abc import Sequence

EXIT_INVALID_SELECTION = 2


def _add_selection_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--repo", type=str, default=".", help="Repository root.")
    p.add_argument("--config", type=str, default=None, help="YAML filter configuration file.")


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="repo-export",
        description="Export a filtered selection of repository files for LLM consumption (markdown/xml).",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument(
        "--token-model",
        type=str,
        default=None,
        help="tiktoken model used for token counts (env: REPO_EXPORT_TOKEN_MODEL).",
    )
    p.add_argument(
        "--approximate-tokens",
        action="store_true",
        help="Estimate tokens (about 4 chars each) instead of loading a tokenizer.",
    )

    sub = p.add_subparsers(dest="command", required=True)

    tree = sub.add_parser("tree", help="Print the filtered directory tree.")
    _add_selection_arguments(tree)
    tree.add_argument("--json", dest="json_output", action="store_true", help="Print the tree as JSON.")

    analyze = sub.add_parser("analyze", help="Count tokens for the selected files.")
    _add_selection_arguments(analyze)
    analyze.add_argument("files", nargs="*", help="Files to analyze (default: the whole filtered tree).")

    export = sub.add_parser("export", help="Write the selected files into one document.")
    _add_selection_arguments(export)
    export.add_argument("--output", type=str, required=True, help="Output file.")
    export.add_argument(
        "--format",
        type=str,
        choices=["markdown", "xml"],
        default=None,
        help="Force format (default: from the config, else markdown).",
    )
    export.add_argument("--tree", action="store_true", help="Include the file tree.")
    export.add_argument("--no-token-count", action="store_true", help="Omit token counts.")
    export.add_argument("files", nargs="*", help="Files to export (default: the whole filtered tree).")

    args = p.parse_args(argv)
    return Settings(**{k: v for k, v in vars(args).items() if v is not None})


def _select_files(session: ExportSession, root: str, config_content: str | None) -> list[str]:
    files: list[str] = []
    for node in session.get_directory_tree(root, config_content):
        files.extend(get_relative_path(leaf.path, root) for leaf in node.iter_files())
    return files


def _run_tree(session: ExportSession, root: str, config_content: str | None, settings: Settings) -> int:
    result = session.directory_tree(root, config_content)
    if settings.json_output:
        print(json.dumps([node.model_dump(mode="json") for node in result.items], indent=2))
        return 0
    print(f"{Path(root).name}/")
    for line in render_tree_nodes(result.items):
        print(line)
    return 0


def _run_analyze(session: ExportSession, root: str, config_content: str | None, settings: Settings) -> int:
    files = settings.files or _select_files(session, root, config_content)
    result = session.analyze_selection(root, config_content, files)
    for info in result.files_info:
        label = "binary" if info.is_binary else str(info.tokens)
        print(f"{label:>10}  {info.path}")
    print(f"Total tokens: {result.total_tokens} files={len(result.files_info)} binary={result.skipped_binary_files}")
    return 0


def _run_export(session: ExportSession, root: str, config_content: str | None, settings: Settings) -> int:
    files = settings.files or _select_files(session, root, config_content)
    analysis = session.analyze_selection(root, config_content, files)

    defaults = ExportOptions.from_config(parse_filter_config(config_content).config)
    options = ExportOptions(
        show_token_count=defaults.show_token_count and not settings.no_token_count,
        include_tree_view=defaults.include_tree_view or settings.tree,
        export_format=settings.format or defaults.export_format,
    )
    result = session.process_repository(root, analysis.files_info, options=options)

    out_path = Path(str(settings.output))
    out_path.write_text(result.content, encoding="utf-8")
    print(
        f"Wrote {out_path} format={result.export_format} "
        f"files={result.processed_files} tokens={result.total_tokens}",
    )
    return 0


_COMMANDS = {
    "tree": _run_tree,
    "analyze": _run_analyze,
    "export": _run_export,
}


def _open_session(settings: Settings) -> tuple[ExportSession, str]:
    model = None if settings.approximate_tokens else settings.token_model
    session = ExportSession(token_counter=TokenCounter(model))
    root = session.select_directory(settings.repo)
    if root is None:
        raise InvalidSelectionError(path=str(settings.repo))
    return session, root


def _read_config(settings: Settings) -> str:
    try:
        return settings.read_config()
    except OSError as e:
        raise InvalidSelectionError(path=str(settings.config), message="Cannot read configuration file.") from e


def main(argv: Sequence[str] | None = None) -> int:
    load_environment()
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    try:
        session, root = _open_session(settings)
        config_content = _read_config(settings)
        return _COMMANDS[settings.command](session, root, config_content, settings)
    except (InvalidSelectionError, UnauthorizedRootError) as e:
        logger.error("Invalid selection", error=str(e))
        print(f"repo-export: {e}", file=sys.stderr)
        return EXIT_INVALID_SELECTION


if __name__ == "__main__":
    raise SystemExit(main())
