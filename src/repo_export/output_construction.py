from __future__ import annotations

import io
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from pydantic import ValidationError

from repo_export.config import ExportFormat, ExportOptions, fence_language
from repo_export.export_format import (
    escape_xml_attribute,
    normalize_token_count,
    to_xml_numeric_attribute,
    wrap_xml_cdata,
)
from repo_export.file_manipulation import (
    build_tree_lines,
    code_fence,
    file_type_label,
    is_binary_file,
    is_regular_file,
    read_text_file,
    size_in_kb,
)
from repo_export.logging import logger
from repo_export.models import ExportResult, FileInfo
from repo_export.path_guard import is_path_within_root

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_export.token_counter import TokenCounterLike

BINARY_NOTE = "Binary files are included in the file tree but not processed for content."


class ProcessedFile(NamedTuple):
    path: str
    content: str
    tokens: int


def build_tree_view(rel_paths: Sequence[str]) -> str:
    """Render root-relative paths as a box-drawing tree (directories first)."""
    lines = build_tree_lines(rel_paths)
    return "\n".join(lines) + "\n" if lines else ""


def format_markdown_file(full_path: str, relative_path: str, *, is_binary: bool) -> str:
    """Format one file as a Markdown section headed by its relative path.

    Args:
        full_path (str): absolute path to read from
        relative_path (str): path shown in the header
        is_binary (bool): emit a placeholder instead of the content

    Returns:
        str: the Markdown section
    """
    out = io.StringIO()
    out.write(f"### {relative_path}\n\n")
    if is_binary:
        size = os.stat(full_path).st_size
        out.write("[BINARY FILE]\n")
        out.write(f"File Type: {file_type_label(full_path)}\n")
        out.write(f"Size: {size_in_kb(size)} KB\n\n")
        out.write(f"Note: {BINARY_NOTE}\n\n")
        return out.getvalue()

    content = read_text_file(full_path)
    if content and not content.endswith("\n"):
        content += "\n"
    fence = code_fence(content)
    out.write(f"{fence}{fence_language(relative_path)}\n{content}{fence}\n\n")
    return out.getvalue()


def format_xml_file(
    full_path: str,
    relative_path: str,
    *,
    is_binary: bool,
    tokens: int,
    show_token_count: bool,
) -> str:
    """Format one file as a ``<file>`` element with CDATA content."""
    path_attr = escape_xml_attribute(relative_path)
    token_attr = f' tokens="{to_xml_numeric_attribute(tokens)}"' if show_token_count else ""
    if is_binary:
        size = os.stat(full_path).st_size
        return (
            f'<file path="{path_attr}"{token_attr} binary="true" '
            f'fileType="{escape_xml_attribute(file_type_label(full_path))}" '
            f'sizeKB="{escape_xml_attribute(size_in_kb(size))}">\n'
            f"<note>{wrap_xml_cdata(BINARY_NOTE)}</note>\n"
            "</file>\n"
        )
    content = read_text_file(full_path)
    return f'<file path="{path_attr}"{token_attr} binary="false">\n{wrap_xml_cdata(content)}\n</file>\n'


def _coerce_file_info(entry: object) -> FileInfo | None:
    if isinstance(entry, FileInfo):
        return entry if entry.path else None
    if isinstance(entry, Mapping):
        data = dict(entry)
        if "isBinary" in data and "is_binary" not in data:
            data["is_binary"] = data.pop("isBinary")
        try:
            info = FileInfo.model_validate(data)
        except ValidationError:
            return None
        return info if info.path else None
    return None


def _process_entry(
    root_path: str,
    info: FileInfo,
    options: ExportOptions,
    token_counter: TokenCounterLike | None,
) -> ProcessedFile | None:
    full_path = os.path.abspath(os.path.join(root_path, info.path))
    if not is_path_within_root(root_path, full_path):
        logger.warning("Skipping file outside root directory", path=info.path)
        return None
    if not is_regular_file(Path(full_path)):
        logger.warning("File not found", path=info.path)
        return None

    binary = info.is_binary or is_binary_file(full_path)
    tokens = normalize_token_count(info.tokens)
    if "tokens" not in info.model_fields_set and not binary and token_counter is not None:
        tokens = normalize_token_count(token_counter.count_tokens(read_text_file(full_path)))

    if options.export_format == ExportFormat.XML:
        content = format_xml_file(
            full_path,
            info.path,
            is_binary=binary,
            tokens=0 if binary else tokens,
            show_token_count=options.show_token_count,
        )
    else:
        content = format_markdown_file(full_path, info.path, is_binary=binary)
    return ProcessedFile(path=info.path, content=content, tokens=0 if binary else tokens)


def _markdown_document(
    processed: list[ProcessedFile],
    tree_view: str | None,
    options: ExportOptions,
    totals: tuple[int, int, int],
) -> str:
    total_tokens, processed_files, skipped_files = totals
    out = io.StringIO()
    out.write("# Repository Content\n\n")
    if options.include_tree_view:
        tree = tree_view or build_tree_view([p.path for p in processed])
        if tree and not tree.endswith("\n"):
            tree += "\n"
        fence = code_fence(tree)
        out.write("## File Structure\n\n")
        out.write(f"{fence}\n{tree}{fence}\n\n")
        out.write("## File Contents\n\n")
    for item in processed:
        out.write(item.content)
    out.write("## Summary\n\n")
    out.write(f"- Processed files: {processed_files}\n")
    out.write(f"- Skipped files: {skipped_files}\n")
    if options.show_token_count:
        out.write(f"- Total tokens: {total_tokens}\n")
    out.write("\n--END--\n")
    return out.getvalue()


def _xml_document(
    processed: list[ProcessedFile],
    tree_view: str | None,
    options: ExportOptions,
    totals: tuple[int, int, int],
) -> str:
    total_tokens, processed_files, skipped_files = totals
    out = io.StringIO()
    out.write('<?xml version="1.0" encoding="UTF-8"?>\n<repositoryContent>\n')
    if options.include_tree_view:
        tree = tree_view or build_tree_view([p.path for p in processed])
        out.write(f"<fileStructure>{wrap_xml_cdata(tree)}</fileStructure>\n")
    out.write("<files>\n")
    for item in processed:
        out.write(item.content)
    out.write("</files>\n")
    out.write(
        f'<summary totalTokens="{to_xml_numeric_attribute(total_tokens)}" '
        f'processedFiles="{to_xml_numeric_attribute(processed_files)}" '
        f'skippedFiles="{to_xml_numeric_attribute(skipped_files)}" />\n',
    )
    out.write("</repositoryContent>\n")
    return out.getvalue()


def process_repository(
    *,
    root_path: str | Path,
    files_info: Sequence[FileInfo | Mapping[str, object] | None] | None,
    tree_view: str | None = None,
    options: ExportOptions | None = None,
    token_counter: TokenCounterLike | None = None,
) -> ExportResult:
    """Read the selected files fresh from disk and serialize them into one document.

    Entries that are invalid, escape the root, no longer exist or cannot be read
    are skipped and counted in ``skipped_files``. The generated tree view only
    lists files that passed the root check.

    Args:
        root_path (str | Path): the (authorized) repository root
        files_info (Sequence[FileInfo | Mapping | None] | None): analysis output to export
        tree_view (str | None): caller-rendered tree; generated when None and requested
        options (ExportOptions | None): export options; defaults when None
        token_counter (TokenCounterLike | None): used only for entries without a token count

    Returns:
        ExportResult: the document plus processed/skipped/token counters
    """
    options = options or ExportOptions()
    root = os.path.abspath(str(root_path))
    entries = list(files_info or [])
    logger.info("Processing with options", **options.model_dump(mode="json"))

    processed: list[ProcessedFile] = []
    valid: list[FileInfo] = []
    skipped = 0
    for entry in entries:
        info = _coerce_file_info(entry)
        if info is None:
            logger.warning("Skipping invalid file info entry")
            skipped += 1
            continue
        valid.append(info)
        try:
            item = _process_entry(root, info, options, token_counter)
        except OSError as e:
            logger.warning("Failed to process file", path=info.path, error=str(e))
            item = None
        if item is None:
            skipped += 1
            continue
        processed.append(item)

    total_tokens = sum(p.tokens for p in processed)
    totals = (total_tokens, len(processed), skipped)
    if options.export_format == ExportFormat.XML:
        content = _xml_document(processed, tree_view, options, totals)
    else:
        content = _markdown_document(processed, tree_view, options, totals)

    return ExportResult(
        content=content,
        export_format=options.export_format,
        total_tokens=total_tokens,
        processed_files=len(processed),
        skipped_files=skipped,
        files_info=valid,
    )
