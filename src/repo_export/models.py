from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from repo_export.config import ExportFormat
from repo_export.exceptions import ConfigError


class TreeNode(BaseModel):
    """One entry of a filtered directory tree snapshot.

    Attributes:
        name: Entry name (basename).
        path: Absolute path of the entry as seen during traversal.
        type: ``"file"`` or ``"directory"``.
        size: Size in bytes reported by ``stat``.
        last_modified: Modification time.
        extension: Lowercased extension (files only, may be "").
        children: Direct filtered children (directories only).
        item_count: Number of direct filtered children (directories only).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    type: Literal["file", "directory"]
    size: int = Field(..., ge=0)
    last_modified: datetime
    extension: str | None = None
    children: list[TreeNode] | None = None
    item_count: int | None = None

    @property
    def is_dir(self) -> bool:
        return self.type == "directory"

    def iter_files(self) -> list[TreeNode]:
        """Flatten this node into the list of file leaves beneath it (depth-first)."""
        if not self.is_dir:
            return [self]
        out: list[TreeNode] = []
        for child in self.children or []:
            out.extend(child.iter_files())
        return out


class DirectoryTreeResult(BaseModel):
    """Tree items plus the warnings and errors collected while building them."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: list[TreeNode] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    config_error: ConfigError | None = None


class FileInfo(BaseModel):
    """Analysis output for one file, consumed by the export pass."""

    path: str = Field(..., description="Root-relative path with POSIX separators")
    tokens: int = Field(default=0, description="Token count (0 for binary files)")
    is_binary: bool = Field(default=False, description="Whether the file was detected as binary")


class AnalysisResult(BaseModel):
    """Outcome of an analysis pass over a selection of files."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    files_info: list[FileInfo] = Field(default_factory=list)
    total_tokens: int = 0
    skipped_binary_files: int = 0
    config_error: ConfigError | None = None


class ExportResult(BaseModel):
    """Document produced by an export pass, with its counters."""

    content: str
    export_format: ExportFormat
    total_tokens: int = 0
    processed_files: int = 0
    skipped_files: int = 0
    files_info: list[FileInfo] = Field(default_factory=list)


class FileStat(BaseModel):
    size: int
    mtime: float


class CountFilesTokensResult(BaseModel):
    """Batch token counts and stats keyed by normalized absolute path."""

    results: dict[str, int] = Field(default_factory=dict)
    stats: dict[str, FileStat] = Field(default_factory=dict)
