from __future__ import annotations

from enum import StrEnum
from pathlib import PurePath
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from repo_export.exceptions import ConfigError
from repo_export.logging import logger


class ExportFormat(StrEnum):
    """Output document formats supported by the exporter."""

    MARKDOWN = "markdown"
    XML = "xml"


def normalize_export_format(value: object) -> ExportFormat:
    """Map any user-supplied format value onto a supported format.

    Only an explicit ``"xml"`` selects XML; everything else, including unknown
    values, falls back to Markdown.

    Args:
        value (object): the raw format value (string, enum member, None...)

    Returns:
        ExportFormat: the normalized export format
    """
    if isinstance(value, str) and value.strip().lower() == ExportFormat.XML:
        return ExportFormat.XML
    return ExportFormat.MARKDOWN


FENCE_LANGUAGE: dict[str, str] = {
    ".bash": "bash",
    ".c": "c",
    ".cc": "cpp",
    ".cfg": "ini",
    ".conf": "ini",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".css": "css",
    ".go": "go",
    ".h": "c",
    ".hpp": "cpp",
    ".html": "html",
    ".ini": "ini",
    ".java": "java",
    ".js": "javascript",
    ".json": "json",
    ".jsx": "jsx",
    ".kt": "kotlin",
    ".md": "markdown",
    ".mjs": "javascript",
    ".php": "php",
    ".py": "python",
    ".rb": "ruby",
    ".rs": "rust",
    ".scss": "scss",
    ".sh": "bash",
    ".sql": "sql",
    ".swift": "swift",
    ".toml": "toml",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".zsh": "bash",
}

_FENCE_LANGUAGE_BY_NAME: dict[str, str] = {
    "dockerfile": "dockerfile",
    "makefile": "makefile",
}


def fence_language(path: str | PurePath) -> str:
    """Suggest a code fence language for a file, or "" when unknown."""
    p = PurePath(path)
    by_name = _FENCE_LANGUAGE_BY_NAME.get(p.name.lower())
    if by_name:
        return by_name
    return FENCE_LANGUAGE.get(p.suffix.lower(), "")


_ENABLED_BY_DEFAULT = (
    "use_custom_includes",
    "use_custom_excludes",
    "use_gitignore",
    "enable_secret_scanning",
    "exclude_suspicious_files",
)


class FilterConfig(BaseModel):
    """Typed filter configuration, validated once at the boundary.

    Every flag is enabled unless explicitly set to ``false``; a ``null`` value in
    the YAML source counts as "not set".
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    include_extensions: list[str] | None = Field(
        default=None,
        description="Extension allow-list (lowercase, with leading dot).",
    )
    exclude_patterns: list[str] = Field(default_factory=list, description="Custom exclude globs.")
    use_custom_includes: bool = Field(default=True, description="Apply the extension allow-list.")
    use_custom_excludes: bool = Field(default=True, description="Apply custom exclude globs.")
    use_gitignore: bool = Field(default=True, description="Apply .gitignore rules.")
    enable_secret_scanning: bool = Field(default=True, description="Scan content for secrets.")
    exclude_suspicious_files: bool = Field(default=True, description="Drop sensitive/suspicious files.")
    include_tree_view: bool = Field(default=False, description="Default for the export tree view.")
    show_token_count: bool = Field(default=True, description="Default for export token attributes.")
    export_format: ExportFormat = Field(default=ExportFormat.MARKDOWN, description="Default export format.")

    @field_validator(*_ENABLED_BY_DEFAULT, mode="before")
    @classmethod
    def _none_means_enabled(cls, value: Any) -> Any:  # noqa: ANN401
        return True if value is None else value

    @field_validator("include_tree_view", mode="before")
    @classmethod
    def _none_means_disabled(cls, value: Any) -> Any:  # noqa: ANN401
        return False if value is None else value

    @field_validator("show_token_count", mode="before")
    @classmethod
    def _none_shows_tokens(cls, value: Any) -> Any:  # noqa: ANN401
        return True if value is None else value

    @field_validator("export_format", mode="before")
    @classmethod
    def _normalize_format(cls, value: Any) -> ExportFormat:  # noqa: ANN401
        return normalize_export_format(value)

    @field_validator("exclude_patterns", mode="before")
    @classmethod
    def _normalize_patterns(cls, value: Any) -> Any:  # noqa: ANN401
        if value is None:
            return []
        if isinstance(value, list):
            return [str(p).strip() for p in value if p is not None and str(p).strip()]
        return value

    @field_validator("include_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> Any:  # noqa: ANN401
        if value is None or not isinstance(value, list):
            return value
        out: list[str] = []
        for raw in value:
            if raw is None:
                continue
            ext = str(raw).strip().lower()
            if not ext:
                continue
            out.append(ext if ext.startswith(".") else f".{ext}")
        return out

    @property
    def custom_excludes(self) -> list[str]:
        """Custom exclude patterns that are currently in effect."""
        return list(self.exclude_patterns) if self.use_custom_excludes else []


class ExportOptions(BaseModel):
    """Per-export options for the content exporter."""

    model_config = ConfigDict(frozen=True)

    show_token_count: bool = True
    include_tree_view: bool = False
    export_format: ExportFormat = ExportFormat.MARKDOWN

    @field_validator("export_format", mode="before")
    @classmethod
    def _normalize_format(cls, value: Any) -> ExportFormat:  # noqa: ANN401
        return normalize_export_format(value)

    @classmethod
    def from_config(cls, config: FilterConfig) -> ExportOptions:
        """Build export options from the export defaults stored in a filter config."""
        return cls(
            show_token_count=config.show_token_count,
            include_tree_view=config.include_tree_view,
            export_format=config.export_format,
        )


class ConfigParseResult(BaseModel):
    """Outcome of parsing raw configuration text.

    ``error`` is set when the content was unusable; ``config`` then holds the
    permissive defaults the engine continues with.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    config: FilterConfig = Field(default_factory=FilterConfig)
    error: ConfigError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _failed(detail: str) -> ConfigParseResult:
    logger.error("Error parsing config", detail=detail)
    return ConfigParseResult(config=FilterConfig(), error=ConfigError(detail=detail))


def parse_filter_config(content: str | None) -> ConfigParseResult:
    """Parse YAML filter configuration text into a typed config.

    Args:
        content (str | None): raw YAML text; empty or None means "use defaults"

    Returns:
        ConfigParseResult: the parsed config, or the defaults plus an error
    """
    if content is None or not content.strip():
        return ConfigParseResult()
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        return _failed(f"invalid YAML: {e}")
    if data is None:
        return ConfigParseResult()
    if not isinstance(data, dict):
        return _failed(f"expected a mapping at top level, got {type(data).__name__}")
    try:
        return ConfigParseResult(config=FilterConfig.model_validate(data))
    except ValidationError as e:
        return _failed(f"invalid configuration: {e.error_count()} error(s): {e.errors()[0]['msg']}")


DEFAULT_CONFIG_YAML = """\
# Default filter configuration.
include_extensions:
  - .py
  - .js
  - .jsx
  - .ts
  - .tsx
  - .json
  - .md
  - .txt
  - .yaml
  - .yml
  - .toml
  - .html
  - .css
  - .scss
  - .sh
  - .go
  - .rs
  - .java
  - .c
  - .h
  - .cpp
  - .hpp
  - .rb
  - .php
  - .sql
exclude_patterns:
  - "**/.git/**"
  - "**/node_modules/**"
  - "**/__pycache__/**"
  - "**/.venv/**"
  - "**/dist/**"
  - "**/build/**"
  - "**/coverage/**"
  - "**/*.min.js"
  - "**/*.lock"
  - "**/package-lock.json"
use_custom_excludes: true
use_custom_includes: true
use_gitignore: true
enable_secret_scanning: true
exclude_suspicious_files: true
include_tree_view: false
show_token_count: true
export_format: markdown
"""


def load_default_config() -> str:
    """Return the bundled default configuration as YAML text."""
    return DEFAULT_CONFIG_YAML
