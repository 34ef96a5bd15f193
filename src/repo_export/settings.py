from __future__ import annotations

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from repo_export.config import ExportFormat, load_default_config
from repo_export.token_counter import DEFAULT_TOKEN_MODEL

ENV_FILE = find_dotenv(usecwd=True)
TOKEN_MODEL_ENV_VAR = "REPO_EXPORT_TOKEN_MODEL"


def load_environment(env_file: str | None = None) -> bool:
    """Load variables from the discovered `.env` file without overriding the environment.

    Args:
        env_file (str | None): explicit file to load; defaults to :data:`ENV_FILE`

    Returns:
        bool: True if a file was found and loaded
    """
    path = env_file if env_file is not None else ENV_FILE
    if not path:
        return False
    return load_dotenv(path, override=False)


def default_token_model() -> str:
    return os.environ.get(TOKEN_MODEL_ENV_VAR) or DEFAULT_TOKEN_MODEL


class Settings(BaseModel):
    """Configuration settings for the repo-export command line."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    command: str = Field(..., description="Subcommand: tree, analyze or export.")
    repo: Path = Field(default_factory=Path.cwd, description="Repository root.")
    config: Path | None = Field(default=None, description="YAML filter configuration file.")
    files: list[str] = Field(default_factory=list, description="Selected files (root-relative or absolute).")
    log_file: str = Field(default="", description="Log file path.")
    token_model: str = Field(default_factory=default_token_model, description="tiktoken model name.")
    approximate_tokens: bool = Field(default=False, description="Estimate tokens instead of using tiktoken.")

    output: Path | None = Field(default=None, description="Output file (export only).")
    format: ExportFormat | None = Field(default=None, description="Force export format.")
    tree: bool = Field(default=False, description="Include the file tree in the export.")
    no_token_count: bool = Field(default=False, description="Omit token counts from the export.")
    json_output: bool = Field(default=False, description="Print the tree as JSON (tree only).")

    def read_config(self) -> str:
        """Return the filter configuration text; the bundled default when no file was given."""
        if self.config is None:
            return load_default_config()
        return self.config.read_text(encoding="utf-8")
