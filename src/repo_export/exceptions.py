from dataclasses import dataclass


@dataclass(frozen=True)
class RepoExportError(Exception):
    """Base exception for errors in the repo_export module."""


@dataclass(frozen=True)
class UnauthorizedRootError(RepoExportError):
    """Raised when an entry point is called for a root the session has not authorized."""

    root_path: str
    message: str = "Unauthorized root path. Please select the directory again."

    def __str__(self) -> str:
        return f"{self.message} ({self.root_path!r})"


@dataclass(frozen=True)
class ConfigError(RepoExportError):
    """Describes a filter configuration that could not be parsed or validated.

    It is carried inside parse results rather than raised, so callers can see
    that the engine fell back to defaults.
    """

    detail: str

    def __str__(self) -> str:
        return self.detail


@dataclass(frozen=True)
class InvalidSelectionError(RepoExportError):
    """Raised when a directory selection does not point at an existing directory."""

    path: str
    message: str = "The selected path is not a directory."

    def __str__(self) -> str:
        return f"{self.message} ({self.path!r})"
