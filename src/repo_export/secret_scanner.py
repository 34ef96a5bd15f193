"""Heuristic detection of credentials in file names and file content."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from repo_export.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from repo_export.config import FilterConfig


class SecretMatch(BaseModel):
    id: str
    description: str


class SecretScanResult(BaseModel):
    """Every rule that matched, plus an optional read error."""

    is_suspicious: bool = False
    matches: list[SecretMatch] = Field(default_factory=list)
    error: str | None = None


_AWS_SECRET_ASSIGNMENT_PREFIX = re.compile(
    r"aws(?:\s|_|-)?secret(?:\s|_|-)?access(?:\s|_|-)?key\s*[:=]\s*",
    re.IGNORECASE,
)
_AWS_SECRET_VALUE = re.compile(r"[A-Za-z0-9+/=]{40}")
_VALUE_STOP = re.compile(r"[\s;,]")


def _extract_assigned_value(text: str) -> str:
    """Return the value at the start of `text`: a quoted string or a bare token."""
    trimmed = text.lstrip()
    if not trimmed:
        return ""
    quote = trimmed[0]
    if quote in {'"', "'"}:
        end = trimmed.find(quote, 1)
        return trimmed[1:end] if end > 0 else ""
    stop = _VALUE_STOP.search(trimmed)
    return trimmed if stop is None else trimmed[: stop.start()]


def has_aws_secret_assignment(content: str) -> bool:
    """Detect an AWS secret key assigned to an ``aws_secret_access_key``-style name.

    Both the assignment and a 40-character base64-ish value are required, which
    keeps random 40-character strings from being flagged on their own.
    """
    for match in _AWS_SECRET_ASSIGNMENT_PREFIX.finditer(content):
        value = _extract_assigned_value(content[match.end() :])
        if _AWS_SECRET_VALUE.fullmatch(value):
            return True
    return False


@dataclass(frozen=True)
class SecretRule:
    id: str
    description: str
    pattern: re.Pattern[str] | None = None
    predicate: Callable[[str], bool] | None = None

    def matches(self, content: str) -> bool:
        if self.predicate is not None:
            return self.predicate(content)
        return self.pattern is not None and self.pattern.search(content) is not None


SECRET_RULES: tuple[SecretRule, ...] = (
    SecretRule(
        "private-key-block",
        "Private key block detected",
        re.compile(r"-----BEGIN (?:[A-Z ]+)?PRIVATE KEY-----", re.MULTILINE),
    ),
    SecretRule("github-token", "GitHub token detected", re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,}\b")),
    SecretRule("aws-access-key-id", "AWS access key id detected", re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b")),
    SecretRule(
        "aws-secret-assignment",
        "AWS secret key assignment detected",
        predicate=has_aws_secret_assignment,
    ),
    SecretRule("slack-token", "Slack token detected", re.compile(r"\bxox[baprs]-[0-9A-Za-z-]{10,}\b")),
    SecretRule("stripe-secret-key", "Stripe secret key detected", re.compile(r"\bsk_live_[0-9A-Za-z]{16,}\b")),
    SecretRule(
        "jwt-token",
        "JWT-like token detected",
        re.compile(r"\beyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\b"),
    ),
    SecretRule(
        "token-assignment",
        "Token assignment detected",
        re.compile(
            r"(?:api[_-]?key|access[_-]?token|auth[_-]?token)\s*[:=]\s*['\"][^'\"\n]{8,}['\"]",
            re.IGNORECASE,
        ),
    ),
    SecretRule(
        "credential-assignment",
        "Credential assignment detected",
        re.compile(
            r"(?:secret|password|passwd|client[_-]?secret)\s*[:=]\s*['\"][^'\"\n]{8,}['\"]",
            re.IGNORECASE,
        ),
    ),
)

SENSITIVE_FILE_NAME_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\.env(?:\..+)?$", re.IGNORECASE),
    re.compile(r"^id_(?:rsa|dsa|ecdsa|ed25519)(?:\.pub)?$", re.IGNORECASE),
    re.compile(r"(?:^|[-_.])(?:secret|secrets|credential|credentials)(?:[-_.]|$)", re.IGNORECASE),
)

SENSITIVE_FILE_EXTENSION_PATTERN = re.compile(
    r"\.(?:pem|key|p12|pfx|jks|keystore|cer|crt|der|kdbx|asc)$",
    re.IGNORECASE,
)

SENSITIVE_PATH_SEGMENTS: tuple[str, ...] = (
    ".aws/credentials",
    ".npmrc",
    ".pypirc",
    ".docker/config.json",
)


def should_exclude_suspicious_files(config: FilterConfig | None) -> bool:
    """Whether the policy asks for sensitive/suspicious files to be dropped."""
    if config is None:
        return True
    return config.enable_secret_scanning and config.exclude_suspicious_files


def is_sensitive_file_path(file_path: str | Path) -> bool:
    """Check a path against credential-like names, extensions and locations.

    This never reads the file.

    Args:
        file_path (str | Path): absolute or relative path

    Returns:
        bool: True if the path looks like it stores credentials
    """
    normalized = str(file_path).replace("\\", "/").lower()
    name = posixpath.basename(normalized)

    if SENSITIVE_FILE_EXTENSION_PATTERN.search(name):
        return True
    if any(p.search(name) for p in SENSITIVE_FILE_NAME_PATTERNS):
        return True
    return any(
        normalized == seg or normalized.endswith(f"/{seg}") or f"/{seg}/" in normalized
        for seg in SENSITIVE_PATH_SEGMENTS
    )


def should_exclude_sensitive_file_path(file_path: str | Path, config: FilterConfig | None) -> bool:
    return should_exclude_suspicious_files(config) and is_sensitive_file_path(file_path)


def scan_content_for_secrets(content: str) -> SecretScanResult:
    """Run every secret rule against `content` and collect all matches.

    Args:
        content (str): file text

    Returns:
        SecretScanResult: suspicious when at least one rule matched
    """
    found = [SecretMatch(id=r.id, description=r.description) for r in SECRET_RULES if r.matches(content)]
    return SecretScanResult(is_suspicious=bool(found), matches=found)


def scan_content_for_secrets_with_policy(content: str, config: FilterConfig | None) -> SecretScanResult:
    """Scan only when the config enables suspicious-file exclusion; otherwise report clean."""
    if not should_exclude_suspicious_files(config):
        return SecretScanResult()
    return scan_content_for_secrets(content)


def scan_file_for_secrets(file_path: str | Path) -> SecretScanResult:
    """Read a file and scan it. An unreadable file is reported as suspicious."""
    try:
        content = Path(file_path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.error("Error scanning file for secrets", path=str(file_path), error=str(e))
        return SecretScanResult(
            is_suspicious=True,
            matches=[
                SecretMatch(
                    id="scan-read-error",
                    description="Unable to read file while scanning for secrets",
                ),
            ],
            error=str(e),
        )
    return scan_content_for_secrets(content)
