from __future__ import annotations

from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from repo_export.config import FilterConfig
from repo_export.filters import get_relative_path, should_exclude, should_exclude_by_extension
from repo_export.gitignore import parse_gitignore_content


@pytest.mark.unit
def test_relative_path_uses_forward_slashes(tmp_path: Path) -> None:
    assert get_relative_path(tmp_path / "src" / "a.py", tmp_path) == "src/a.py"
    assert get_relative_path("src\\a.py", "") == "src/a.py"


@pytest.mark.unit
def test_extension_allow_list() -> None:
    config = FilterConfig(include_extensions=["JS", ".ts"])

    assert should_exclude_by_extension("src/a.py", config)
    assert not should_exclude_by_extension("src/a.js", config)
    assert not should_exclude_by_extension("src/b.TS", config)
    assert not should_exclude_by_extension("Makefile", config)
    assert not should_exclude_by_extension("src/a.py", FilterConfig(include_extensions=["js"], use_custom_includes=False))


@pytest.mark.unit
def test_directories_skip_the_extension_check(tmp_path: Path) -> None:
    config = FilterConfig(include_extensions=[".js"])

    assert not should_exclude(tmp_path / "conf.d", tmp_path, None, config, is_dir=True)
    assert should_exclude(tmp_path / "conf.d", tmp_path, None, config)


@pytest.mark.unit
def test_gitignore_rules_and_negation(tmp_path: Path) -> None:
    patterns = parse_gitignore_content("*.log\n!keep.log\nbuild/\n")

    assert should_exclude(tmp_path / "logs" / "a.log", tmp_path, patterns)
    assert not should_exclude(tmp_path / "logs" / "keep.log", tmp_path, patterns)
    assert should_exclude(tmp_path / "build", tmp_path, patterns, is_dir=True)
    assert should_exclude(tmp_path / "build" / "out.txt", tmp_path, patterns)
    assert not should_exclude(tmp_path / "src" / "main.py", tmp_path, patterns)


@pytest.mark.unit
def test_gitignore_can_be_disabled(tmp_path: Path) -> None:
    patterns = parse_gitignore_content("*.log\n")

    assert not should_exclude(tmp_path / "a.log", tmp_path, patterns, FilterConfig(use_gitignore=False))


@pytest.mark.unit
def test_custom_excludes_win_over_gitignore_negation(tmp_path: Path) -> None:
    patterns = parse_gitignore_content("!keep.log\n")
    config = FilterConfig(exclude_patterns=["*.log"])

    assert should_exclude(tmp_path / "keep.log", tmp_path, patterns, config)
    assert not should_exclude(tmp_path / "keep.log", tmp_path, patterns, FilterConfig(exclude_patterns=["*.log"], use_custom_excludes=False))


@pytest.mark.unit
def test_custom_excludes_match_directories(tmp_path: Path) -> None:
    config = FilterConfig(exclude_patterns=["**/node_modules/**"])

    assert should_exclude(tmp_path / "web" / "node_modules" / "x.js", tmp_path, None, config)


@pytest.mark.unit
def test_sensitive_paths_follow_the_policy(tmp_path: Path) -> None:
    assert should_exclude(tmp_path / ".env", tmp_path, None)
    assert should_exclude(tmp_path / "certs" / "server.pem", tmp_path, None)
    assert not should_exclude(tmp_path / ".env", tmp_path, None, FilterConfig(exclude_suspicious_files=False))
    assert not should_exclude(tmp_path / ".env", tmp_path, None, FilterConfig(enable_secret_scanning=False))


@pytest.mark.unit
def test_unexpected_errors_keep_the_path(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch("repo_export.filters.get_relative_path", side_effect=ValueError("boom"))
    log = mocker.patch("repo_export.filters.logger")

    assert not should_exclude(tmp_path / "a.py", tmp_path, None)
    log.error.assert_called_once()
