from __future__ import annotations

import os
from pathlib import Path

import pytest

from repo_export.path_guard import (
    is_path_within_root,
    is_path_within_temp_root,
    resolve_authorized_path,
    resolve_real_path,
)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    (root / "src").mkdir(parents=True)
    (root / "src" / "index.js").write_text("x", encoding="utf-8")
    return root


@pytest.mark.unit
def test_root_contains_itself_and_children(repo: Path) -> None:
    assert is_path_within_root(repo, repo)
    assert is_path_within_root(repo, repo / "src" / "index.js")


@pytest.mark.unit
def test_missing_paths_are_resolved_through_existing_ancestor(repo: Path) -> None:
    assert is_path_within_root(repo, repo / "not" / "there.txt")
    assert resolve_real_path(repo / "nope.txt") == os.path.join(resolve_real_path(repo), "nope.txt")


@pytest.mark.unit
def test_sibling_with_common_prefix_is_outside(tmp_path: Path, repo: Path) -> None:
    sibling = tmp_path / "repo-secrets"
    sibling.mkdir()
    (sibling / "key.txt").write_text("k", encoding="utf-8")

    assert not is_path_within_root(repo, sibling / "key.txt")
    assert resolve_authorized_path(repo, "../repo-secrets/key.txt") is None


@pytest.mark.unit
def test_relative_candidate_resolves_against_root(repo: Path) -> None:
    resolved = resolve_authorized_path(repo, "src/index.js")

    assert resolved == os.path.abspath(os.path.join(repo, "src/index.js"))


@pytest.mark.unit
def test_parent_traversal_is_rejected(repo: Path) -> None:
    assert resolve_authorized_path(repo, "../outside.js") is None
    assert resolve_authorized_path(repo, "src/../../outside.js") is None


@pytest.mark.unit
def test_missing_root_or_candidate_is_rejected(repo: Path) -> None:
    assert resolve_authorized_path(None, "src/index.js") is None
    assert resolve_authorized_path(repo, "") is None
    assert not is_path_within_root(None, repo)
    assert not is_path_within_root(repo, None)


@pytest.mark.unit
def test_symlink_escaping_root_is_outside(tmp_path: Path, repo: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("s", encoding="utf-8")
    (repo / "link").symlink_to(outside, target_is_directory=True)

    assert not is_path_within_root(repo, repo / "link" / "secret.txt")
    assert resolve_authorized_path(repo, "link/secret.txt") is None


@pytest.mark.unit
def test_temp_root_containment(tmp_path: Path) -> None:
    assert is_path_within_temp_root(tmp_path / "a.txt", tmp_path)
    assert not is_path_within_temp_root(tmp_path.parent / "elsewhere", tmp_path)
