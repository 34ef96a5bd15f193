import pytest

from repo_export.pattern_matcher import compile_pattern, matches


@pytest.mark.unit
@pytest.mark.parametrize(
    ("path", "pattern", "expected"),
    [
        ("src/a/b.js", "**/*.js", True),
        ("b.js", "*.js", True),
        ("src/b.js", "*.js", True),
        ("src/b.js", "src/*.js", True),
        ("src/a/b.js", "src/*.js", False),
        ("a1.txt", "a?.txt", True),
        ("a12.txt", "a?.txt", False),
        (".github/workflows/ci.yml", "**/*.yml", True),
        ("node_modules/pkg/index.js", "**/node_modules/**", True),
        ("lib/node_modules/pkg/index.js", "**/node_modules/**", True),
        ("src/index.ts", "**/*.js", False),
    ],
)
def test_matches(path: str, pattern: str, expected: bool) -> None:
    assert matches(path, pattern) is expected


@pytest.mark.unit
def test_windows_separators_are_normalized() -> None:
    assert matches("src\\lib\\a.py", "src/**/*.py")


@pytest.mark.unit
def test_empty_inputs_never_match() -> None:
    assert not matches("", "*.js")
    assert not matches("a.js", "")


@pytest.mark.unit
def test_compiled_patterns_are_reused() -> None:
    assert compile_pattern("**/*.py") is compile_pattern("**/*.py")


@pytest.mark.unit
def test_malformed_pattern_never_matches() -> None:
    assert compile_pattern("[z-a].py") is None
    assert not matches("a.py", "[z-a].py")
