import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from repo_export import cli


def _make_repo(root: Path) -> Path:
    files = {
        "src/app.py": "print('hello')\n",
        "src/util.js": "export const x = 1;\n",
        "README.md": "# Demo\n",
        ".env": "TOKEN=1\n",
        "node_modules/dep/index.js": "module.exports = 1;\n",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def test_end_to_end_markdown_export(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = _make_repo(tmp_path / "repo")
    output = tmp_path / "export.md"

    exit_code = cli.main(
        [
            "--approximate-tokens",
            "export",
            "--repo",
            str(repo),
            "--output",
            str(output),
            "--tree",
        ],
    )

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert content.count("### src/app.py") == 1
    assert "### src/util.js" in content
    assert "### README.md" in content
    assert "## File Structure" in content
    assert ".env" not in content
    assert "node_modules" not in content
    out = capsys.readouterr().out
    assert f"Wrote {output} format=markdown files=3" in out


def test_end_to_end_xml_export_of_selected_files(tmp_path: Path) -> None:
    repo = _make_repo(tmp_path / "repo")
    output = tmp_path / "export.xml"

    exit_code = cli.main(
        [
            "--approximate-tokens",
            "export",
            "--repo",
            str(repo),
            "--output",
            str(output),
            "--format",
            "xml",
            "--no-token-count",
            "src/app.py",
            "../outside.py",
        ],
    )

    assert exit_code == 0
    root = ET.fromstring(output.read_bytes())
    files = list(root.iter("file"))
    assert [f.get("path") for f in files] == ["src/app.py"]
    assert files[0].get("tokens") is None


def test_end_to_end_tree_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = _make_repo(tmp_path / "repo")

    exit_code = cli.main(["--approximate-tokens", "tree", "--repo", str(repo), "--json"])

    assert exit_code == 0
    items = json.loads(capsys.readouterr().out)
    assert [i["name"] for i in items] == ["src", "README.md"]
    assert [c["name"] for c in items[0]["children"]] == ["app.py", "util.js"]


def test_end_to_end_tree_text_and_analyze(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = _make_repo(tmp_path / "repo")

    assert cli.main(["--approximate-tokens", "tree", "--repo", str(repo)]) == 0
    tree_out = capsys.readouterr().out
    assert tree_out.splitlines() == ["repo/", "├── src/", "│   ├── app.py", "│   └── util.js", "└── README.md"]

    assert cli.main(["--approximate-tokens", "analyze", "--repo", str(repo)]) == 0
    analyze_out = capsys.readouterr().out
    assert "src/app.py" in analyze_out
    assert "Total tokens:" in analyze_out
    assert "files=3" in analyze_out


def test_end_to_end_custom_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = _make_repo(tmp_path / "repo")
    config = tmp_path / "filters.yaml"
    config.write_text("include_extensions: [.py]\nuse_gitignore: false\n", encoding="utf-8")

    exit_code = cli.main(["--approximate-tokens", "analyze", "--repo", str(repo), "--config", str(config)])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "src/app.py" in out
    assert "util.js" not in out
    assert "files=1" in out
