from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from repo_export import cli
from repo_export.settings import TOKEN_MODEL_ENV_VAR


class FixedCounter:
    def count_tokens(self, text: str) -> int:
        return 10


@pytest.mark.integration
def test_main_uses_configured_token_model(
    tmp_path: Path,
    mocker: MockerFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    repo = tmp_path
    file_path = repo / "src" / "app.py"
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text("print('hi')", encoding="utf-8")
    monkeypatch.setenv(TOKEN_MODEL_ENV_VAR, "gpt-4o")
    counter_cls = mocker.patch.object(cli, "TokenCounter", return_value=FixedCounter())

    output = repo / "out.md"
    exit_code = cli.main(["export", "--repo", str(repo), "--output", str(output)])

    assert exit_code == 0
    counter_cls.assert_called_once_with("gpt-4o")
    content = output.read_text(encoding="utf-8")
    assert "- Total tokens: 10" in content
    assert "### src/app.py" in content


@pytest.mark.integration
def test_main_approximate_tokens_skips_the_tokenizer(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / "a.py").write_text("x = 1\n", encoding="utf-8")
    counter_cls = mocker.patch.object(cli, "TokenCounter", return_value=FixedCounter())

    cli.main(["--approximate-tokens", "analyze", "--repo", str(tmp_path)])

    counter_cls.assert_called_once_with(None)


@pytest.mark.integration
def test_export_format_defaults_to_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "a.py").write_text("x = 1\n", encoding="utf-8")
    config = tmp_path / "conf.yaml"
    config.write_text("export_format: xml\ninclude_tree_view: true\n", encoding="utf-8")
    output = tmp_path / "out.xml"

    exit_code = cli.main(
        ["--approximate-tokens", "export", "--repo", str(tmp_path), "--config", str(config), "--output", str(output)],
    )

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert content.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<fileStructure>" in content
    assert "format=xml" in capsys.readouterr().out
