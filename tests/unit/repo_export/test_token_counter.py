import pytest
from pytest_mock import MockerFixture

from repo_export import token_counter
from repo_export.token_counter import TokenCounter, approximate_tokens


@pytest.mark.unit
def test_approximate_tokens() -> None:
    assert approximate_tokens("") == 0
    assert approximate_tokens("abcd") == 1
    assert approximate_tokens("abcde") == 2


@pytest.mark.unit
def test_approximate_mode_skips_tiktoken(mocker: MockerFixture) -> None:
    loader = mocker.patch.object(token_counter.tiktoken, "encoding_for_model")
    counter = TokenCounter(None)

    assert counter.is_approximate
    assert counter.count_tokens("a" * 10) == 3
    loader.assert_not_called()


@pytest.mark.unit
def test_encoder_is_loaded_once_and_used(mocker: MockerFixture) -> None:
    encoder = mocker.Mock()
    encoder.encode.return_value = [1, 2, 3]
    loader = mocker.patch.object(token_counter.tiktoken, "encoding_for_model", return_value=encoder)
    counter = TokenCounter("gpt-4")

    assert counter.count_tokens("hello <|endoftext|>") == 3
    assert counter.count_tokens("again") == 3
    loader.assert_called_once_with("gpt-4")
    encoder.encode.assert_called_with("again", disallowed_special=())
    assert not counter.is_approximate


@pytest.mark.unit
def test_loader_failure_falls_back_to_approximation(mocker: MockerFixture) -> None:
    mocker.patch.object(token_counter.tiktoken, "encoding_for_model", side_effect=KeyError("unknown model"))
    log = mocker.patch.object(token_counter, "logger")
    counter = TokenCounter("no-such-model")

    assert counter.count_tokens("abcdefgh") == 2
    assert counter.is_approximate
    log.error.assert_called_once()


@pytest.mark.unit
def test_count_tokens_never_raises(mocker: MockerFixture) -> None:
    encoder = mocker.Mock()
    encoder.encode.side_effect = ValueError("bad")
    mocker.patch.object(token_counter.tiktoken, "encoding_for_model", return_value=encoder)
    mocker.patch.object(token_counter, "logger")
    counter = TokenCounter("gpt-4")

    assert counter.count_tokens("text") == 0
    assert counter.count_tokens(None) == 0
    assert counter.count_tokens("") == 0
