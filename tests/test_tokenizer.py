import pytest

from sdlc_agent.errors import CommandParseError
from sdlc_agent.tokenizer import tokenize


def test_plain_words_roundtrip() -> None:
    argv = ["cargo", "test", "--workspace", "-p", "sdlc-core"]

    assert tokenize(" ".join(argv)) == argv


def test_quotes_and_escapes() -> None:
    assert tokenize("run 'a b' \"c d\" e\\ f") == ["run", "a b", "c d", "e f"]


def test_quote_contents_are_literal() -> None:
    assert tokenize("echo 'a\\b' \"it's\"") == ["echo", "a\\b", "it's"]


def test_adjacent_segments_join_into_one_token() -> None:
    assert tokenize("--flag='x y'z") == ["--flag=x yz"]


def test_empty_quotes_produce_empty_token() -> None:
    assert tokenize("printf '' done") == ["printf", "", "done"]


def test_whitespace_only_command_is_empty() -> None:
    assert tokenize("") == []
    assert tokenize("  \t ") == []


def test_trailing_backslash_is_kept() -> None:
    assert tokenize("echo foo\\") == ["echo", "foo\\"]


def test_unterminated_single_quote() -> None:
    with pytest.raises(CommandParseError) as excinfo:
        tokenize("echo 'unterminated")

    assert excinfo.value.quote == "'"
    assert "'" in str(excinfo.value)
    assert excinfo.value.command == "echo 'unterminated"


def test_unterminated_double_quote() -> None:
    with pytest.raises(CommandParseError) as excinfo:
        tokenize('echo "open')

    assert excinfo.value.quote == '"'
