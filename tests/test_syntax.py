import pytest

from minishell.syntax import (
    ShellSyntaxError,
    check_operators,
    check_quotes_and_ends,
    is_special,
    mask,
    mask_quoted,
    preprocess,
    space_redirections,
    unmask,
)

NEWLINE_ERROR = "minishell: syntax error near unexpected token `newline'"


@pytest.mark.parametrize(
    "char, flag, expected",
    [
        (" ", 0, True),
        ("|", 0, True),
        ("\t", 0, True),
        ('"', 0, False),
        ('"', 1, True),
        ("'", 1, False),
        ("'", 2, True),
        ("'", 3, True),
        ('"', 3, True),
        ("a", 3, False),
    ],
)
def test_is_special(char, flag, expected):
    assert is_special(char, flag) is expected


def test_unmask_flag_zero_keeps_quotes_masked():
    assert unmask(mask('"'), 0) == mask('"')
    assert unmask(mask(" "), 0) == " "


@pytest.mark.parametrize("line", ["ls |", "| ls"])
def test_pipe_at_edge(line):
    with pytest.raises(ShellSyntaxError) as info:
        check_quotes_and_ends(line)
    assert info.value.message == "minishell: syntax error near unexpected token `|'"
    assert info.value.status == 2


@pytest.mark.parametrize("line", ["ls >", "cat <"])
def test_redirection_at_end(line):
    with pytest.raises(ShellSyntaxError) as info:
        check_quotes_and_ends(line)
    assert str(info.value) == NEWLINE_ERROR


def test_unclosed_quote():
    with pytest.raises(ShellSyntaxError) as info:
        check_quotes_and_ends('echo "abc')
    assert info.value.message == "unclosed qoute"


def test_nested_quotes_are_closed():
    assert check_quotes_and_ends("echo 'a\"b'") is None


def test_operator_after_operator():
    with pytest.raises(ShellSyntaxError) as info:
        check_operators("a > | b")
    assert "`|'" in info.value.message


def test_pipe_then_redirection_allowed():
    assert check_operators("a | > b") is None


@pytest.mark.parametrize("line, token", [("ls ; ls", ";"), ("echo a*", "*"), ("a && b", "&")])
def test_forbidden_characters(line, token):
    with pytest.raises(ShellSyntaxError) as info:
        check_operators(line)
    assert f"`{token}'" in info.value.message


def test_mask_quoted_hides_spaces_inside_quotes():
    line = 'echo "a b" c'
    masked = mask_quoted(line)
    assert len(masked.split(" ")) == 3
    assert unmask(masked) == line


def test_mask_quoted_single_inside_double():
    masked = mask_quoted("\"it's\"")
    assert "'" not in masked
    assert unmask(masked) == "\"it's\""


def test_space_redirections_splits_operators():
    assert space_redirections("a>>b").split() == ["a", ">>", "b"]
    assert space_redirections("cat<in").split() == ["cat", "<", "in"]


def test_space_redirections_squeezes_spaces():
    assert space_redirections("echo   hi") == "echo hi"


def test_preprocess_trims():
    assert preprocess("  echo hi \t") == "echo hi"


def test_preprocess_empty():
    assert preprocess("   ") == ""


def test_preprocess_keeps_quoted_operators():
    result = preprocess('echo "a;b<c"')
    assert unmask(result) == 'echo "a;b<c"'


def test_preprocess_triple_angle_is_error():
    with pytest.raises(ShellSyntaxError) as info:
        preprocess("ls <<< x")
    assert "`<'" in info.value.message