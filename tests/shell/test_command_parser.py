# tests/shell/test_command_parser.py
import pytest
from formpiper_shell.core.parser import parse_command_line


def test_parse_simple_command():
    """A single command without arguments."""
    result = parse_command_line("forms list")
    assert result == [("forms", ["list"], None)]


def test_parse_command_with_arguments():
    """A command with several arguments."""
    result = parse_command_line("page load ./signup.html --name signup")
    assert result == [("page", ["load", "./signup.html", "--name", "signup"], None)]


def test_parse_sequential_operator():
    """The ';' operator runs commands one after another."""
    result = parse_command_line("forms list ; page info")
    assert result == [
        ("forms", ["list"], None),
        ("page", ["info"], ";")
    ]


def test_parse_conditional_and_operator():
    """The '&&' operator only continues on success."""
    result = parse_command_line("page use signup && forms stats")
    assert result == [
        ("page", ["use", "signup"], None),
        ("forms", ["stats"], "&&")
    ]


def test_parse_conditional_or_operator():
    """The '||' operator only continues on failure."""
    result = parse_command_line("page use missing || page list")
    assert result == [
        ("page", ["use", "missing"], None),
        ("page", ["list"], "||")
    ]


def test_parse_pipe_operator():
    """The '|' operator passes output along."""
    result = parse_command_line("echo '{\"email\": \"a@b.nl\"}' | fill --stdin")
    assert result == [
        ("echo", ['{"email": "a@b.nl"}'], None),
        ("fill", ["--stdin"], "|")
    ]


def test_parse_complex_chain():
    """A chain mixing several operators."""
    line = "fill email=a@b.nl && echo 'Filled' || echo 'Failed' ; forms stats"
    result = parse_command_line(line)
    assert result == [
        ("fill", ["email=a@b.nl"], None),
        ("echo", ["Filled"], "&&"),
        ("echo", ["Failed"], "||"),
        ("forms", ["stats"], ";")
    ]


def test_parse_variable_shorthands():
    """The 'set' and 'get' shorthands."""
    result_set = parse_command_line("@{form}=checkout")
    assert result_set == [("set", ["@{form}=checkout"], None)]

    result_get = parse_command_line("@{page.mode}")
    assert result_get == [("get", ["@{page.mode}"], None)]


def test_shorthand_only_applies_to_the_first_token():
    """Variables further along a line remain plain arguments."""
    result = parse_command_line("forms show @{form}")
    assert result == [("forms", ["show", "@{form}"], None)]


def test_parse_quoted_arguments():
    """Quoted arguments keep their spaces."""
    line = 'fill "First Name=Ada Lovelace" --form "sign up"'
    result = parse_command_line(line)
    assert result == [
        ("fill", ["First Name=Ada Lovelace", "--form", "sign up"], None)
    ]


@pytest.mark.parametrize("line", ["", "    ", None])
def test_parse_empty_and_whitespace_input(line):
    """Empty input yields no segments."""
    assert parse_command_line(line) == []
