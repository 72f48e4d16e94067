# tests/shell/test_execute_engine.py
import pytest
import re
from unittest.mock import MagicMock

from formpiper_shell.core.xngine import ExecuteEngine
from formpiper_shell.core.context.shell_context import ShellContext


def mock_handler_success(args, ctx, stdin=None):
    ctx.set("last_called", "success")
    return 0


def mock_handler_failure(args, ctx, stdin=None):
    ctx.set("last_called", "failure")
    return 1


def mock_handler_pipe(args, ctx, stdin=None):
    ctx.set("pipe_input", stdin)
    return 0


def mock_handler_interrupt(args, ctx, stdin=None):
    return 130


@pytest.fixture
def shell_context():
    """A clean ShellContext for every test."""
    return ShellContext()


@pytest.fixture
def xngine():
    """An ExecuteEngine over a small registry of fake handlers."""
    mock_registry = {
        "cmd_ok": mock_handler_success,
        "cmd_fail": mock_handler_failure,
        "cmd_pipe": mock_handler_pipe,
        "cmd_quit": mock_handler_interrupt,
    }

    # No argument expansion unless a test swaps it in
    mock_expander = lambda name, args, ctx: args

    engine = ExecuteEngine(
        command_registry=mock_registry,
        var_pattern=re.compile(r"@\{([^}]+)\}"),
        maybe_expand_args=mock_expander,
        post_refresh=lambda ctx: None,
        logger=MagicMock()
    )
    return engine


def test_xngine_execute_simple_success(xngine, shell_context):
    commands = [("cmd_ok", [], None)]
    exit_code = xngine.execute_sequence(commands, shell_context)

    assert exit_code == 0
    assert shell_context.get("last_called") == "success"


def test_xngine_empty_sequence(xngine, shell_context):
    assert xngine.execute_sequence([], shell_context) == 0


def test_xngine_operator_and_success(xngine, shell_context):
    """'&&': the second command runs after a success."""
    commands = [("cmd_ok", [], None), ("cmd_ok", [], "&&")]
    exit_code = xngine.execute_sequence(commands, shell_context)

    assert exit_code == 0
    assert shell_context.get("last_called") == "success"


def test_xngine_operator_and_failure(xngine, shell_context):
    """'&&': the second command is skipped after a failure."""
    commands = [("cmd_fail", [], None), ("cmd_ok", [], "&&")]
    exit_code = xngine.execute_sequence(commands, shell_context)

    assert exit_code == 1
    assert shell_context.get("last_called") == "failure"


def test_xngine_operator_or_success(xngine, shell_context):
    """'||': the second command is skipped after a success."""
    commands = [("cmd_ok", [], None), ("cmd_fail", [], "||")]
    exit_code = xngine.execute_sequence(commands, shell_context)

    assert exit_code == 0
    assert shell_context.get("last_called") == "success"


def test_xngine_operator_or_failure(xngine, shell_context):
    """'||': the second command runs after a failure."""
    commands = [("cmd_fail", [], None), ("cmd_ok", [], "||")]
    exit_code = xngine.execute_sequence(commands, shell_context)

    assert exit_code == 0
    assert shell_context.get("last_called") == "success"


def test_xngine_sequential_runs_regardless(xngine, shell_context):
    commands = [("cmd_fail", [], None), ("cmd_ok", [], ";")]
    assert xngine.execute_sequence(commands, shell_context) == 0


def test_xngine_operator_pipe(xngine, shell_context):
    """'|': stdout of the first command becomes stdin of the second."""

    def mock_echo(args, ctx, stdin=None):
        print("hallo wereld")
        return 0

    xngine._commands["echo"] = mock_echo

    commands = [("echo", [], None), ("cmd_pipe", [], "|")]
    exit_code = xngine.execute_sequence(commands, shell_context)

    assert exit_code == 0
    assert shell_context.get("pipe_input") == "hallo wereld\n"


def test_xngine_skipped_pipeline_is_skipped_entirely(xngine, shell_context):
    commands = [("cmd_fail", [], None), ("cmd_ok", [], "&&"), ("cmd_pipe", [], "|")]
    assert xngine.execute_sequence(commands, shell_context) == 1
    assert shell_context.get("pipe_input") is None


def test_xngine_interrupt_stops_sequence(xngine, shell_context):
    commands = [("cmd_quit", [], None), ("cmd_ok", [], ";")]
    assert xngine.execute_sequence(commands, shell_context) == 130
    assert shell_context.get("last_called") is None


def test_xngine_two_argument_handlers(xngine, shell_context):
    seen = []
    xngine._commands["legacy"] = lambda args, ctx: seen.append(args) or 0
    assert xngine.execute_sequence([("legacy", ["a"], None)], shell_context) == 0
    assert seen == [["a"]]


def test_xngine_unknown_command_not_found(xngine, shell_context, capsys):
    exit_code = xngine.execute_sequence([("definitely-not-a-command-xyz", [], None)], shell_context)
    assert exit_code == 127
    assert "command not found" in capsys.readouterr().out


def test_xngine_variable_expansion(xngine, shell_context):
    """@{var} in arguments is replaced by its value."""
    shell_context.set("form.id", "checkout")

    xngine._maybe_expand_args = lambda name, args, ctx: [xngine.expand_context_vars(a, ctx) for a in args]

    received_args = []

    def arg_catcher(args, ctx, stdin=None):
        nonlocal received_args
        received_args = args
        return 0

    xngine._commands["catch"] = arg_catcher

    commands = [("catch", ["form-is-@{form.id}", "@{unknown}", "@{x}=1"], None)]
    xngine.execute_sequence(commands, shell_context)

    assert received_args == ["form-is-checkout", "@{unknown}", "@{x}=1"]


def test_resolve_var_dotted_and_roots(xngine, shell_context):
    shell_context.set("user", {"address": {"city": "Utrecht"}})
    assert xngine.resolve_var("user.address.city", shell_context) == "Utrecht"
    assert xngine.resolve_var("ctx.active_page", shell_context) is None
    assert xngine.resolve_var("page.mode", shell_context) is None
    assert xngine.resolve_var("nothing", shell_context) is None


def test_settle_pages_flushes_pending_rescans(xngine, shell_context):
    bridge = MagicMock()
    bridge.active.flush.return_value = True
    shell_context.pages["signup"] = bridge

    xngine.execute_sequence([("cmd_ok", [], None)], shell_context)

    bridge.active.flush.assert_called_once_with()
