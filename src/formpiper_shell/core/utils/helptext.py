# src/formpiper_shell/core/utils/helptext.py
from formpiper_shell.core.command_registry import COMMAND_HELP_TEXTS

HEADER_HELP_TEXT = """
📝 FormPiper Shell - Help

An interactive shell for inspecting, filling and validating HTML forms.

---
OPERATORS
---
  A ; B               Execute B after A, regardless of the outcome.
  A && B              Execute B only if A was successful (exit code 0).
  A || B              Execute B only if A failed (exit code != 0).
  A | B               Pipe the output (stdout) of A as input (stdin) for B.

---
VARIABLES & SHORTHANDS
---
  Variables are accessed using @{name}, e.g., @{page.name}.
  @{page.*} follows the active page; @{config.<key>} reads settings.

  set @{name}=value   Create or overwrite a variable.
  Shorthand:          @{name}=value

  get @{name}         Display the value of a variable.
  Shorthand:          @{name}

  !h                  Trigger command history completion.

---
COMMANDS
---
GENERAL:
  help                Show this help text.
  quit                Exit the shell.
  cls                 Clear the screen.
  echo <text...>      Display the specified text.
""".strip()


def get_help_text() -> str:
    """Header plus every handler's help fragment, in command order."""
    parts = [HEADER_HELP_TEXT]
    parts.extend(COMMAND_HELP_TEXTS[name] for name in sorted(COMMAND_HELP_TEXTS))
    return "\n\n".join(parts)
