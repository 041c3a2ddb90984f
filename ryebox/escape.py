"""
Command-line escaping.

Two policies are supported:

- safe: every word is quoted so a POSIX shell reads back the exact literal.
  No variable, glob, pipe or substitution is interpreted.
- unsafe: words are joined with single spaces and handed to the remote shell
  untouched, so ``$HOME``, ``*.log`` and ``|`` keep their shell meaning.

Examples:
    >>> escape(True, "ls", "-l", "my file")
    "ls -l 'my file'"
    >>> escape(False, "ls", "-l", "*.log")
    'ls -l *.log'
"""

import shlex
from typing import Any, Iterable, List


def flatten_args(args: Iterable[Any]) -> List[str]:
    """Flatten nested lists/tuples into a list of strings, dropping None."""
    flat = []
    for arg in args:
        if arg is None:
            continue
        if isinstance(arg, (list, tuple)):
            flat.extend(flatten_args(arg))
        else:
            flat.append(str(arg))
    return flat


def shell_quote(value: Any) -> str:
    """Quote a single word for safe use in a remote POSIX shell."""
    return shlex.quote(str(value))


def escape(safe: bool, command: str, *args: Any) -> str:
    """
    Render a command and its arguments as a single command-line string.

    Args:
        safe: Quote every word (True) or join them verbatim (False)
        command: Command name or path
        *args: Arguments; nested lists are flattened and None is dropped

    Returns:
        Command line suitable for a remote shell
    """
    words = flatten_args([command, args])
    if safe:
        return " ".join(shell_quote(word) for word in words)
    return " ".join(words)
