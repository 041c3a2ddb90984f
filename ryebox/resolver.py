"""
Local command resolution.

An all-Python version of the unix ``which`` command. The search path is
re-read on every call so changes to ``PATH`` within the process are always
honoured; nothing is cached.
"""

import logging
import os
from typing import Any, List, Optional, Sequence

from .errors import CommandNotFoundError
from .escape import escape

logger = logging.getLogger(__name__)


def search_paths() -> List[str]:
    """Get the local executable search path in precedence order."""
    from .config import get_config

    paths = [p for p in os.environ.get("PATH", "").split(os.pathsep) if p]
    extra = get_config("resolver.extra_paths", []) or []
    paths.extend(str(p) for p in extra if str(p) not in paths)
    return paths


def _list_directory(path: str) -> List[str]:
    try:
        return os.listdir(path)
    except OSError as e:
        logger.debug(f"Skipping unreadable search path {path}: {e}")
        return []


def which(executable: Optional[str], paths: Optional[Sequence[str]] = None) -> Optional[str]:
    """
    Find the absolute path of a local executable.

    Args:
        executable: Executable name (a path is reduced to its basename)
        paths: Directories to search; defaults to search_paths()

    Returns:
        Path built from the first directory whose listing contains the
        name, or None if no directory qualifies
    """
    if not isinstance(executable, str) or not executable:
        return None

    shortname = os.path.basename(executable)
    if paths is None:
        paths = search_paths()

    for path in paths:
        if not os.path.isdir(path):
            continue
        if shortname in _list_directory(path):
            return os.path.join(path, shortname)

    return None


def prepare_command(safe: bool, command: str, *args: Any) -> str:
    """
    Resolve a command locally and escape it with its arguments.

    Raises:
        CommandNotFoundError: If the command is not on the local search path
    """
    resolved = which(command)
    if not resolved:
        raise CommandNotFoundError(command)
    return escape(safe, resolved, *args)
