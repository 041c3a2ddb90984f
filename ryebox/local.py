"""Execute commands on the local machine (via subprocess, not SSH)."""

import logging
import subprocess
from typing import Any, Optional

from .errors import CommandNotFoundError, CommandTimeoutError
from .escape import escape, flatten_args
from .resolver import which
from .response import ScalarResponse

logger = logging.getLogger(__name__)


def shell(command: str, *args: Any, timeout: Optional[float] = None) -> ScalarResponse:
    """
    Run a local executable and capture its output.

    Each argument is passed as a literal value; no shell is involved, so
    globs and variables are not expanded.

    Args:
        command: Executable name, resolved on the local search path
        *args: Arguments (nested lists are flattened)
        timeout: Seconds to wait before giving up

    Returns:
        ScalarResponse with no origin

    Raises:
        CommandNotFoundError: If the executable is not found
        CommandTimeoutError: If the timeout expires
    """
    path = which(command)
    if not path:
        raise CommandNotFoundError(command)

    argv = [path] + flatten_args(args)
    logger.debug(f"Running local command: {escape(True, path, argv[1:])}")
    try:
        result = subprocess.run(argv, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise CommandTimeoutError(escape(True, path, argv[1:]), timeout)

    return ScalarResponse(
        stdout=result.stdout,
        stderr=result.stderr,
        exit_status=result.returncode,
    )
