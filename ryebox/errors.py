"""
Exceptions raised by ryebox.

Everything derives from RyeboxError so callers can catch the whole family
in one place. A non-zero remote exit status is never turned into an
exception; see ryebox.response for how failures are reported as data.
"""

from typing import List, Optional


class RyeboxError(Exception):
    """Base exception for ryebox errors."""

    pass


class NoHostError(RyeboxError):
    """Raised when a box has no host to connect to."""

    def __init__(self, message: str = "No host specified"):
        super().__init__(message)


class NotConnectedError(RyeboxError):
    """Raised when a command is dispatched but no connection is available."""

    def __init__(self, host: Optional[str] = None):
        super().__init__(f"Not connected to {host}" if host else "Not connected")
        self.host = host


class CommandNotFoundError(RyeboxError):
    """Raised when a command name is neither registered nor resolvable."""

    def __init__(self, command: Optional[str]):
        super().__init__(f"Command not found: {command or 'nil'}")
        self.command = command


class ConnectionError(RyeboxError):  # pylint: disable=redefined-builtin
    """Raised when authentication or transport setup fails."""

    def __init__(self, message: str, host: Optional[str] = None):
        super().__init__(message)
        self.host = host
        self.suggestions = self._get_suggestions()

    def _get_suggestions(self) -> List[str]:
        """Get troubleshooting suggestions for SSH failures."""
        target = self.host or "hostname"
        return [
            "Check SSH configuration in ~/.ssh/config",
            "Verify network connectivity and VPN if required",
            f"Test connection manually: ssh {target} echo 'test'",
            "Check SSH key permissions: chmod 600 ~/.ssh/id_*",
        ]


class CommandTimeoutError(RyeboxError):
    """Raised when a remote command does not finish before its deadline."""

    def __init__(self, command: str, timeout: float):
        super().__init__(f"Command timed out after {timeout}s: {command}")
        self.command = command
        self.timeout = timeout
