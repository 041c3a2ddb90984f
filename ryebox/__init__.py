"""
ryebox runs commands on remote machines as if they were method calls.

    from ryebox import Box, BoxSet

    box = Box("web1", user="deploy")
    box.uname()                      # => Linux
    box["/var/log"].ls("-l")         # $ cd /var/log; ls -l

    rset = BoxSet("web", user="deploy").add_boxes("web1", "web2")
    rset.uptime()                    # one response per box, in order

Commands are looked up in a CommandRegistry, escaped (safe mode by default),
and executed over SSH with paramiko. Responses carry stdout, stderr, the exit
status and the box or set that produced them.
"""

# __init__.py

__version__ = "0.4.0"

from .box import Box
from .boxset import BoxSet
from .channel import ChannelExecutor, ExecResult
from .config import ConfigManager, config_manager, get_config, setup_logging
from .errors import (
    CommandNotFoundError,
    CommandTimeoutError,
    ConnectionError,
    NoHostError,
    NotConnectedError,
    RyeboxError,
)
from .escape import escape, flatten_args, shell_quote
from .keys import KeyRing, default_keyring
from .local import shell
from .registry import (
    CommandRegistry,
    CommandRule,
    default_registry,
    register_default_commands,
)
from .resolver import prepare_command, search_paths, which
from .response import AggregateResponse, Response, ScalarResponse
from .transport import SSHConnection

__all__ = [
    # Sessions
    "Box",
    "BoxSet",
    # Responses
    "Response",
    "ScalarResponse",
    "AggregateResponse",
    # Commands
    "CommandRegistry",
    "CommandRule",
    "default_registry",
    "register_default_commands",
    "escape",
    "shell_quote",
    "flatten_args",
    "which",
    "search_paths",
    "prepare_command",
    "shell",
    # Connections
    "KeyRing",
    "default_keyring",
    "SSHConnection",
    "ChannelExecutor",
    "ExecResult",
    # Configuration
    "ConfigManager",
    "config_manager",
    "get_config",
    "setup_logging",
    # Errors
    "RyeboxError",
    "NoHostError",
    "NotConnectedError",
    "CommandNotFoundError",
    "ConnectionError",
    "CommandTimeoutError",
]
