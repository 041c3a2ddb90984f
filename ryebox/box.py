"""
A Box represents one machine. All remote commands are made through it.

    box = Box("filibuster")
    box.hostname()            # => filibuster
    box.uname()               # => FreeBSD
    box.uptime()              # => 20:53  up 1 day,  1:52, 4 users

Commands are looked up in a CommandRegistry, escaped, and run over SSH on a
fresh channel each time. Because no shell survives between commands, the
working directory and environment variables are kept locally and sent with
every command:

    box.pwd()                 # => /home/rye       ($ pwd)
    box["/usr/bin"].pwd()     # => /usr/bin        ($ cd /usr/bin; pwd)
    box.pwd()                 # => /usr/bin        ($ cd /usr/bin; pwd)

A box opens its connection lazily on the first command. Use it as a context
manager to close the connection deterministically; otherwise it is closed
when the box is garbage collected or the interpreter exits.
"""

# pylint: disable=broad-exception-caught

import logging
import re
import shlex
import weakref
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console

from .channel import ChannelExecutor
from .config import config_manager
from .errors import NoHostError, NotConnectedError
from .escape import escape, shell_quote
from .keys import KeyRing, default_keyring
from .registry import CommandRegistry, default_registry
from .response import ScalarResponse
from .transport import SSHConnection

logger = logging.getLogger(__name__)

ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Upper bound on how long disconnect() waits for active channels.
DISCONNECT_WAIT_LIMIT = 30.0

_UNSET = object()


def _emit(sink: Any, message: str) -> None:
    """Write a message to a debug/error sink (rich Console or file-like)."""
    if sink is None:
        return
    try:
        if isinstance(sink, Console):
            sink.print(message, markup=False, highlight=False)
        else:
            sink.write(f"{message}\n")
    except Exception:
        logger.debug("Failed to write to output sink", exc_info=True)


class _ConnectionHolder:
    """Holds a box's connection so it can be closed without the box itself."""

    def __init__(self, host: str):
        self.host = host
        self.connection = None

    @property
    def connected(self) -> bool:
        return self.connection is not None and not self.connection.closed

    def release(self, report: Optional[Callable[[str], None]] = None) -> bool:
        """Wait for pending channels and close. Never raises."""
        connection, self.connection = self.connection, None
        if connection is None:
            return False
        try:
            if connection.closed:
                return False
            if not connection.wait_idle(limit=DISCONNECT_WAIT_LIMIT):
                logger.warning(f"Closing busy connection to {self.host}")
            connection.close()
            return True
        except Exception as e:
            logger.warning(f"Error closing connection to {self.host}: {e}")
            if report is not None:
                report(f"Error closing connection to {self.host}: {e}")
            return False


class Box:
    """
    One addressable host with its own connection, directory and environment.

    Args:
        host: Hostname to connect to (default: localhost)
        user: Login user (default: configured user, else the local user)
        port: SSH port (default: 22)
        keys: One or more private key paths, added to the key ring
        password: Password, used when no key is accepted
        safe: Escape all arguments (default: True). Also enables strict
            host key checking. Cannot be changed after creation.
        debug: Sink for debugging output (rich Console or file-like)
        error: Sink for error output (default: a stderr Console)
        registry: Command registry (default: the shared registry)
        keyring: Key ring (default: the shared key ring)
        executor: Channel executor used to run commands
        transport_factory: Callable opening a connection, same signature
            as SSHConnection.open
        **transport_options: Any other paramiko.SSHClient.connect argument
    """

    def __init__(
        self,
        host: Optional[str] = "localhost",
        user: Optional[str] = None,
        port: Optional[int] = None,
        keys: Any = None,
        password: Optional[str] = None,
        safe: Optional[bool] = None,
        debug: Any = None,
        error: Any = _UNSET,
        registry: Optional[CommandRegistry] = None,
        keyring: Optional[KeyRing] = None,
        executor: Optional[ChannelExecutor] = None,
        transport_factory: Optional[Callable[..., Any]] = None,
        **transport_options: Any,
    ):
        if not host:
            raise NoHostError()

        defaults = config_manager.get_defaults()

        self.host = host
        self.user = user or defaults.get("user")
        self.port = int(port or defaults.get("port") or 22)
        self.password = password
        self._safe = bool(defaults.get("safe", True) if safe is None else safe)
        self.debug_sink = debug
        self.error_sink = Console(stderr=True) if error is _UNSET else error

        if (
            defaults.get("connect_timeout") is not None
            and "timeout" not in transport_options
        ):
            transport_options["timeout"] = defaults["connect_timeout"]
        self.transport_options: Dict[str, Any] = transport_options

        self.registry = registry if registry is not None else default_registry
        self.keyring = keyring if keyring is not None else default_keyring
        self.executor = executor or ChannelExecutor()
        self.transport_factory = transport_factory or SSHConnection.open

        self.current_working_directory: Optional[str] = None
        self._environment: "OrderedDict[str, str]" = OrderedDict()

        self.keyring.add(defaults.get("keys") or [])
        self.add_keys(keys)

        self._holder = _ConnectionHolder(host)
        self._finalizer = weakref.finalize(self, self._holder.release)

    # -------------------------
    # state
    # -------------------------
    @property
    def safe(self) -> bool:
        return self._safe

    @property
    def connection(self):
        return self._holder.connection

    @property
    def connected(self) -> bool:
        return self._holder.connected

    @property
    def keys(self) -> List[str]:
        return self.keyring.to_list()

    @property
    def environment(self) -> Dict[str, str]:
        return dict(self._environment)

    def commands(self) -> List[str]:
        """Names of the commands this box can run."""
        return self.registry.names()

    can = commands

    # -------------------------
    # connection lifecycle
    # -------------------------
    def connect(self) -> "Box":
        """
        Open an SSH connection to the host, reconnecting if already open.

        Raises:
            NoHostError: If no host is set
            ConnectionError: On authentication or transport failure
        """
        if not self.host:
            raise NoHostError()
        if self._holder.connection is not None:
            self.disconnect()

        self._debug(f"Opening connection to {self.host}")
        logger.info(f"Opening connection to {self.user}@{self.host}:{self.port}")
        self._holder.connection = self.transport_factory(
            self.host,
            user=self.user,
            port=self.port,
            key_filenames=self.keyring.to_list(),
            password=self.password,
            strict_host_keys=self.safe,
            **self.transport_options,
        )
        return self

    def disconnect(self) -> None:
        """Close the connection once pending channels finish. Never raises."""
        if not self._holder.connected:
            self._holder.connection = None
            return
        self._debug(f"Closing connection to {self.host}")
        self._holder.release(report=self._error)

    def __enter__(self) -> "Box":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # -------------------------
    # session state
    # -------------------------
    def cd(self, path: Optional[str] = None) -> "Box":
        """
        Set the working directory sent with every command (None clears it).

        The directory is kept locally; nothing is changed on the remote host
        until the next command runs.
        """
        self.current_working_directory = path
        return self

    def __getitem__(self, path: Optional[str]) -> "Box":
        return self.cd(path)

    def add_env(self, name: str, value: Any) -> "Box":
        """Add an environment variable exported before every command."""
        if not isinstance(name, str) or not ENV_NAME_PATTERN.match(name):
            raise ValueError(f"Invalid environment variable name: {name!r}")
        self._debug(f"Added env: {name}={value}")
        self._environment[name] = str(value)
        return self

    add_environment_variable = add_env

    def add_keys(self, *paths: Any) -> "Box":
        """Add private keys used by every future connection sharing the key ring."""
        self.keyring.add(*paths)
        return self

    add_key = add_keys

    # -------------------------
    # dispatch
    # -------------------------
    def build_command(self, name: str, *args: Any) -> str:
        """
        Build the full command line for a registered command.

        Raises:
            CommandNotFoundError: If the command is not registered
        """
        rule = self.registry.resolve(name)
        executable, argv = rule.render(args)
        command = escape(self.safe, executable, argv)
        command = self._prepend_env(command)
        if self.current_working_directory:
            cwd = escape(self.safe, "cd", self.current_working_directory)
            command = "; ".join([cwd, command])
        return command

    def execute(self, name: str, *args: Any, timeout: Optional[float] = None) -> ScalarResponse:
        """
        Run a registered command on the host.

        Args:
            name: Registered command name
            *args: Command arguments, escaped according to ``safe``
            timeout: Seconds to wait for the command; None waits forever

        Returns:
            ScalarResponse with trimmed stdout, stderr and exit status

        Raises:
            CommandNotFoundError: Before any connection attempt, if unknown
            ConnectionError: If connecting fails
            NotConnectedError: If no connection could be established
            CommandTimeoutError: If the timeout expires
        """
        command = self.build_command(name, *args)

        if not self.connected:
            self.connect()
        if not self.connected:
            raise NotConnectedError(self.host)

        self._debug(f"Executing: {command}")
        logger.debug(f"Executing on {self.host}: {command}")
        result = self.executor.exec(self._holder.connection, command, timeout=timeout)
        return ScalarResponse(
            stdout=result.stdout,
            stderr=result.stderr,
            exit_status=result.exit_status,
            origin=self,
        )

    def cmd(self, *args: Any, timeout: Optional[float] = None) -> ScalarResponse:
        """
        Run a command given as a name plus arguments, or as one string.

            box.cmd("ls", "-l", "/tmp")
            box.cmd("ls -l /tmp")
        """
        if len(args) == 1 and isinstance(args[0], str):
            args = tuple(shlex.split(args[0]))
        if not args:
            raise ValueError("No command given")
        return self.execute(args[0], *args[1:], timeout=timeout)

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        def dispatch(*args: Any, timeout: Optional[float] = None) -> ScalarResponse:
            return self.execute(name, *args, timeout=timeout)

        dispatch.__name__ = name
        return dispatch

    # -------------------------
    # helpers
    # -------------------------
    def _prepend_env(self, command: str) -> str:
        if not self._environment:
            return command
        exports = [f"export {n}={shell_quote(v)}" for n, v in self._environment.items()]
        return "; ".join(exports + [command])

    def _debug(self, message: str) -> None:
        _emit(self.debug_sink, message)

    def _error(self, message: str) -> None:
        _emit(self.error_sink, message)

    def __repr__(self) -> str:
        return f"Box({self.host!r})"

    def __str__(self) -> str:
        return self.host
