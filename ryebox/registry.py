"""
Command registry.

Boxes do not hard-code the commands they can run. Each box consults a
CommandRegistry mapping a command name to a CommandRule describing how to
build the real command line: a plain pass-through to an executable, or a
custom ``build`` callable that rewrites the call arguments.

Register commands before dispatching; the registry is shared mutable state
and is not meant to be modified while commands are running.

Examples:
    >>> registry = CommandRegistry()
    >>> registry.register("list", executable="ls")
    >>> @registry.command("disk_usage")
    ... def disk_usage(*args):
    ...     return ["du", "-sh", *args]
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .errors import CommandNotFoundError
from .escape import flatten_args

logger = logging.getLogger(__name__)

# Commands every registry created with defaults=True knows about.
DEFAULT_COMMANDS = [
    "awk",
    "bash",
    "cat",
    "chmod",
    "chown",
    "cp",
    "date",
    "df",
    "du",
    "echo",
    "env",
    "find",
    "grep",
    "head",
    "hostname",
    "id",
    "ln",
    "ls",
    "mkdir",
    "mv",
    "printenv",
    "ps",
    "pwd",
    "rm",
    "rmdir",
    "sed",
    "sh",
    "sleep",
    "sort",
    "tail",
    "tar",
    "test",
    "touch",
    "uname",
    "uptime",
    "wc",
    "whoami",
]


@dataclass(frozen=True)
class CommandRule:
    """How a registered command name turns into an executable and arguments."""

    name: str
    executable: str
    build: Optional[Callable[..., Sequence[Any]]] = None

    def render(self, args: Sequence[Any]) -> Tuple[str, List[str]]:
        """
        Build the executable and argument list for a call.

        A custom ``build`` callable receives the call arguments and returns
        the full argv, executable first.
        """
        if self.build is None:
            return self.executable, flatten_args(args)

        argv = flatten_args(self.build(*args))
        if not argv:
            raise ValueError(f"Command rule '{self.name}' produced an empty command")
        return argv[0], argv[1:]


class CommandRegistry:
    """Open mapping from command names to CommandRules."""

    def __init__(self, defaults: bool = False, fallback_to_path: bool = False):
        self._rules: Dict[str, CommandRule] = {}
        self._lock = threading.Lock()
        self.fallback_to_path = fallback_to_path
        if defaults:
            register_default_commands(self)

    def register(
        self,
        name: str,
        executable: Optional[str] = None,
        build: Optional[Callable[..., Sequence[Any]]] = None,
    ) -> CommandRule:
        """Register (or replace) a command rule."""
        if not name or not isinstance(name, str):
            raise ValueError(f"Invalid command name: {name!r}")
        rule = CommandRule(name=name, executable=executable or name, build=build)
        with self._lock:
            self._rules[name] = rule
        logger.debug(f"Registered command: {name} -> {rule.executable}")
        return rule

    def command(self, name: Optional[str] = None):
        """Decorator registering a function that builds the command argv."""

        def decorator(func: Callable[..., Sequence[Any]]):
            self.register(name or func.__name__, build=func)
            return func

        return decorator

    def unregister(self, name: str) -> None:
        with self._lock:
            self._rules.pop(name, None)

    def get(self, name: str) -> Optional[CommandRule]:
        return self._rules.get(name)

    def resolve(self, name: str) -> CommandRule:
        """
        Look up the rule for a command name.

        When ``fallback_to_path`` is enabled, names found on the local search
        path are accepted as pass-through commands.

        Raises:
            CommandNotFoundError: If the name cannot be resolved
        """
        rule = self.get(name)
        if rule is not None:
            return rule

        if self.fallback_to_path:
            from .resolver import which

            if which(name):
                return CommandRule(name=name, executable=name)

        raise CommandNotFoundError(name)

    def names(self) -> List[str]:
        return sorted(self._rules)

    def copy(self) -> "CommandRegistry":
        clone = CommandRegistry(fallback_to_path=self.fallback_to_path)
        with self._lock:
            clone._rules = dict(self._rules)
        return clone

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"CommandRegistry({len(self)} commands)"


def register_default_commands(registry: CommandRegistry) -> CommandRegistry:
    """Seed a registry with the standard pass-through commands."""
    for name in DEFAULT_COMMANDS:
        registry.register(name)
    return registry


def _create_default_registry() -> CommandRegistry:
    from .config import get_config

    return CommandRegistry(
        defaults=True,
        fallback_to_path=bool(get_config("registry.fallback_to_path", False)),
    )


# Global registry instance
default_registry = _create_default_registry()
