"""
Run the same command on many boxes.

    rset = BoxSet("production", user="deploy")
    rset.add_boxes("web1", "web2", existing_box)
    rset.uptime()        # => AggregateResponse of three ScalarResponses

Results always come back in member order, whether the members run one after
another or in parallel. A member that fails to run the command does not stop
the others; its slot holds a ScalarResponse with ``error`` set.
"""

# pylint: disable=broad-exception-caught

import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from .box import ENV_NAME_PATTERN, Box
from .config import get_config
from .keys import KeyRing, default_keyring
from .registry import CommandRegistry, default_registry
from .response import AggregateResponse, Response, ScalarResponse

logger = logging.getLogger(__name__)


class BoxSet:
    """
    An ordered collection of boxes addressed as one.

    Args:
        name: Label used in logs and reprs
        parallel: Run members concurrently (default from config)
        max_workers: Thread limit for parallel runs (default from config)
        registry: Command registry handed to boxes created by the set
        keyring: Key ring handed to boxes created by the set
        **box_options: Options used when building boxes from hostnames
            (user, port, password, safe, debug, error, ...)
    """

    def __init__(
        self,
        name: str = "default",
        parallel: Optional[bool] = None,
        max_workers: Optional[int] = None,
        registry: Optional[CommandRegistry] = None,
        keyring: Optional[KeyRing] = None,
        **box_options: Any,
    ):
        self.name = name
        self.parallel = bool(
            get_config("boxset.parallel", False) if parallel is None else parallel
        )
        self.max_workers = int(max_workers or get_config("boxset.max_workers", 8) or 8)
        self.registry = registry if registry is not None else default_registry
        self.keyring = keyring if keyring is not None else default_keyring
        self.box_options = box_options
        self.boxes: List[Box] = []
        self._owned: List[Box] = []
        self._environment: "OrderedDict[str, str]" = OrderedDict()
        self._shared_keys = KeyRing()
        self.current_working_directory: Optional[str] = None

    # -------------------------
    # membership
    # -------------------------
    def add_boxes(self, *boxes: Any) -> "BoxSet":
        """Add hostnames (new boxes owned by the set) or existing Box objects."""
        for item in boxes:
            if isinstance(item, (list, tuple)):
                self.add_boxes(*item)
            elif isinstance(item, Box):
                self._join(item)
            elif item:
                box = Box(
                    str(item),
                    registry=self.registry,
                    keyring=self.keyring,
                    **self.box_options,
                )
                self._join(box)
                self._owned.append(box)
            logger.debug(f"BoxSet {self.name}: {len(self.boxes)} members")
        return self

    add_box = add_boxes

    def _join(self, box: Box) -> None:
        self.boxes.append(box)
        if self.current_working_directory is not None:
            box.cd(self.current_working_directory)
        self._share_with(box)

    def _share_with(self, box: Box) -> None:
        """Push the set's keys and environment to one member."""
        if box.keyring is not self.keyring and len(self._shared_keys):
            box.add_keys(*self._shared_keys.to_list())
        for env_name, value in self._environment.items():
            box.add_env(env_name, value)

    def __len__(self) -> int:
        return len(self.boxes)

    def __iter__(self):
        return iter(self.boxes)

    # -------------------------
    # shared state
    # -------------------------
    def add_keys(self, *paths: Any) -> "BoxSet":
        """Add keys to the set's key ring and to every member's ring."""
        self.keyring.add(*paths)
        self._shared_keys.add(*paths)
        for box in self.boxes:
            if box.keyring is not self.keyring:
                box.add_keys(*paths)
        return self

    add_key = add_keys

    def add_env(self, name: str, value: Any) -> "BoxSet":
        """Add an environment variable applied to every member before dispatch."""
        if not isinstance(name, str) or not ENV_NAME_PATTERN.match(name):
            raise ValueError(f"Invalid environment variable name: {name!r}")
        self._environment[name] = str(value)
        return self

    add_environment_variable = add_env

    def cd(self, path: Optional[str] = None) -> "BoxSet":
        """Set the working directory on every member, including later ones."""
        self.current_working_directory = path
        for box in self.boxes:
            box.cd(path)
        return self

    def __getitem__(self, path: Optional[str]) -> "BoxSet":
        return self.cd(path)

    # -------------------------
    # connection lifecycle
    # -------------------------
    def connect(self) -> "BoxSet":
        for box in self.boxes:
            box.connect()
        return self

    def disconnect(self) -> None:
        """Disconnect every member. Never raises."""
        for box in self.boxes:
            box.disconnect()

    def close(self) -> None:
        """Disconnect only the boxes this set created."""
        for box in self._owned:
            box.disconnect()

    def __enter__(self) -> "BoxSet":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------
    # dispatch
    # -------------------------
    def execute(self, name: str, *args: Any, timeout: Optional[float] = None) -> AggregateResponse:
        """
        Run a command on every member.

        Returns:
            AggregateResponse with one entry per member, in member order
        """

        def run(box: Box) -> Response:
            return box.execute(name, *args, timeout=timeout)

        return self._fan_out(run)

    def cmd(self, *args: Any, timeout: Optional[float] = None) -> AggregateResponse:
        def run(box: Box) -> Response:
            return box.cmd(*args, timeout=timeout)

        return self._fan_out(run)

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        def dispatch(*args: Any, timeout: Optional[float] = None) -> AggregateResponse:
            return self.execute(name, *args, timeout=timeout)

        dispatch.__name__ = name
        return dispatch

    def _fan_out(self, run: Callable[[Box], Response]) -> AggregateResponse:
        members = list(self.boxes)
        for box in members:
            self._share_with(box)

        if self.parallel and len(members) > 1:
            workers = min(self.max_workers, len(members))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [pool.submit(self._run_member, run, box) for box in members]
                results = [future.result() for future in futures]
        else:
            results = [self._run_member(run, box) for box in members]

        return AggregateResponse(results, origin=self)

    def _run_member(self, run: Callable[[Box], Response], box: Box) -> Response:
        try:
            return run(box)
        except Exception as e:
            logger.warning(f"BoxSet {self.name}: {box.host} failed: {e}")
            return ScalarResponse.from_error(e, origin=box)

    def __repr__(self) -> str:
        hosts = ", ".join(box.host for box in self.boxes)
        return f"BoxSet({self.name!r}, [{hosts}])"
