"""
Results of dispatched commands.

A Response is one of two shapes:

- ScalarResponse: the outcome of one command on one box. It compares equal
  to a plain string holding its trimmed stdout, so ``box.uname() == "Linux"``
  reads naturally.
- AggregateResponse: the ordered responses of every member of a BoxSet. It
  behaves like a read-only list of responses.

Both carry an ``origin`` pointing back at the box or set that produced them.
Non-zero exit statuses are reported here as data, never raised.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union


class Response(ABC):
    """Common base for scalar and aggregate responses."""

    is_aggregate = False

    def __init__(self, origin: Any = None):
        self.origin = origin

    @property
    @abstractmethod
    def ok(self) -> bool:
        """True when the command (or every member command) succeeded."""

    @abstractmethod
    def as_list(self) -> List["ScalarResponse"]:
        """The scalar responses held, flattened."""


class ScalarResponse(Response):
    """
    Output of a single command.

    Attributes:
        stdout: Standard output with surrounding whitespace trimmed
        stderr: Standard error as received
        exit_status: Remote exit status, or None when the command never ran
        origin: The box that produced it
        error: Exception that prevented the command from running, if any
    """

    def __init__(
        self,
        stdout: str = "",
        stderr: str = "",
        exit_status: Optional[int] = 0,
        origin: Any = None,
        error: Optional[BaseException] = None,
    ):
        super().__init__(origin)
        self.stdout = (stdout or "").strip()
        self.stderr = stderr or ""
        self.exit_status = exit_status
        self.error = error

    @classmethod
    def from_error(cls, error: BaseException, origin: Any = None) -> "ScalarResponse":
        """Build a response standing in for a command that failed to run."""
        return cls(stderr=str(error), exit_status=None, origin=origin, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_status == 0

    def lines(self) -> List[str]:
        return self.stdout.splitlines()

    def as_text(self) -> str:
        return self.stdout

    def as_list(self) -> List["ScalarResponse"]:
        return [self]

    def __str__(self) -> str:
        return self.stdout

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return self.stdout == other
        if isinstance(other, ScalarResponse):
            return (self.stdout, self.stderr, self.exit_status) == (
                other.stdout,
                other.stderr,
                other.exit_status,
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.stdout)

    def __repr__(self) -> str:
        if self.error is not None:
            return f"ScalarResponse(error={self.error!r}, origin={self.origin!r})"
        return (
            f"ScalarResponse(stdout={self.stdout!r}, exit_status={self.exit_status}, "
            f"origin={self.origin!r})"
        )


class AggregateResponse(Response, Sequence):
    """Ordered responses from the members of a BoxSet."""

    is_aggregate = True

    def __init__(self, items: Optional[Sequence[Response]] = None, origin: Any = None):
        super().__init__(origin)
        self._items: List[Response] = list(items or [])

    def __getitem__(self, index: Union[int, slice]) -> Any:
        if isinstance(index, slice):
            return AggregateResponse(self._items[index], origin=self.origin)
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Response]:
        return iter(self._items)

    @property
    def ok(self) -> bool:
        return all(item.ok for item in self._items)

    @property
    def stdout(self) -> List[Any]:
        """stdout of each member (nested aggregates give nested lists)."""
        return [item.stdout for item in self._items]

    def failures(self) -> List[Tuple[int, Response]]:
        """Positions and responses of members that did not succeed."""
        return [(i, item) for i, item in enumerate(self._items) if not item.ok]

    def as_list(self) -> List[ScalarResponse]:
        """Flatten nested aggregates into a list of scalar responses."""
        flat: List[ScalarResponse] = []
        for item in self._items:
            flat.extend(item.as_list())
        return flat

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AggregateResponse):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return len(self._items) == len(other) and all(
                mine == theirs for mine, theirs in zip(self._items, other)
            )
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"AggregateResponse({self._items!r}, origin={self.origin!r})"
