"""
Private key bookkeeping.

A KeyRing is an ordered, de-duplicated list of private key file paths. Every
box connecting through the same ring offers all of its keys, so adding a key
affects every future connection made with that ring. ``default_keyring`` is
the process-wide ring used when no other is supplied.
"""

import logging
import os
import threading
from typing import Any, Iterator, List

from .escape import flatten_args

logger = logging.getLogger(__name__)


class KeyRing:
    """Ordered collection of private key paths shared between boxes."""

    def __init__(self, *paths: Any):
        self._keys: List[str] = []
        self._lock = threading.Lock()
        self.add(*paths)

    def add(self, *paths: Any) -> "KeyRing":
        """Add one or more key paths (nested lists allowed, None ignored)."""
        with self._lock:
            for path in flatten_args(paths):
                expanded = os.path.expanduser(path)
                if expanded in self._keys:
                    continue
                self._keys.append(expanded)
                logger.debug(f"Added key: {expanded}")
        return self

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()

    def to_list(self) -> List[str]:
        with self._lock:
            return list(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_list())

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and os.path.expanduser(path) in self._keys

    def __repr__(self) -> str:
        return f"KeyRing({self._keys!r})"


default_keyring = KeyRing()
