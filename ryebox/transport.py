"""
SSH connection handling on top of paramiko.

SSHConnection owns one paramiko.SSHClient. It knows how to open itself,
hand out session channels to the channel executor, report whether any of
those channels are still active, and close. Protocol details (handshake,
multiplexing) are left entirely to paramiko.
"""

import logging
import socket
import threading
import time
from typing import Any, Iterable, Optional, Set

import paramiko

from .errors import ConnectionError, NotConnectedError

logger = logging.getLogger(__name__)


class SSHConnection:
    """An open SSH connection to a single host."""

    def __init__(self, client: paramiko.SSHClient, host: str):
        self.client = client
        self.host = host
        self._channels: Set[Any] = set()
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls,
        host: str,
        user: Optional[str] = None,
        port: int = 22,
        key_filenames: Optional[Iterable[str]] = None,
        password: Optional[str] = None,
        strict_host_keys: bool = True,
        **options: Any,
    ) -> "SSHConnection":
        """
        Open a connection to ``host``.

        Args:
            host: Hostname or address
            user: Login user
            port: SSH port
            key_filenames: Private key files offered for authentication
            password: Password (used when no key is accepted)
            strict_host_keys: Reject hosts missing from known_hosts
            **options: Passed through to paramiko.SSHClient.connect

        Raises:
            ConnectionError: On authentication or transport failure
        """
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        if strict_host_keys:
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        keys = list(key_filenames or [])
        connect_args = dict(options)
        connect_args.setdefault("username", user)
        connect_args.setdefault("port", int(port or 22))
        if keys:
            connect_args.setdefault("key_filename", keys)
        if password is not None:
            connect_args.setdefault("password", password)

        logger.debug(f"Connecting to {host}:{connect_args['port']} as {user}")
        try:
            client.connect(hostname=host, **connect_args)
        except paramiko.AuthenticationException as e:
            client.close()
            raise ConnectionError(f"Authentication failed for {user}@{host}: {e}", host)
        except (paramiko.SSHException, socket.error) as e:
            client.close()
            raise ConnectionError(f"Cannot connect to {host}: {e}", host)

        return cls(client, host)

    @property
    def closed(self) -> bool:
        transport = self.client.get_transport()
        return transport is None or not transport.is_active()

    @property
    def busy(self) -> bool:
        """True while any channel opened through this connection is active."""
        with self._lock:
            self._channels = {ch for ch in self._channels if not ch.closed}
            return bool(self._channels)

    def open_channel(self):
        """
        Open a new session channel.

        Raises:
            NotConnectedError: If the transport is gone or drops while opening
        """
        transport = self.client.get_transport()
        if transport is None or not transport.is_active():
            raise NotConnectedError(self.host)
        try:
            channel = transport.open_session()
        except (paramiko.SSHException, EOFError, socket.error) as e:
            logger.warning(f"Could not open channel to {self.host}: {e}")
            raise NotConnectedError(self.host) from e
        with self._lock:
            self._channels.add(channel)
        return channel

    def release(self, channel) -> None:
        """Close a channel and forget about it."""
        try:
            channel.close()
        finally:
            with self._lock:
                self._channels.discard(channel)

    def wait_idle(self, interval: float = 0.1, limit: Optional[float] = None) -> bool:
        """Wait until no channels are active. Returns False if ``limit`` expired."""
        deadline = time.monotonic() + limit if limit is not None else None
        while self.busy and not self.closed:
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(interval)
        return True

    def close(self) -> None:
        self.client.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"SSHConnection(host={self.host!r}, {state})"
