"""
Lock-step session with ds-server.

Owns the single TCP connection, performs the HELO/AUTH handshake and
enforces strict request/response turn-taking: every send must be followed
by exactly one receive before the next send.
"""

from __future__ import annotations

import logging
import socket
from typing import Optional

from ds_client.errors import HandshakeError, LockstepError, TransportError
from ds_client.protocol import Command, ServerCommand, decode, encode

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 50000


class Session:
    """
    Blocking line-oriented connection to ds-server.

    Attributes:
        handshake_done: True once HELO and AUTH were acknowledged
        last_received: Most recent line read from the server
        current_time: Latest simulation time seen in an event (-1 before any)
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: Optional[float] = None,
        sock: Optional[socket.socket] = None,
    ):
        """
        Initialize a session.

        Args:
            host: ds-server host name
            port: ds-server TCP port
            timeout: Read timeout in seconds (None blocks forever)
            sock: Already-connected socket to use instead of connecting
        """
        self.host = host
        self.port = port
        self.timeout = timeout

        self._sock = sock
        self._reader = sock.makefile("rb") if sock is not None else None

        self.handshake_done = False
        self.awaiting_reply = False
        self.last_received = ""
        self.current_time = -1

    def __enter__(self) -> Session:
        if self._sock is None:
            self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        """Open the TCP connection."""
        try:
            self._sock = socket.create_connection(
                (self.host, self.port), timeout=self.timeout
            )
        except OSError as e:
            raise TransportError(
                f"Cannot connect to {self.host}:{self.port}: {e}"
            ) from e
        self._reader = self._sock.makefile("rb")
        logger.info("Connected to %s:%d", self.host, self.port)

    def handshake(self, user: str) -> None:
        """
        Greet the server and authenticate as `user`.

        Raises:
            HandshakeError: If either step is not acknowledged with OK
            TransportError: If the connection drops
        """
        for command, args in ((Command.HELO, ()), (Command.AUTH, (user,))):
            reply = self.request(command, *args)
            message = decode(reply)
            if getattr(message, "command", None) is not ServerCommand.OK:
                raise HandshakeError(
                    f"{command.value} was not acknowledged", line=reply
                )
        self.handshake_done = True
        logger.info("Authenticated as %s", user)

    def send(self, command: Command, *args: object) -> None:
        """
        Write one command line and flush it immediately.

        Raises:
            LockstepError: If the previous send has not been answered yet
            TransportError: If the write fails
        """
        if self.awaiting_reply:
            raise LockstepError(
                f"Cannot send {command.value} before receiving the previous reply"
            )
        line = encode(command, *args)
        try:
            self._require_socket().sendall(line.encode("ascii"))
        except OSError as e:
            raise TransportError(f"Send failed: {e}") from e
        self.awaiting_reply = True
        logger.debug("SENT %s", line.rstrip("\n"))

    def receive(self) -> str:
        """
        Read exactly one newline-terminated line.

        Returns:
            The line without its terminator

        Raises:
            LockstepError: If nothing was sent since the last receive
            TransportError: If the connection closes mid-line or times out
        """
        return self.receive_lines(1)[0]

    def receive_lines(self, count: int) -> list[str]:
        """
        Read a reply made of `count` lines as a single turn.

        The outstanding request stays open until the last line has arrived,
        so a GETS data block is answered by one OK.

        Raises:
            LockstepError: If nothing was sent since the last receive
            TransportError: If the connection closes mid-line or times out
        """
        if not self.awaiting_reply:
            raise LockstepError("Cannot receive without an outstanding request")
        self._require_socket()
        lines = [self._read_line() for _ in range(count)]
        self.awaiting_reply = False
        return lines

    def request(self, command: Command, *args: object) -> str:
        """Send a command and return the server's reply line."""
        self.send(command, *args)
        return self.receive()

    def request_lines(self, count: int, command: Command, *args: object) -> list[str]:
        """Send a command and return its `count`-line reply."""
        self.send(command, *args)
        return self.receive_lines(count)

    def advance_clock(self, time: int) -> None:
        """Record the simulation time of an event; never moves backwards."""
        if time > self.current_time:
            self.current_time = time

    def close(self) -> int:
        """
        Release the connection.

        Returns:
            Exit status for the process (0 on a clean close)
        """
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.info("Connection closed")
        return 0

    def _read_line(self) -> str:
        try:
            data = self._reader.readline()
        except socket.timeout as e:
            raise TransportError("Timed out waiting for ds-server") from e
        except OSError as e:
            raise TransportError(f"Receive failed: {e}") from e

        if not data.endswith(b"\n"):
            raise TransportError(
                "Connection closed before a full line arrived",
                {"partial": data.decode("ascii", errors="replace")},
            )

        self.last_received = data.decode("ascii", errors="replace").rstrip("\r\n")
        logger.debug("RCVD %s", self.last_received)
        return self.last_received

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise TransportError("Session is not connected")
        return self._sock

    def __str__(self) -> str:
        state = "connected" if self.connected else "closed"
        return (
            f"Session({self.host}:{self.port}, {state}, "
            f"time={self.current_time})"
        )
