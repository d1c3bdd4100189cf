import socket
import select
import time
import logging
from typing import Optional

from .errors import InvalidArgument, RelayConnectionError
from .models import RelayOptions
from .sockets import close_socket

logger = logging.getLogger(__name__)

MAX_PORT = 65535


class RelayClient:
    """
    Relays a payload to a TCP peer and returns the peer's reply.

    Every call opens a fresh outbound connection, writes the payload,
    waits for a reply under one of three wait policies, reads whatever
    the peer has delivered so far and closes the connection.
    """
    def __init__(self, buffer_size: int = 4096):
        """
        Initialize the relay client.

        Args:
            buffer_size: Chunk size for reads from the outbound connection
        """
        self._buffer_size = buffer_size

    def relay_options(self, options: RelayOptions) -> bytes:
        """Relay using a prepared set of options."""
        return self.relay(
            options.target_host,
            options.target_port,
            options.payload,
            half_close=options.half_close_after_write,
            timeout_millis=options.timeout_millis,
            byte_limit=options.byte_limit,
        )

    def relay(self, host: str, port: int, payload: bytes = b"",
              half_close: bool = False, timeout_millis: Optional[int] = None,
              byte_limit: Optional[int] = None) -> bytes:
        """
        Send a payload to host:port and return the reply.

        The wait policy is chosen by which knobs are given: a timeout wins,
        then a byte limit, otherwise the wait is unbounded.

        - Time-bounded: wait until len(payload) bytes (at least 1 for an
          empty payload) have arrived or the deadline passes.
        - Limit-bounded: wait while fewer than len(payload) bytes have
          arrived and no more than byte_limit have. A peer that bursts past
          the limit at once ends the wait on the first check.
        - Unbounded: wait until len(payload) bytes (at least 1) have
          arrived. Blocks for as long as the peer stays silent.

        Any wait also ends when the peer closes its side, since nothing
        more can arrive. Only a peer that stays open and silent keeps an
        unbounded wait blocked forever. The reply is what was available
        once the wait ended, truncated to byte_limit when one is given.
        Missing data is not an error: a silent peer yields an empty reply.

        Args:
            host: Target host name or address
            port: Target port
            payload: Bytes written to the peer, possibly empty
            half_close: Shut down the write side right after the payload
            timeout_millis: Deadline for the wait, in milliseconds
            byte_limit: Maximum number of reply bytes returned

        Returns:
            The reply bytes

        Raises:
            InvalidArgument: If an option is out of range
            RelayConnectionError: If connecting, writing or reading fails
        """
        self._validate(host, port, timeout_millis, byte_limit)

        try:
            connection = socket.create_connection((host, port))
        except OSError as e:
            raise RelayConnectionError(f"Cannot connect to {host}:{port}: {e}") from e

        logger.debug(f"Connected to {host}:{port}")
        received = bytearray()
        try:
            connection.sendall(payload)
            if half_close:
                connection.shutdown(socket.SHUT_WR)

            connection.setblocking(False)
            self._wait(connection, received, len(payload), timeout_millis, byte_limit)
            # Snapshot whatever else is already queued
            self._fill(connection, received, byte_limit)
        except OSError as e:
            raise RelayConnectionError(f"Relay to {host}:{port} failed: {e}") from e
        finally:
            close_socket(connection)

        reply = bytes(received if byte_limit is None else received[:byte_limit])
        logger.debug(f"Relayed {len(payload)} bytes to {host}:{port}, got {len(reply)} back")
        return reply

    @staticmethod
    def _validate(host: str, port: int, timeout_millis: Optional[int],
                  byte_limit: Optional[int]) -> None:
        if not host:
            raise InvalidArgument("Host cannot be empty")
        if not 0 < port <= MAX_PORT:
            raise InvalidArgument(f"Port out of range: {port}")
        if timeout_millis is not None and timeout_millis < 0:
            raise InvalidArgument("Timeout cannot be below zero")
        if byte_limit is not None and byte_limit < 0:
            raise InvalidArgument("Limit cannot be below zero")

    def _wait(self, connection: socket.socket, received: bytearray, expected: int,
              timeout_millis: Optional[int], byte_limit: Optional[int]) -> None:
        """
        Block until the selected wait policy is satisfied.

        Only the limit-bounded wait stops reading past byte_limit; the
        time-bounded wait counts every byte towards len(payload).
        """
        if timeout_millis is not None:
            wanted = expected or 1
            deadline = time.monotonic() + timeout_millis / 1000
            while len(received) < wanted:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                if not self._poll(connection, received, remaining, None):
                    break

        elif byte_limit is not None:
            while len(received) < expected and len(received) <= byte_limit:
                if not self._poll(connection, received, None, byte_limit):
                    break

        else:
            wanted = expected or 1
            while len(received) < wanted:
                if not self._poll(connection, received, None, None):
                    break

    def _poll(self, connection: socket.socket, received: bytearray,
              timeout: Optional[float], cap: Optional[int]) -> bool:
        """
        Wait for the connection to become readable, then take what is queued.

        Returns:
            False once the peer has closed its side, True otherwise
        """
        ready = select.select([connection], [], [], timeout)
        if not ready[0]:  # Timeout
            return True
        return self._fill(connection, received, cap)

    def _fill(self, connection: socket.socket, received: bytearray,
              cap: Optional[int]) -> bool:
        """Move bytes already queued on the non-blocking connection into received."""
        while cap is None or len(received) <= cap:
            try:
                chunk = connection.recv(self._buffer_size)
            except BlockingIOError:
                return True
            if not chunk:
                return False
            received.extend(chunk)
        return True
