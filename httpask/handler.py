import re
import socket
import locale
import logging
import threading
from typing import Dict, Optional, Tuple

from .client import RelayClient
from .errors import InvalidArgument, RelayConnectionError
from .models import ParsedRequest, RelayOptions, RelayResponse
from .parser import read_request_line
from .sockets import finish_socket

logger = logging.getLogger(__name__)

DIGITS = re.compile(r"[0-9]+")


class ConnectionHandler:
    """Handles a single inbound connection from request line to response."""

    def __init__(self, stop_event: threading.Event,
                 client: Optional[RelayClient] = None, buffer_size: int = 4096):
        """
        Initialize the connection handler.

        Args:
            stop_event: Signal that tells the listener to stop accepting
            client: Relay client used for /ask
            buffer_size: Chunk size used when tearing down inbound sockets
        """
        self._stop_event = stop_event
        self._client = client or RelayClient(buffer_size)
        self._buffer_size = buffer_size

    def handle_client(self, client_socket: socket.socket,
                      client_address: Tuple[str, int]) -> None:
        """
        Handle an individual client connection.

        Exactly one response is written, then the connection is closed.
        Faults are logged here and never leave the handler's thread.

        Args:
            client_socket: Socket object for client connection
            client_address: Tuple of client's IP and port
        """
        logger.debug(f"Session started for {client_address}")
        request = None
        try:
            request = read_request_line(client_socket)
            if request is None:
                response = RelayResponse.create_error(400)
            else:
                response = self._dispatch(request)
            client_socket.sendall(response.to_bytes())
        except Exception as e:
            logger.error(f"Error handling client {client_address}: {e}")
        finally:
            finish_socket(client_socket, self._buffer_size)

        if request is not None and is_stop_request(request):
            logger.info(f"Stop requested by {client_address}")
            self._stop_event.set()
        logger.debug(f"Session terminated for {client_address}")

    def _dispatch(self, request: ParsedRequest) -> RelayResponse:
        """Route a parsed request to its action."""
        if is_ask_request(request):
            return self._ask(request.query_params)
        if is_stop_request(request):
            return RelayResponse(200)
        return RelayResponse.create_error(404)

    def _ask(self, params: Dict[str, str]) -> RelayResponse:
        """Relay the query's payload to its target and wrap the reply."""
        try:
            options = build_options(params)
            reply = self._client.relay_options(options)
        except InvalidArgument as e:
            logger.warning(f"Rejected /ask: {e}")
            return RelayResponse.create_error(400)
        except RelayConnectionError as e:
            logger.warning(f"Relay failed: {e}")
            return RelayResponse.create_error(400)

        return RelayResponse(200, reply)


def is_ask_request(request: ParsedRequest) -> bool:
    return (request.method == "GET"
            and request.target_path == "/ask"
            and request.protocol_scheme.lower() == "http")


def is_stop_request(request: ParsedRequest) -> bool:
    return request.method == "GET" and request.target_path == "/stop"


def build_options(params: Dict[str, str]) -> RelayOptions:
    """
    Validate /ask query parameters and turn them into relay options.

    Args:
        params: Decoded query parameters

    Returns:
        Relay options for the request

    Raises:
        InvalidArgument: If a parameter is missing or malformed
    """
    host = params.get("hostname")
    if not host:
        raise InvalidArgument("Missing hostname")

    port = _digits(params, "port")
    if port is None:
        raise InvalidArgument("Missing port")

    shutdown = params.get("shutdown", "false")
    if shutdown.lower() not in ("true", "false"):
        raise InvalidArgument(f"Invalid shutdown value: {shutdown!r}")

    payload = params.get("string", "").encode(
        locale.getpreferredencoding(False), errors="replace")

    return RelayOptions(
        target_host=host,
        target_port=port,
        half_close_after_write=shutdown.lower() == "true",
        timeout_millis=_digits(params, "timeout"),
        byte_limit=_digits(params, "limit"),
        payload=payload,
    )


def _digits(params: Dict[str, str], key: str) -> Optional[int]:
    """Parse an optional all-digit parameter."""
    value = params.get(key)
    if value is None:
        return None
    if not DIGITS.fullmatch(value):
        raise InvalidArgument(f"Parameter {key} must be all digits, got {value!r}")
    return int(value)
