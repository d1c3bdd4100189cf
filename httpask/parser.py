"""
Request line parsing for the relay gateway.

Only the first line of a request is read, one byte at a time, so nothing
past the line terminator is consumed from the connection.
"""

import re
import socket
import logging
from typing import Dict, Optional
from urllib.parse import unquote

from .errors import RequestParseError
from .models import ParsedRequest

logger = logging.getLogger(__name__)

LINE_TERMINATOR = b"\r"
BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def read_request_line(client_socket: socket.socket) -> Optional[ParsedRequest]:
    """
    Read and parse the request line from a connection.

    Bytes are read until a carriage return or end-of-stream. A line cut
    short by end-of-stream is still parsed.

    Args:
        client_socket: Inbound connection

    Returns:
        The parsed request, or None if the line is malformed or unreadable
    """
    line = bytearray()
    try:
        while True:
            byte = client_socket.recv(1)
            if not byte or byte == LINE_TERMINATOR:
                break
            line.extend(byte)
    except OSError as e:
        logger.warning(f"Error reading request line: {e}")
        return None

    try:
        return parse_request_line(bytes(line))
    except RequestParseError as e:
        logger.warning(f"Malformed request line {bytes(line)!r}: {e}")
        return None


def parse_request_line(line: bytes) -> ParsedRequest:
    """
    Parse a raw request line such as ``GET /ask?port=80 HTTP/1.1``.

    The whole line is percent-decoded as UTF-8 before it is split on
    whitespace into method, target and protocol. Only the protocol name
    is kept; the version after ``/`` is dropped.

    Raises:
        RequestParseError: If the line does not decode or has the wrong shape
    """
    try:
        decoded = percent_decode(line.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise RequestParseError(f"Undecodable request line: {e}") from e

    components = decoded.split()
    if len(components) != 3:
        raise RequestParseError(f"Expected 3 components, got {len(components)}")

    method, target, protocol = components
    path, _, query = target.partition("?")

    return ParsedRequest(
        method=method,
        target_path=path,
        protocol_scheme=protocol.split("/", 1)[0],
        query_params=parse_query(query),
    )


def parse_query(query: str) -> Dict[str, str]:
    """
    Split a query string into its key/value pairs.

    Keys and values are percent-decoded; a repeated key keeps its last
    value. An empty query yields an empty mapping.

    Raises:
        RequestParseError: If a pair has no ``=``
    """
    params: Dict[str, str] = {}
    if not query:
        return params

    for pair in query.split("&"):
        if "=" not in pair:
            raise RequestParseError(f"Query pair without '=': {pair!r}")
        key, value = pair.split("=", 1)
        try:
            params[percent_decode(key)] = percent_decode(value)
        except UnicodeDecodeError as e:
            raise RequestParseError(f"Undecodable query pair: {e}") from e

    return params


def percent_decode(text: str) -> str:
    """
    Decode %XX escapes as UTF-8.

    Raises:
        RequestParseError: If a ``%`` is not followed by two hex digits
        UnicodeDecodeError: If the escaped bytes are not valid UTF-8
    """
    if BAD_ESCAPE.search(text):
        raise RequestParseError(f"Malformed percent escape in {text!r}")
    return unquote(text, errors="strict")
