from typing import Dict, Optional
from dataclasses import dataclass, field

STATUS_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass(frozen=True)
class RelayOptions:
    """Options for a single relay call, built from the /ask query."""
    target_host: str
    target_port: int
    half_close_after_write: bool = False
    timeout_millis: Optional[int] = None
    byte_limit: Optional[int] = None
    payload: bytes = b""


@dataclass(frozen=True)
class ParsedRequest:
    """Model representing a parsed request line."""
    method: str
    target_path: str
    protocol_scheme: str
    query_params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RelayResponse:
    """Model representing the response written back to the inbound caller."""
    status_code: int
    body: bytes = b""

    def to_bytes(self) -> bytes:
        """Convert response to its wire format.

        There is no Content-Length header; the caller infers the end of
        the body from the connection closing.
        """
        head = (
            f"HTTP/1.0 {self.status_code}\r\n"
            f"Content-Type: {STATUS_CONTENT_TYPE}\r\n"
            "\r\n"
        )
        return head.encode("ascii") + self.body

    @classmethod
    def create_error(cls, status_code: int) -> 'RelayResponse':
        """Create an empty-bodied response."""
        return cls(status_code=status_code)
