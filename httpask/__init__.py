"""
A minimal HTTP gateway that relays a payload to a TCP peer and returns its reply.
"""

from .server import AskServer
from .handler import ConnectionHandler
from .client import RelayClient
from .models import ParsedRequest, RelayOptions, RelayResponse
from .config import GatewayConfig
from .errors import BindError, InvalidArgument, RelayConnectionError, RequestParseError

__all__ = ['AskServer', 'ConnectionHandler', 'RelayClient', 'ParsedRequest',
           'RelayOptions', 'RelayResponse', 'GatewayConfig', 'BindError',
           'InvalidArgument', 'RelayConnectionError', 'RequestParseError']
