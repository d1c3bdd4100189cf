"""Exception types raised by the relay gateway."""


class InvalidArgument(ValueError):
    """A relay option or query parameter is missing or malformed."""


class RelayConnectionError(ConnectionError):
    """The outbound connection could not be opened or failed mid-transfer."""


class RequestParseError(ValueError):
    """The inbound request line could not be parsed."""


class BindError(OSError):
    """The listener could not acquire its port."""
