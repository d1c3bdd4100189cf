import socket
import threading
import logging
from typing import Optional

from .config import GatewayConfig
from .errors import BindError
from .handler import ConnectionHandler
from .sockets import close_socket

logger = logging.getLogger(__name__)

class AskServer:
    """Listener that accepts inbound connections and hands each to its own thread."""

    def __init__(self, host: str = "0.0.0.0", port: int = 8080,
                 config: Optional[GatewayConfig] = None,
                 stop_event: Optional[threading.Event] = None):
        """
        Initialize the listener.

        Args:
            host: Host address to bind
            port: Port number to listen on, 0 for any free port
            config: Gateway configuration
            stop_event: Signal that ends the accept loop once set
        """
        self._host = host
        self._port = port
        self._config = config or GatewayConfig()
        self._stop_event = stop_event or threading.Event()
        self._bound = False

        # Initialize server socket
        self._server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Initialize connection handler
        self._handler = ConnectionHandler(
            self._stop_event, buffer_size=self._config.get("buffer_size"))

    @property
    def host(self) -> str:
        """Get the host address."""
        return self._host

    @property
    def port(self) -> int:
        """Get the port number, as bound once bind() has run."""
        return self._port

    @property
    def stop_event(self) -> threading.Event:
        """Get the stop signal shared with the handlers."""
        return self._stop_event

    @property
    def server_socket(self) -> socket.socket:
        """Get the server socket."""
        return self._server_socket

    def bind(self) -> None:
        """
        Acquire the listening port.

        Raises:
            BindError: If the port cannot be bound
        """
        try:
            self._server_socket.bind((self._host, self._port))
            self._server_socket.listen(self._config.get("backlog"))
        except OSError as e:
            close_socket(self._server_socket)
            raise BindError(f"Cannot bind {self._host}:{self._port}: {e}") from e
        self._port = self._server_socket.getsockname()[1]
        self._bound = True

    def start(self) -> None:
        """Serve until the stop signal is set."""
        if not self._bound:
            self.bind()
        # Wake periodically so a stop request is noticed while idle
        self._server_socket.settimeout(self._config.get("accept_interval"))
        logger.info(f"Relay gateway started on {self._host}:{self._port}")

        try:
            while not self._stop_event.is_set():
                try:
                    client_socket, client_address = self._server_socket.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._stop_event.is_set():
                        break
                    logger.error(f"Server error: {e}")
                    continue

                if self._stop_event.is_set():
                    close_socket(client_socket)
                    break

                # Handle each client in a separate thread
                thread = threading.Thread(
                    target=self._handler.handle_client,
                    args=(client_socket, client_address)
                )
                thread.daemon = True
                thread.start()
        finally:
            close_socket(self._server_socket)

        logger.info("Relay gateway stopped")

    def shutdown(self) -> None:
        """Set the stop signal and wake the accept loop."""
        self._stop_event.set()
        # Create a dummy connection to unblock accept()
        try:
            with socket.create_connection(("127.0.0.1", self._port), timeout=1):
                pass
        except OSError as e:
            logger.debug(f"Wake-up connection failed: {e}")
