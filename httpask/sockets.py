import socket
import select
import logging

logger = logging.getLogger(__name__)


def close_socket(sock: socket.socket) -> None:
    """Close a socket, logging rather than raising teardown faults."""
    try:
        sock.close()
    except OSError as e:
        logger.debug(f"Close socket failed: {e}")


def finish_socket(sock: socket.socket, buffer_size: int = 4096) -> None:
    """
    Half-close a socket after the last write, then close it.

    Request bytes the peer already sent but nobody read (headers after the
    request line, for instance) are discarded first, so the peer sees an
    orderly end-of-stream rather than a reset.

    Args:
        sock: Socket to tear down
        buffer_size: Chunk size used while discarding unread input
    """
    try:
        sock.shutdown(socket.SHUT_WR)
        while True:
            ready = select.select([sock], [], [], 0)
            if not ready[0]:
                break
            if not sock.recv(buffer_size):
                break
    except OSError as e:
        logger.debug(f"Socket teardown failed: {e}")
    finally:
        close_socket(sock)
