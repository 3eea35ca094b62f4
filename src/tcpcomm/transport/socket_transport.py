import logging
import select
import socket

from tcpcomm.transport.base import ConnectionClosedError, ConnectorError, Transport

logger = logging.getLogger(__name__)


class SocketTransport(Transport):
    """
    A transport that provides communication via a connected socket.
    :param sock The open, connected socket
    """
    def __init__(self, sock: socket.socket):
        self.sock = sock
        self.read_timeout = None
        self._alive = True

    @property
    def connected(self) -> bool:
        return self._alive and self.sock.fileno() >= 0

    @property
    def receive_buffer_size(self) -> int:
        return self.sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF)

    def configure(self, buffer_size, timeout):
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, buffer_size)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, buffer_size)
        self.sock.settimeout(None)
        self.read_timeout = timeout

    def read(self, pad=False):
        try:
            readable, _, _ = select.select([self.sock], [], [], self.read_timeout)
            if not readable:
                return None
            buffer = bytearray(self.receive_buffer_size)
            count = self.sock.recv_into(buffer)
        except (OSError, ValueError) as e:      # ValueError: the socket was closed
            self._alive = False
            raise ConnectorError("read from %s failed: %s" % (self.peer, e)) from e
        if count == 0:
            self._alive = False
            raise ConnectionClosedError("connection closed by %s" % self.peer)
        return bytes(buffer) if pad else bytes(buffer[:count])

    def write(self, data):
        try:
            self.sock.sendall(data)
        except OSError as e:
            self._alive = False
            raise ConnectorError("write to %s failed: %s" % (self.peer, e)) from e

    @property
    def peer(self):
        try:
            return self.sock.getpeername()
        except OSError:
            return None

    def close(self):
        self._alive = False
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass    # the peer may have closed the socket already
        finally:
            self.sock.close()
