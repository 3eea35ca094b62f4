import logging
import socket

from tcpcomm.transport.base import ConnectionNotConnectedError, ConnectorError
from tcpcomm.transport.socket_transport import SocketTransport

logger = logging.getLogger(__name__)


def endpoint_key(endpoint):
    """
    >>> endpoint_key(('127.0.0.1', 55))
    '127.0.0.1:55'
    >>> endpoint_key(('::1', 55))
    '[::1]:55'
    """
    host, port = endpoint[:2]
    return ('[%s]' % host if ':' in host else host) + ':' + str(port)


class SocketConnector:
    """
    Opens outgoing TCP connections to a remote endpoint.
    """
    def __init__(self, endpoint, family=socket.AF_INET, connect_timeout=5, report_errors=True):
        """
        :param endpoint: the (address, port) to connect to
        :param family: the socket address family
        :param connect_timeout: the maximum time to wait for the connection to be established
        :param report_errors: when False, connection failures are logged at debug level
        """
        self.endpoint = endpoint
        self.family = family
        self.connect_timeout = connect_timeout
        self._report_errors = report_errors

    def connect(self) -> SocketTransport:
        sock = socket.socket(self.family, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.connect_timeout)
            sock.connect(self.endpoint)
        except OSError as e:
            sock.close()
            method = logger.warning if self._report_errors else logger.debug
            method("error opening socket to %s: %s" % (endpoint_key(self.endpoint), e))
            raise ConnectorError("unable to connect to %s" % endpoint_key(self.endpoint)) from e
        logger.info("opened socket to %s" % endpoint_key(self.endpoint))
        return SocketTransport(sock)


class SocketListener:
    """
    A listening socket that accepts incoming TCP connections on a local endpoint.
    The socket is bound when opened and stays open until closed.
    """
    def __init__(self, endpoint, family=socket.AF_INET, backlog=1):
        self.endpoint = endpoint
        self.family = family
        self.backlog = backlog
        self.sock = None

    @property
    def listening(self):
        return self.sock is not None

    @property
    def address(self):
        """ the bound local address, which gives the actual port when binding to port 0 """
        return self.sock.getsockname() if self.sock is not None else None

    def open(self):
        if self.sock is not None:
            return
        sock = socket.socket(self.family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(self.endpoint)
            sock.listen(self.backlog)
        except OSError as e:
            sock.close()
            raise ConnectorError("unable to listen on %s: %s" % (endpoint_key(self.endpoint), e)) from e
        self.sock = sock
        logger.info("listening on %s" % endpoint_key(self.endpoint))

    def accept(self, timeout=None):
        """
        Waits for one incoming connection.
        :param timeout: the maximum time to wait, or None to wait indefinitely
        :return: the transport for the accepted connection, or None if the timeout elapsed
        """
        sock = self.sock
        if sock is None:
            raise ConnectionNotConnectedError("not listening on %s" % endpoint_key(self.endpoint))
        try:
            sock.settimeout(timeout)
            client, address = sock.accept()
        except socket.timeout:
            return None
        except OSError as e:
            raise ConnectorError("accept on %s failed: %s" % (endpoint_key(self.endpoint), e)) from e
        logger.info("accepted connection from %s" % endpoint_key(address))
        return SocketTransport(client)

    def close(self):
        sock, self.sock = self.sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)     # wakes a thread blocked in accept()
        except OSError:
            pass
        finally:
            sock.close()
        logger.info("stopped listening on %s" % endpoint_key(self.endpoint))
