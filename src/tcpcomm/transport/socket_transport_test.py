import socket
import sys
import threading
import unittest
from unittest.mock import Mock, call, patch

import timeout_decorator
from hamcrest import assert_that, calling, is_, none, raises

from tcpcomm.transport.base import ConnectionClosedError, ConnectorError
from tcpcomm.transport.socket_transport import SocketTransport


def debug_timeout(value):
    """
    Replaces the timeout value with a very large one if the tests are running under a debugger.
    This prevents the main thread from throwing an exception and exiting when the test times out
    due to a breakpoint.
    """
    return value if sys.gettrace() is None else 100000


def free_port(host='127.0.0.1'):
    """ finds a port that is not currently in use on the given host. """
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        s.bind((host, 0))
        return s.getsockname()[1]
    finally:
        s.close()


class SocketTransportTest(unittest.TestCase):

    def setUp(self):
        self.sock = Mock()
        self.sock.fileno.return_value = 5
        self.sock.getsockopt.return_value = 8
        self.sut = SocketTransport(self.sock)
        patcher = patch('tcpcomm.transport.socket_transport.select.select', return_value=([self.sock], [], []))
        self.select = patcher.start()
        self.addCleanup(patcher.stop)

    def test_connected_until_socket_closed(self):
        assert_that(self.sut.connected, is_(True))
        self.sock.fileno.return_value = -1
        assert_that(self.sut.connected, is_(False))

    def test_configure(self):
        self.sut.configure(1024, 0.5)
        self.sock.setsockopt.assert_has_calls([
            call(socket.SOL_SOCKET, socket.SO_RCVBUF, 1024),
            call(socket.SOL_SOCKET, socket.SO_SNDBUF, 1024)])
        self.sock.settimeout.assert_called_once_with(None)
        assert_that(self.sut.read_timeout, is_(0.5))

    def test_receive_buffer_size(self):
        assert_that(self.sut.receive_buffer_size, is_(8))
        self.sock.getsockopt.assert_called_with(socket.SOL_SOCKET, socket.SO_RCVBUF)

    def fill(self, data):
        def recv_into(buffer):
            buffer[:len(data)] = data
            return len(data)
        self.sock.recv_into.side_effect = recv_into

    def test_read_returns_bytes_read(self):
        self.fill(b'\x01\x02\x03')
        assert_that(self.sut.read(), is_(b'\x01\x02\x03'))

    def test_read_padded_returns_whole_buffer(self):
        self.fill(b'\x01\x02\x03')
        assert_that(self.sut.read(pad=True), is_(b'\x01\x02\x03\x00\x00\x00\x00\x00'))

    def test_read_waits_for_data(self):
        self.sut.configure(1024, 0.5)
        self.fill(b'\x01')
        self.sut.read()
        self.select.assert_called_once_with([self.sock], [], [], 0.5)

    def test_read_timeout_returns_none(self):
        self.select.return_value = ([], [], [])
        assert_that(self.sut.read(), is_(none()))
        self.sock.recv_into.assert_not_called()
        assert_that(self.sut.connected, is_(True))

    def test_read_from_closed_socket_disconnects(self):
        self.select.side_effect = ValueError("file descriptor cannot be a negative integer (-1)")
        assert_that(calling(self.sut.read), raises(ConnectorError))
        assert_that(self.sut.connected, is_(False))

    def test_read_eof_disconnects(self):
        self.sock.recv_into.return_value = 0
        assert_that(calling(self.sut.read), raises(ConnectionClosedError))
        assert_that(self.sut.connected, is_(False))

    def test_read_error_disconnects(self):
        self.sock.recv_into.side_effect = ConnectionResetError()
        assert_that(calling(self.sut.read), raises(ConnectorError))
        assert_that(self.sut.connected, is_(False))

    def test_write(self):
        self.sut.write(b'abc')
        self.sock.sendall.assert_called_once_with(b'abc')

    def test_write_error_propagates_and_disconnects(self):
        self.sock.sendall.side_effect = BrokenPipeError()
        assert_that(calling(self.sut.write).with_args(b'abc'), raises(ConnectorError))
        assert_that(self.sut.connected, is_(False))

    def test_close_swallows_shutdown_error(self):
        self.sock.shutdown.side_effect = OSError("summat bad happened")
        self.sut.close()
        self.sock.shutdown.assert_called_once_with(socket.SHUT_RDWR)
        self.sock.close.assert_called_once_with()
        assert_that(self.sut.connected, is_(False))


class SocketPairTransportTest(unittest.TestCase):
    """ functional test over a connected socket pair. """

    def setUp(self):
        a, b = socket.socketpair()
        self.left = SocketTransport(a)
        self.right = SocketTransport(b)
        self.left.configure(4096, 2)
        self.right.configure(4096, 2)

    def tearDown(self):
        self.left.close()
        self.right.close()

    @timeout_decorator.timeout(debug_timeout(5))
    def test_round_trip(self):
        self.left.write(b'hello')
        assert_that(self.right.read(), is_(b'hello'))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_padded_read_is_receive_buffer_sized(self):
        self.left.write(b'hello')
        data = self.right.read(pad=True)
        assert_that(len(data), is_(self.right.receive_buffer_size))
        assert_that(data[:5], is_(b'hello'))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_read_times_out(self):
        self.right.configure(4096, 0.05)
        assert_that(self.right.read(), is_(none()))
        assert_that(self.right.connected, is_(True))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_peer_close_is_detected(self):
        self.left.close()
        assert_that(calling(self.right.read), raises(ConnectionClosedError))
        assert_that(self.right.connected, is_(False))

    @timeout_decorator.timeout(debug_timeout(10))
    def test_write_blocks_while_peer_is_not_reading(self):
        self.left.configure(4096, 0.05)
        self.right.configure(4096, 0.05)
        data = b'x' * (1024 * 1024)
        errors = []

        def write():
            try:
                self.left.write(data)
            except ConnectorError as e:
                errors.append(e)

        writer = threading.Thread(target=write)
        writer.start()
        writer.join(0.3)
        assert_that(writer.is_alive(), is_(True))
        assert_that(self.left.connected, is_(True))

        received = bytearray()
        while len(received) < len(data):
            received += self.right.read() or b''
        writer.join()
        assert_that(errors, is_([]))
        assert_that(self.left.connected, is_(True))
        assert_that(bytes(received), is_(data))


if __name__ == '__main__':  # pragma: no cover
    unittest.main()
