"""
Connection supervision.

A supervisor owns the transport for one point-to-point connection. Its background loop watches
the connection, reads incoming data and re-establishes the connection when it is lost. The listener
and connector roles differ in how a connection is established:

- ListenerSupervisor binds a local endpoint once and accepts one connection at a time.
- ConnectorSupervisor connects out to the remote endpoint, retrying once per reconnect interval.

The supervisor gives up and closes when it has been unable to establish a connection for longer
than the configured timeout.

Only the background loop replaces the current transport. Callers see the state through the
read-only properties and may call send() and close() from any thread.
"""
import logging
import threading
import time
from abc import abstractmethod

from tcpcomm.support.async_loop import AsyncLoop
from tcpcomm.support.events import EventSource
from tcpcomm.support.retry_strategy import Deadline, PeriodRetryStrategy
from tcpcomm.transport.base import ConnectionNotConnectedError, ConnectorError
from tcpcomm.transport.socketconn import SocketConnector, SocketListener, endpoint_key

logger = logging.getLogger(__name__)

# how often a listener re-checks an established connection, in seconds
poll_interval = 0.1


class ConnectionSupervisor(AsyncLoop):
    """
    Base class for the role-specific supervision loops.

    :param config:              the CommunicatorConfig for the connection
    :param connection_changed:  event source fired with True/False as the connection state changes
    :param data_arrived:        event source fired with the bytes from each successful read
    :param errors:              event source fired with the exceptions from failed attempts to connect
    :param dispatcher:          the EventDispatcher delivering the events, started and stopped with this supervisor
    :param clock:               monotonic time source, in seconds
    """

    def __init__(self, config, connection_changed, data_arrived, errors=None, dispatcher=None,
                 clock=time.monotonic, log=logger):
        super().__init__(name='%s %s' % (config.role.value, endpoint_key(config.endpoint)), log=log)
        self.config = config
        self.connection_changed = connection_changed
        self.data_arrived = data_arrived
        self.errors = errors if errors is not None else EventSource()
        self.dispatcher = dispatcher
        self.clock = clock
        self.deadline = Deadline(config.timeout, clock)
        self._lock = threading.RLock()
        self._transport = None
        self._connected = False
        self._open = True
        self._expired = False

    @property
    def key(self):
        return endpoint_key(self.config.endpoint)

    @property
    def transport(self):
        with self._lock:
            return self._transport

    @property
    def connected(self) -> bool:
        with self._lock:
            return self._connected

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._open

    def start(self):
        """ starts the timeout and the background loop. Calling start again has no effect. """
        if self.background_thread is None and self.is_open:
            self._begin()
        if self.dispatcher is not None:
            self.dispatcher.start()
        super().start()

    def _begin(self):
        """ template method called once, before the background loop starts. """
        self.deadline.reset()

    def running(self):
        return self.is_open and super().running()

    def loop(self):
        self.supervise()
        if not self.connected and self.deadline.expired():
            self._expire()

    @abstractmethod
    def supervise(self):
        """ one pass of the role-specific supervision. """
        raise NotImplementedError

    def send(self, data):
        """
        Writes the data to the current connection. Empty data is ignored.
        :raises ConnectionNotConnectedError: there is no current connection
        :raises ConnectorError: the write failed
        """
        if not data:
            return
        transport = self.transport
        if transport is None:
            raise ConnectionNotConnectedError("not connected to %s" % self.key)
        transport.write(data)

    def close(self):
        """
        Stops supervising, closes the connection and fires connection_changed(False).
        Only the first call has any effect.
        :return: True if this call closed the supervisor
        """
        with self._lock:
            if not self._open:
                return False
            self._open = False
            self._connected = False
            transport, self._transport = self._transport, None
        self.stop_event.set()
        if transport is not None:
            transport.close()
        self._close_endpoint()
        self.stop(self.config.timeout + poll_interval)
        self.connection_changed.fire(False)
        if self.dispatcher is not None:
            self.dispatcher.stop(self.config.timeout)
        self.logger.info("closed %s" % self.key)
        return True

    def _close_endpoint(self):
        """ template method to release role-specific resources on close. """
        pass

    def _expire(self):
        """ closes the supervisor the first time the deadline is found to have passed. """
        if self._expired:
            return
        self._expired = True
        self.logger.warning("no connection to %s within %ss, closing" % (self.key, self.config.timeout))
        self.close()

    def _pause(self, seconds):
        """ waits before the next attempt. While disconnected, the wait ends no later than the deadline. """
        if not self.connected:
            seconds = min(seconds, self.deadline.remaining())
        self.wait(seconds)

    def _observe(self, transport):
        """
        Updates the connection state from the liveliness of the transport.
        :return: True if the transport is live
        """
        alive = transport.connected
        if alive:
            self.deadline.reset()
        self._set_connected(alive)
        return alive

    def _set_connected(self, connected):
        """ records the connection state, firing connection_changed only when it differs from the last one. """
        with self._lock:
            if not self._open or connected == self._connected:
                return False
            self._connected = connected
            self.connection_changed.fire(connected)
        self.logger.info("%s %s" % ("connected to" if connected else "disconnected from", self.key))
        return True

    def _establish(self, transport):
        """
        Configures a newly opened transport and makes it the current one, closing any previous transport.
        :return: True if the transport is now current
        """
        try:
            transport.configure(self.config.buffer_size, self.config.reconnect_interval)
        except OSError as e:
            transport.close()
            self._failed(ConnectorError("unable to configure connection to %s: %s" % (self.key, e)))
            return False
        with self._lock:
            current = self._open
            if current:
                previous, self._transport = self._transport, transport
        if not current:
            transport.close()
            return False
        if previous is not None and previous is not transport:
            previous.close()
        self.deadline.reset()
        return True

    def _release(self, transport):
        """ closes the transport, dropping it if it is still current. """
        with self._lock:
            if self._transport is transport:
                self._transport = None
        transport.close()

    def _read(self, transport):
        """ performs one read and fires data_arrived with the data. Failed reads are ignored. """
        try:
            data = transport.read(self.config.pad_reads)
        except ConnectorError as e:
            self.logger.debug("read from %s failed: %s" % (self.key, e))
            return
        if data is None:
            return
        with self._lock:
            if self._open:
                self.data_arrived.fire(data)

    def _failed(self, e):
        """ reports a failed attempt to establish the connection. """
        self.logger.debug("%s: %s" % (self.key, e))
        if self.is_open:
            self.errors.fire(e)


class ListenerSupervisor(ConnectionSupervisor):
    """
    Listens on the local endpoint and supervises the connection accepted from a peer.
    When the connection is lost, the next connection is accepted.

    The local endpoint is bound on construction and stays bound until the supervisor is closed.
    """

    def __init__(self, config, *args, listener=None, **kwargs):
        super().__init__(config, *args, **kwargs)
        self.listener = listener if listener is not None else SocketListener(config.endpoint, config.family)
        self.listener.open()

    def supervise(self):
        transport = self.transport
        if transport is not None:
            if self._observe(transport):
                self._read(transport)
            else:
                self._release(transport)
            self._pause(poll_interval)
        elif not self._accept():
            self._pause(self.config.reconnect_interval)

    def _accept(self):
        """
        Waits for a peer to connect, for no longer than the time left before the deadline.
        :return: True if a connection was accepted
        """
        wait = min(self.config.timeout, max(self.deadline.remaining(), poll_interval))
        try:
            transport = self.listener.accept(wait)
        except ConnectorError as e:
            self._failed(e)
            return False
        if transport is None:
            self.logger.debug("no connection on %s within %ss" % (self.key, wait))
            return False
        return self._establish(transport)

    def _close_endpoint(self):
        self.listener.close()


class ConnectorSupervisor(ConnectionSupervisor):
    """
    Connects to the remote endpoint and supervises the connection, reconnecting when it is lost.
    Connection attempts are made at most once per reconnect interval.
    """

    def __init__(self, config, *args, connector=None, **kwargs):
        super().__init__(config, *args, **kwargs)
        self.connector = connector if connector is not None else \
            SocketConnector(config.endpoint, config.family, connect_timeout=config.timeout, report_errors=False)
        self.retry_strategy = PeriodRetryStrategy(config.reconnect_interval)

    def _begin(self):
        """
        Makes one attempt to connect before the background loop starts.
        Failure is expected when the peer is not yet listening.
        """
        super()._begin()
        self._restart()

    def supervise(self):
        transport = self.transport
        if transport is not None:
            if self._observe(transport):
                self._read(transport)
            else:
                self._release(transport)
                self._restart()
            self._pause(self.config.reconnect_interval)
        if self.transport is None and self.is_open:
            self._set_connected(False)
            self._restart()

    def _restart(self):
        """
        Opens a new connection, unless one was attempted within the reconnect interval, in which case
        this waits for the remainder of the interval instead.
        :return: True if a connection was established
        """
        delay = self.retry_strategy(self.clock())
        if delay > 0:
            self._pause(delay)
            return False
        try:
            transport = self.connector.connect()
        except ConnectorError as e:
            self._failed(e)
            return False
        return self._establish(transport)
