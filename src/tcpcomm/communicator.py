from tcpcomm.config.config import DEFAULT_ADDRESS, CommunicatorConfig, Role
from tcpcomm.support.events import ChannelEventSource, EventDispatcher
from tcpcomm.supervisor import ConnectorSupervisor, ListenerSupervisor


class TCPCommunicator:
    """
    A point-to-point TCP connection that re-establishes itself when lost.

    As a listener (is_server=True) the communicator binds the address and port and accepts a connection
    from a peer. As a connector it connects out to the address and port. Either way, a background thread
    keeps the connection alive until the communicator is closed, or until no connection could be made
    for longer than the timeout.

    Subscribe to the events before starting to be sure of seeing every event:

        comm = TCPCommunicator(False, 9000, '10.0.0.5', autostart=False)
        comm.connection_changed += on_connection_changed     # called with True/False
        comm.data_arrived += on_data                         # called with the bytes received
        comm.start()

    Events are delivered in order on a dedicated thread.

    :param is_server: True to listen for a connection, False to connect out
    :param port: the port, 1-65535
    :param address: IPv4 or IPv6 address
    :param buffer_size: socket buffer size, in bytes or as a quantity such as '1MiB'. Default 1 MiB.
    :param reconnect_interval: time between reconnection attempts, in seconds or as a duration. Default 1s.
    :param timeout: how long to go without a connection before closing. Default 30s.
    :param pad_reads: when True, data_arrived receives the whole receive buffer rather than just the bytes read
    :param autostart: when False, the caller must call start()
    :raises ConfigurationError: a parameter is invalid
    :raises ConnectorError: a listener could not bind the address
    """

    supervisors = {
        Role.LISTENER: ListenerSupervisor,
        Role.CONNECTOR: ConnectorSupervisor,
    }

    def __init__(self, is_server, port, address=DEFAULT_ADDRESS, buffer_size=None, reconnect_interval=None,
                 timeout=None, pad_reads=False, autostart=True):
        role = Role.LISTENER if is_server else Role.CONNECTOR
        self.config = config = CommunicatorConfig(role, port, address, buffer_size, reconnect_interval, timeout,
                                                  pad_reads)
        self.dispatcher = EventDispatcher(name='events %s' % role.value)
        self.connection_changed = ChannelEventSource(self.dispatcher, 'connection_changed')
        self.data_arrived = ChannelEventSource(self.dispatcher, 'data_arrived')
        self.errors = ChannelEventSource(self.dispatcher, 'errors')
        self.supervisor = self.supervisors[role](config, self.connection_changed, self.data_arrived, self.errors,
                                                 self.dispatcher)
        if autostart:
            self.start()

    @classmethod
    def from_config(cls, config: CommunicatorConfig, autostart=True):
        return cls(config.is_listener, config.port, str(config.address), config.buffer_size,
                   config.reconnect_interval, config.timeout, config.pad_reads, autostart)

    @property
    def port(self):
        return self.config.port

    @property
    def ip(self):
        return self.config.address

    @property
    def is_connected(self) -> bool:
        """ the connection state last observed by the background thread. """
        return self.supervisor.connected

    @property
    def is_open(self) -> bool:
        return self.supervisor.is_open

    def start(self):
        """ starts the background thread. Connectors make their first connection attempt before returning. """
        self.supervisor.start()
        return self

    def send(self, data):
        """
        Sends the data to the peer. Empty data is ignored.
        :raises ConnectionNotConnectedError: there is no connection
        :raises ConnectorError: writing to the connection failed
        """
        self.supervisor.send(data)

    def close(self):
        """ closes the connection. Further calls have no effect. """
        self.supervisor.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
