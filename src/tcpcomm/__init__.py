"""
Self-healing point-to-point TCP connections.

- TCPCommunicator: the public entry point. Listens for or connects to a single peer, sends bytes and
  publishes connection_changed, data_arrived and errors events.
- Supervisors (supervisor.py): the background loop per communicator that watches the connection,
  reads incoming data, re-establishes lost connections and gives up after the timeout.
- Transports (transport/): the socket for one established connection, plus the connector and
  listener that establish it.
- Configuration (config/): validated, immutable communicator parameters, loadable from configobj files.
- Support (support/): event sources and dispatcher, background loop, retry timing.


## Threading

Each communicator runs two daemon threads: the supervisor loop, which is the only thread that
replaces the current connection, and the event dispatcher, which calls subscribers. Sending happens
on the caller's thread and may race a reconnect, in which case it fails like any other write.
"""
from tcpcomm.communicator import TCPCommunicator
from tcpcomm.config.config import CommunicatorConfig, ConfigurationError, Role, load_communicator_configs
from tcpcomm.transport.base import ConnectionClosedError, ConnectionNotConnectedError, ConnectorError

__version__ = '0.1.0'
