from abc import ABCMeta, abstractmethod


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class ConnectionNotConnectedError(ConnectorError):
    """ Indicates a connection is in the disconnected state when a connection is required. """


class ConnectionClosedError(ConnectorError):
    """ The peer closed the connection. """


class Transport(metaclass=ABCMeta):
    """
    A transport allows two-way communication over one established connection.
    """

    @property
    @abstractmethod
    def connected(self) -> bool:
        """ determines if this transport is still usable. This reflects the outcome of the most recent
            read or write, so a transport may report connected after the peer has gone away. """
        raise NotImplementedError

    @property
    @abstractmethod
    def receive_buffer_size(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def configure(self, buffer_size, timeout):
        """
        Sets the send and receive buffer sizes and how long a read waits for data.
        Writes block until all the data is sent.
        """
        raise NotImplementedError

    @abstractmethod
    def read(self, pad=False):
        """
        Performs one blocking read.
        :param pad: when True, returns the whole receive buffer rather than just the bytes read
        :return: the bytes read, or None if no data arrived before the timeout
        :raises ConnectionClosedError: the peer closed the connection
        :raises ConnectorError: the read failed
        """
        raise NotImplementedError

    @abstractmethod
    def write(self, data):
        """
        Writes all the given data.
        :raises ConnectorError: the write failed
        """
        raise NotImplementedError

    @abstractmethod
    def close(self):
        raise NotImplementedError
