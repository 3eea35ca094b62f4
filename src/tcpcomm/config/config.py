"""
Communicator configuration.

A CommunicatorConfig holds the validated endpoint and timing parameters for one communicator.
Configurations can also be read from layered configobj files, where each top-level section
describes one communicator:

    [sensor_link]
    role = connector
    address = 10.0.0.5
    port = 9000
    reconnect_interval = 500ms
    timeout = 1min
"""
import ipaddress
import os
import platform
import socket
from enum import Enum

from configobj import ConfigObj, ConfigObjError, flatten_errors
from configobj.validate import Validator, VdtValueError

from tcpcomm.config.units import parse_duration, parse_quantity
from tcpcomm.support.mixins import ValueMixin

# The default extension for configuration files
config_extension = '.cfg'

DEFAULT_ADDRESS = '127.0.0.1'
DEFAULT_BUFFER_SIZE = 1024 * 1024
DEFAULT_RECONNECT_INTERVAL = 1.0
DEFAULT_TIMEOUT = 30.0

configspec_lines = [
    '[__many__]',
    "role = option('listener', 'connector', default='connector')",
    "address = ip_address(default='%s')" % DEFAULT_ADDRESS,
    'port = integer(min=1, max=65535)',
    "buffer_size = quantity(default='1MiB')",
    "reconnect_interval = duration(default='1s')",
    "timeout = duration(default='30s')",
    'pad_reads = boolean(default=False)',
]


class ConfigurationError(ValueError):
    """ A communicator parameter is missing or invalid. """


class Role(Enum):
    LISTENER = 'listener'       # binds the local address and accepts a connection
    CONNECTOR = 'connector'     # connects out to the remote address


def parse_address(address):
    """
    >>> parse_address('::1')
    IPv6Address('::1')
    """
    try:
        return ipaddress.ip_address(address)
    except ValueError as e:
        raise ConfigurationError("Invalid IP address: %r" % (address,)) from e


def parse_port(port):
    if isinstance(port, bool) or not isinstance(port, int):
        raise ConfigurationError("Port must be an integer, not %r" % (port,))
    if port == 0:
        raise ConfigurationError("Port can't be 0")
    if not 0 < port < 65536:
        raise ConfigurationError("Port %d is out of range 1-65535" % port)
    return port


def _positive(parse, value, name):
    try:
        result = parse(value)
    except ValueError as e:
        raise ConfigurationError("%s: %s" % (name, e)) from e
    if result <= 0:
        raise ConfigurationError("%s must be positive, not %r" % (name, value))
    return result


class CommunicatorConfig(ValueMixin):
    """
    The immutable endpoint and timing parameters of a communicator.

    :param role:                Role, or its value 'listener' / 'connector'
    :param port:                the port to listen on or connect to, 1-65535
    :param address:             IPv4 or IPv6 address. The local address for a listener, the remote address
        for a connector.
    :param buffer_size:         send and receive buffer size, in bytes or as a quantity such as '64KiB'
    :param reconnect_interval:  time between reconnection attempts, in seconds or as a duration such as '500ms'
    :param timeout:             how long to go without a connection before giving up
    :param pad_reads:           when True, each received chunk is delivered as the whole receive buffer
    """
    _fields = ('role', 'address', 'port', 'buffer_size', 'reconnect_interval', 'timeout', 'pad_reads')

    def __init__(self, role, port, address=DEFAULT_ADDRESS, buffer_size=None, reconnect_interval=None,
                 timeout=None, pad_reads=False):
        try:
            self.role = Role(role)
        except ValueError as e:
            raise ConfigurationError("Invalid role: %r" % (role,)) from e
        self.port = parse_port(port)
        self.address = parse_address(address)
        self.buffer_size = _positive(parse_quantity, DEFAULT_BUFFER_SIZE if buffer_size is None else buffer_size,
                                     'buffer_size')
        self.reconnect_interval = _positive(
            parse_duration, DEFAULT_RECONNECT_INTERVAL if reconnect_interval is None else reconnect_interval,
            'reconnect_interval')
        self.timeout = _positive(parse_duration, DEFAULT_TIMEOUT if timeout is None else timeout, 'timeout')
        self.pad_reads = bool(pad_reads)
        self._freeze()

    @property
    def is_listener(self):
        return self.role is Role.LISTENER

    @property
    def endpoint(self):
        return str(self.address), self.port

    @property
    def family(self):
        return socket.AF_INET6 if self.address.version == 6 else socket.AF_INET


def check_duration(value):
    try:
        result = parse_duration(value)
    except ValueError:
        raise VdtValueError(value)
    if result <= 0:
        raise VdtValueError(value)
    return result


def check_quantity(value):
    try:
        result = parse_quantity(value)
    except ValueError:
        raise VdtValueError(value)
    if result <= 0:
        raise VdtValueError(value)
    return result


def check_ip_address(value):
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        raise VdtValueError(value)


def validator():
    return Validator({
        'duration': check_duration,
        'quantity': check_quantity,
        'ip_address': check_ip_address,
    })


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    return os.path.join(directory or '', name + config_extension)


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file, named after the base name followed by a period
    and the specialization. A missing file yields an empty configuration.
    """
    return load_config_file_base(config_filename(config_flavor(name, subpart), directory), False)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def describe_errors(config, result):
    """ lists the keys that failed validation, one per line. """
    lines = []
    for section_list, key, error in flatten_errors(config, result):
        where = '.'.join(section_list + ([key] if key is not None else []))
        lines.append("%s: %s" % (where, error if error is not False else 'missing'))
    return '\n'.join(lines)


def load_config(name, directory, configspec=None):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are merged in this order, later ones overriding earlier ones:
        - the default specialization
        - the platform specialization
        - the user override in the home directory
        - the base configuration
        The merged configuration is then validated against the configspec.
    :param directory: the location of the configuration files
    :param configspec: the lines of the configspec. Defaults to the communicator configspec.
    :return: the validated ConfigObj
    """
    local_config = config_flavor_file(name, directory)
    default_config = config_flavor_file(name, directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    user_config = load_config_file_base(os.path.expanduser(
        '~/' + name + config_extension), must_exist=False)
    config = ConfigObj(configspec=configspec_lines if configspec is None else configspec)
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    config.merge(local_config)

    result = config.validate(validator(), preserve_errors=True)
    if result is not True:
        raise ConfigObjError("the config file %s failed validation\n%s" % (name, describe_errors(config, result)))
    return config


def communicator_config(section) -> CommunicatorConfig:
    """ Builds a CommunicatorConfig from a validated configuration section. """
    return CommunicatorConfig(**{key: section[key] for key in CommunicatorConfig._fields if key in section})


def load_communicator_configs(name, directory):
    """
    Loads the communicators described in the named configuration files.
    :return: a dict mapping each section name to its CommunicatorConfig
    """
    config = load_config(name, directory)
    return {section: communicator_config(config[section]) for section in config.sections}
