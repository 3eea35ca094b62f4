"""
Parsing of durations and information quantities.

Values may be given as plain numbers (seconds or bytes) or as strings with a unit suffix.
"""
import re
from datetime import timedelta

_number = r'\s*(?P<value>[0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?)\s*(?P<unit>[a-zA-Z]*)\s*$'
_number_re = re.compile(_number)

duration_units = {
    'ms': 0.001,
    's': 1, 'sec': 1,
    'm': 60, 'min': 60,
    'h': 3600, 'hr': 3600,
}

quantity_units = {
    'b': 1,
    'kb': 1000, 'mb': 1000 ** 2, 'gb': 1000 ** 3,
    'kib': 1024, 'mib': 1024 ** 2, 'gib': 1024 ** 3,
}


def _split(text, what):
    match = _number_re.match(text)
    if not match:
        raise ValueError("invalid %s: '%s'" % (what, text))
    return float(match.group('value')), match.group('unit')


def parse_duration(value):
    """
    Converts a duration to seconds.
    >>> parse_duration('500ms')
    0.5
    >>> parse_duration('2 min')
    120.0
    >>> parse_duration(timedelta(seconds=3))
    3.0
    >>> parse_duration(1)
    1.0
    """
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, str):
        raise ValueError("invalid duration: %r" % (value,))
    amount, unit = _split(value, 'duration')
    unit = unit.lower() or 's'
    if unit not in duration_units:
        raise ValueError("unknown duration unit '%s' in '%s'" % (unit, value))
    return amount * duration_units[unit]


def parse_quantity(value):
    """
    Converts an information quantity to a whole number of bytes.
    >>> parse_quantity('1MiB')
    1048576
    >>> parse_quantity('64 KB')
    64000
    >>> parse_quantity(512)
    512
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if not isinstance(value, str):
        raise ValueError("invalid quantity: %r" % (value,))
    amount, unit = _split(value, 'quantity')
    unit = unit.lower() or 'b'
    if unit not in quantity_units:
        raise ValueError("unknown quantity unit '%s' in '%s'" % (unit, value))
    result = amount * quantity_units[unit]
    if result != int(result):
        raise ValueError("quantity '%s' is not a whole number of bytes" % value)
    return int(result)
