import time

from tcpcomm.support.mixins import ValueMixin


class PeriodRetryStrategy(ValueMixin):
    """ Allows an operation to be tried at most once per retry period. """
    _fields = ('retry_period', 'last_tried')
    __hash__ = None     # last_tried changes on each call

    def __init__(self, retry_period, last_tried=None):
        """
        :param retry_period: The retry period in seconds.
        """
        self.last_tried = last_tried         # the time last tried
        self.retry_period = retry_period

    def __call__(self, current_time=None, dry_run=False):
        """return the length of time until an operation should be retried
            :param dry_run: when True, the last tried time is not updated
        """
        if current_time is None:
            current_time = time.monotonic()
        result = self._time_to_retry(current_time)
        if not dry_run and result <= 0:
            self.last_tried = current_time
        return result

    def _time_to_retry(self, current_time):
        return 0 if self.last_tried is None else self.retry_period - (current_time - self.last_tried)


class Deadline:
    """
    Measures how long it has been since the deadline was last reset, and whether that
    exceeds the timeout.
    """

    def __init__(self, timeout, clock=time.monotonic):
        """
        :param timeout: the timeout in seconds.
        :param clock: a callable returning the current time in seconds.
        """
        self.timeout = timeout
        self.clock = clock
        self.started = clock()

    def reset(self):
        self.started = self.clock()

    def elapsed(self):
        return self.clock() - self.started

    def remaining(self):
        """ the time left before expiry. Negative once expired. """
        return self.timeout - self.elapsed()

    def expired(self):
        return self.elapsed() > self.timeout
