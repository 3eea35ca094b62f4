"""
Signals delivered to subscribers.

EventSource calls its handlers directly on the firing thread. ChannelEventSource instead posts
each event to an EventDispatcher, whose background thread delivers the events in the order they
were fired. This keeps slow or failing subscribers from holding up the thread that fires.
"""
import logging
from queue import Empty, Queue

from tcpcomm.support.async_loop import AsyncLoop

logger = logging.getLogger(__name__)


class EventSource(object):

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def _fire(self, *args, **kwargs):
        for handler in self.handlers():
            handler(*args, **kwargs)


class ChannelEventSource(EventSource):
    """
    fire() posts the event to the dispatcher. Handlers are invoked later on the dispatcher thread.
    """
    def __init__(self, dispatcher, name=None):
        super().__init__()
        self.dispatcher = dispatcher
        self.name = name

    def fire(self, *args, **kwargs):
        self.dispatcher.post(self, args, kwargs)

    def deliver(self, args, kwargs):
        """ invokes each handler, logging rather than propagating handler errors. """
        for handler in self.handlers():
            try:
                handler(*args, **kwargs)
            except Exception as e:
                logger.exception("error in %s handler %s: %s" % (self.name or 'event', handler, e))


class EventDispatcher(AsyncLoop):
    """
    Delivers events posted by ChannelEventSource instances on a single background thread.

    Events posted before stop() are still delivered: the queue is drained when the loop shuts down.
    """

    def __init__(self, poll_interval=0.1, name='event-dispatcher', log=logger):
        super().__init__(name=name, log=log)
        self.poll_interval = poll_interval
        self.event_queue = Queue()

    def post(self, source, args=(), kwargs=None):
        self.event_queue.put((source, args, kwargs or {}))

    def loop(self):
        try:
            source, args, kwargs = self.event_queue.get(timeout=self.poll_interval)
        except Empty:
            return
        source.deliver(args, kwargs)

    def shutdown(self):
        self.publish()

    def publish(self):
        """ delivers any queued events on the calling thread. """
        queue = self.event_queue
        while True:
            try:
                source, args, kwargs = queue.get_nowait()
            except Empty:
                break
            source.deliver(args, kwargs)

    def stop(self, timeout=None):
        """ stops the dispatcher. Events still queued when it was never started are delivered on the calling thread. """
        thread = self.background_thread
        stopped = super().stop(timeout)
        if thread is None:
            self.publish()
        return stopped
