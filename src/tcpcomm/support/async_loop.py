import logging
import threading

logger = logging.getLogger(__name__)


class AsyncLoop:
    """ Continually calls loop() on a background thread until stopped.
        Subclasses implement loop(). Exceptions are logged and the loop continues.
        The background thread is registered as a daemon.
    """

    def __init__(self, name=None, log=logger):
        """
        :param name the name given to the background thread
        """
        self.name = name
        self.stop_event = threading.Event()
        self.background_thread = None
        self.logger = log

    def start(self):
        """
        Starts the background thread. Calling start while the thread is running has no effect.
        """
        if self.background_thread is None:
            t = threading.Thread(target=self._run, name=self.name, daemon=True)
            self.background_thread = t
            t.start()

    def exception_handler(self, e):
        self.logger.exception(e)

    def _run(self):
        """ The processing loop for the background thread.
             Invokes the callable for as long as the stop signal is not received.
        """
        self._do(self.startup)
        while self.running():
            self._do(self.loop)
        self._do(self.shutdown)
        self.logger.debug("background thread %s exiting" % threading.current_thread().name)

    def _do(self, callme):
        """ runs a function and captures any exceptions """
        try:
            callme()
        except Exception as e:
            self.exception_handler(e)

    def startup(self):
        """ template method called when the thread starts"""
        pass

    def loop(self):
        """ template method called repeatedly on the background thread """
        raise NotImplementedError

    def shutdown(self):
        """ template method called when the thread exits """
        pass

    def running(self):
        return not self.stop_event.is_set()

    def wait(self, seconds):
        """ sleeps for the given time, returning early when the loop is stopped.
        :return: True if the loop was stopped during the wait
        """
        return self.stop_event.wait(max(seconds, 0))

    def stop(self, timeout=None):
        """
        Signals the background thread to stop and waits for it to exit, unless called
        from the background thread itself.
        :param timeout: the maximum time to wait for the thread to exit, or None to wait indefinitely.
        :return: True if the thread has exited (or was never started)
        """
        self.stop_event.set()
        thread = self.background_thread
        self.background_thread = None
        if thread and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                self.logger.warning("background thread %s did not stop within %ss" % (thread.name, timeout))
                return False
        return True
