import threading
from unittest import TestCase
from unittest.mock import Mock

import timeout_decorator
from hamcrest import assert_that, is_, none, not_none

from tcpcomm.support.async_loop import AsyncLoop
from tcpcomm.transport.socket_transport_test import debug_timeout


class CallingLoop(AsyncLoop):
    """ calls a function on each pass of the loop. """

    def __init__(self, fn, **kwargs):
        super().__init__(**kwargs)
        self.fn = fn

    def loop(self):
        self.fn()


class AsyncLoopTest(TestCase):

    def test_loop_is_a_template_method(self):
        log = Mock()
        sut = AsyncLoop(log=log)
        sut._do(sut.loop)
        assert_that(log.exception.call_count, is_(1))

    def test_running_until_stopped(self):
        sut = CallingLoop(Mock())
        assert_that(sut.running(), is_(True))
        assert_that(sut.stop(), is_(True))
        assert_that(sut.running(), is_(False))

    def test_exceptions_are_handled(self):
        log = Mock()
        sut = CallingLoop(Mock(side_effect=ValueError("boom")), log=log)
        sut._do(sut.loop)
        assert_that(log.exception.call_count, is_(1))

    def test_wait_returns_early_when_stopped(self):
        sut = CallingLoop(Mock())
        sut.stop_event.set()
        assert_that(sut.wait(60), is_(True))

    def test_wait_negative_does_not_block(self):
        sut = CallingLoop(Mock())
        assert_that(sut.wait(-5), is_(False))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_background_thread_runs_and_stops(self):
        called = threading.Event()

        def tick():
            called.set()
            sut.wait(0.01)

        sut = CallingLoop(tick, name="test-loop")
        sut.startup = Mock()
        sut.shutdown = Mock()
        sut.start()
        thread = sut.background_thread
        assert_that(thread, is_(not_none()))
        assert_that(thread.daemon, is_(True))
        assert_that(thread.name, is_("test-loop"))
        called.wait()
        assert_that(sut.stop(), is_(True))
        assert_that(thread.is_alive(), is_(False))
        assert_that(sut.background_thread, is_(none()))
        sut.startup.assert_called_once_with()
        sut.shutdown.assert_called_once_with()

    @timeout_decorator.timeout(debug_timeout(5))
    def test_loop_survives_exceptions(self):
        calls = []
        done = threading.Event()

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise IOError("transient")
            done.set()
            sut.wait(0.01)

        sut = CallingLoop(flaky, log=Mock())
        sut.start()
        done.wait()
        sut.stop()
        assert_that(len(calls) >= 3, is_(True))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_stop_from_background_thread_does_not_join(self):
        stopped = []

        def stop_self():
            stopped.append(sut.stop())

        sut = CallingLoop(stop_self)
        sut.start()
        while not stopped:
            sut.stop_event.wait(0.01)
        assert_that(stopped, is_([True]))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_stop_times_out_on_blocked_thread(self):
        release = threading.Event()
        log = Mock()
        sut = CallingLoop(release.wait, log=log)
        sut.start()
        assert_that(sut.stop(0.05), is_(False))
        assert_that(log.warning.call_count, is_(1))
        release.set()
