import os
import signal
import threading

import pytest

from ssrcon.shutdown import ShutdownCoordinator


def test_first_reason_wins():
    coordinator = ShutdownCoordinator()
    assert not coordinator.requested
    assert coordinator.request_shutdown(signal.SIGTERM) is True
    assert coordinator.request_shutdown("console closed") is False
    assert coordinator.requested
    assert coordinator.reason == signal.SIGTERM


@pytest.mark.parametrize(
    "reason, text",
    [
        (signal.SIGINT, "Close signal received, closing."),
        (signal.SIGTERM, "Close signal received, closing."),
        (signal.SIGSEGV, "Read outside of allocated memory, closing."),
        (signal.SIGILL, "Illegal instruction, closing."),
        ("console closed", "Console closed, closing."),
    ],
)
def test_describe(reason, text):
    coordinator = ShutdownCoordinator()
    coordinator.request_shutdown(reason)
    assert coordinator.describe() == text


def test_describe_without_request():
    assert ShutdownCoordinator().describe() == "Exited."


def test_wait_returns_after_request():
    coordinator = ShutdownCoordinator()
    assert coordinator.wait(0.01) is False
    coordinator.request_shutdown("done")
    assert coordinator.wait(0.01) is True


@pytest.mark.skipif(not hasattr(signal, "SIGUSR1"), reason="needs SIGUSR1")
def test_installed_handler_records_signal():
    coordinator = ShutdownCoordinator()
    previous = coordinator.install_signal_handlers([signal.SIGUSR1])
    try:
        os.kill(os.getpid(), signal.SIGUSR1)
        assert coordinator.wait(2.0)
        assert coordinator.reason == signal.SIGUSR1
        assert coordinator.describe() == "SIGUSR1 received, closing."
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


class _InterruptedEvent(threading.Event):
    """Runs `interrupt` once, inside the first is_set() check."""

    def __init__(self, interrupt):
        super().__init__()
        self.interrupt = interrupt

    def is_set(self):
        interrupt, self.interrupt = self.interrupt, None
        if interrupt is not None:
            interrupt()
        return super().is_set()


def test_signal_during_a_request_does_not_replace_its_reason():
    coordinator = ShutdownCoordinator()
    results = []
    coordinator._event = _InterruptedEvent(
        lambda: results.append(coordinator.request_shutdown(signal.SIGTERM))
    )
    assert coordinator.request_shutdown("console closed") is True
    assert results == [False]
    assert coordinator.reason == "console closed"
    assert coordinator.requested
