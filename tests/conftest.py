import os
from typing import Callable

import numpy as np
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QCoreApplication, QEventLoop, QTimer  # noqa: E402

from perceptronviz.model.dataset import parse_training_data  # noqa: E402
from perceptronviz.model.presets import AND_GATE  # noqa: E402


class ManualHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Collects scheduled callbacks; tests decide when they fire."""

    def __init__(self) -> None:
        self.queue: list[ManualHandle] = []

    def schedule(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(delay, callback)
        self.queue.append(handle)
        return handle

    def fire_next(self) -> bool:
        while self.queue:
            handle = self.queue.pop(0)
            if not handle.cancelled:
                handle.callback()
                return True
        return False

    def run_until_idle(self, limit: int = 10_000) -> int:
        fired = 0
        while fired < limit and self.fire_next():
            fired += 1
        return fired


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def and_gate():
    return parse_training_data(AND_GATE).dataset


XOR_TEXT = """\
A,B,Out,Label
0,0,-1,Off
0,1,1,On
1,0,1,On
1,1,-1,Off
"""


@pytest.fixture
def xor_gate():
    return parse_training_data(XOR_TEXT).dataset


def spin_event_loop(until: Callable[[], bool], timeout_ms: int = 5000) -> None:
    """Process Qt events until the predicate holds or the timeout expires."""
    loop = QEventLoop()
    poll = QTimer()
    poll.setInterval(5)
    poll.timeout.connect(lambda: loop.quit() if until() else None)
    deadline = QTimer()
    deadline.setSingleShot(True)
    deadline.timeout.connect(loop.quit)
    poll.start()
    deadline.start(timeout_ms)
    if not until():
        loop.exec()
    poll.stop()
    deadline.stop()
