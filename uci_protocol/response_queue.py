"""A thread-safe buffer for the lines an engine writes while nobody is receiving them."""
import threading
from collections import deque
from datetime import timedelta
from uci_protocol.timer import Timer, to_seconds


class ResponseQueue:
    """
    A FIFO of raw engine output lines with one producer (the reader thread) and any number of consumers.

    `push()` appends one line. `drain()` waits a bounded time for at least one
    line and then removes every buffered line at once. Both happen under the
    same lock, so a drain never splits or reorders what the reader appended.
    """

    def __init__(self) -> None:
        """Create an empty, open queue."""
        self._lines: deque[str] = deque()
        self._closed = False
        self._condition = threading.Condition()

    def push(self, line: str) -> None:
        """Append a line and wake up any waiting `drain()`."""
        with self._condition:
            self._lines.append(line)
            self._condition.notify_all()

    def drain(self, timeout: timedelta) -> list[str]:
        """
        Remove and return all buffered lines in arrival order.

        :param timeout: How long to wait for a first line if the queue is empty.
        :return: The lines, or an empty list if none arrived before the timeout or the queue was closed.
        """
        timer = Timer(timeout)
        with self._condition:
            while not self._lines and not self._closed and not timer.is_expired():
                self._condition.wait(to_seconds(timer.time_until_expiration()))
            lines = list(self._lines)
            self._lines.clear()
            return lines

    def close(self) -> None:
        """Mark that no more lines will be pushed. Waiting drains return right away."""
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    @property
    def closed(self) -> bool:
        """Whether the producer has finished."""
        with self._condition:
            return self._closed

    def __len__(self) -> int:
        """The number of lines waiting to be drained."""
        with self._condition:
            return len(self._lines)
