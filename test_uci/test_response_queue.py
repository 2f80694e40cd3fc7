"""Tests for the buffer between the engine output reader and the receiving callers."""
import threading
import time
import pytest
from uci_protocol.response_queue import ResponseQueue
from uci_protocol.timer import Timer, msec, seconds


def test_drain__returns_everything_in_order() -> None:
    """Test that a drain takes all buffered lines at once, in the order they were pushed."""
    responses = ResponseQueue()
    for line in ["id name Test", "id author Tester", "uciok"]:
        responses.push(line)
    assert len(responses) == 3

    assert responses.drain(msec(100)) == ["id name Test", "id author Tester", "uciok"]
    assert len(responses) == 0


def test_drain__empty_after_timeout() -> None:
    """Test that draining an empty queue waits for the timeout and then returns nothing."""
    responses = ResponseQueue()
    timer = Timer()
    assert responses.drain(msec(300)) == []
    elapsed = timer.time_since_reset()
    assert msec(250) <= elapsed < seconds(2)


def test_drain__zero_timeout() -> None:
    """Test that a drain with no timeout does not wait."""
    responses = ResponseQueue()
    assert responses.drain(msec(0)) == []
    responses.push("readyok")
    assert responses.drain(msec(0)) == ["readyok"]


@pytest.mark.timeout(10)
def test_drain__wakes_up_when_a_line_arrives() -> None:
    """Test that a waiting drain returns as soon as the producer pushes a line."""
    responses = ResponseQueue()

    def produce() -> None:
        time.sleep(0.2)
        responses.push("readyok")

    producer = threading.Thread(target=produce)
    producer.start()
    timer = Timer()
    assert responses.drain(seconds(5)) == ["readyok"]
    assert timer.time_since_reset() < seconds(4)
    producer.join()


@pytest.mark.timeout(10)
def test_close__ends_waiting() -> None:
    """Test that closing the queue releases a waiting drain and keeps lines pushed before closing."""
    responses = ResponseQueue()
    responses.push("bestmove e2e4")
    responses.close()
    assert responses.closed
    assert responses.drain(seconds(5)) == ["bestmove e2e4"]

    timer = Timer()
    assert responses.drain(seconds(5)) == []
    assert timer.time_since_reset() < seconds(1)


@pytest.mark.timeout(30)
def test_concurrent_push_and_drain() -> None:
    """Test that lines pushed by one thread while others drain are each received exactly once, in order."""
    responses = ResponseQueue()
    line_count = 2000
    received: list[list[str]] = []
    lock = threading.Lock()
    done = threading.Event()

    def consume() -> None:
        while not done.is_set() or len(responses):
            lines = responses.drain(msec(10))
            with lock:
                received.append(lines)

    consumers = [threading.Thread(target=consume) for _ in range(3)]
    for consumer in consumers:
        consumer.start()
    for number in range(line_count):
        responses.push(f"info nodes {number}")
    done.set()
    for consumer in consumers:
        consumer.join()

    all_lines = [line for batch in received for line in batch]
    assert sorted(all_lines, key=lambda line: int(line.split()[-1])) == [f"info nodes {n}" for n in range(line_count)]
    for batch in received:
        numbers = [int(line.split()[-1]) for line in batch]
        assert numbers == sorted(numbers)
