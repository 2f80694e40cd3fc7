"""Durations and a countdown timer used for the bounded waits of an engine session."""

from datetime import timedelta
from time import perf_counter


def msec(time_in_msec: float) -> timedelta:
    """Create a timedelta duration in milliseconds."""
    return timedelta(milliseconds=time_in_msec)


def to_msec(duration: timedelta) -> float:
    """Return a bare number representing the length of the duration in milliseconds."""
    return duration / msec(1)


def msec_str(duration: timedelta) -> str:
    """Return a string with the duration value in whole number milliseconds."""
    return str(round(to_msec(duration)))


def seconds(time_in_sec: float) -> timedelta:
    """Create a timedelta duration in seconds."""
    return timedelta(seconds=time_in_sec)


def to_seconds(duration: timedelta) -> float:
    """Return a bare number representing the length of the duration in seconds."""
    return duration.total_seconds()


zero_seconds = seconds(0)


class Timer:
    """
    A countdown timer that doubles as a stopwatch.

    If the duration given to __init__() is greater than zero, is_expired()
    reports when that duration has passed and time_until_expiration() gives
    the time left. time_since_reset() works regardless of the duration.
    """

    def __init__(self, duration: timedelta = zero_seconds) -> None:
        """
        Start the timer.

        :param duration: The duration of time before Timer.is_expired() returns True.
        """
        self.duration = duration
        self.starting_time = perf_counter()

    def is_expired(self) -> bool:
        """Check if a timer is expired."""
        return self.time_since_reset() >= self.duration

    def time_since_reset(self) -> timedelta:
        """How much time has passed."""
        return seconds(perf_counter() - self.starting_time)

    def time_until_expiration(self) -> timedelta:
        """How much time is left until it expires."""
        return max(zero_seconds, self.duration - self.time_since_reset())
