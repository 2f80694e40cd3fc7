"""Engines and sessions shared by the tests."""
import os
import sys
from collections.abc import Callable, Iterator
from datetime import timedelta
import pytest
from uci_protocol.engine_session import EngineSession
from uci_protocol.timer import msec

TEST_DIRECTORY = os.path.dirname(os.path.abspath(__file__))
UCI_ENGINE = os.path.join(TEST_DIRECTORY, "uci_engine.py")
CRASHING_ENGINE = os.path.join(TEST_DIRECTORY, "crashing_engine.py")
SPAWNING_ENGINE = os.path.join(TEST_DIRECTORY, "spawning_engine.py")
RECORDING_ENGINE = os.path.join(TEST_DIRECTORY, "recording_engine.py")

LAUNCHER_TYPE = Callable[..., EngineSession]


@pytest.fixture
def launch_engine() -> Iterator[LAUNCHER_TYPE]:
    """
    Start test engines with the python interpreter running the tests.

    Every session started through the fixture is shut down after the test.
    """
    sessions: list[EngineSession] = []

    def launch(*engine_args: str, engine_path: str = UCI_ENGINE, discard_welcome_message: bool = False,
               shutdown_grace: timedelta = msec(50)) -> EngineSession:
        engine_session = EngineSession(engine_path,
                                       interpreter_commands=[sys.executable],
                                       engine_args=list(engine_args),
                                       discard_welcome_message=discard_welcome_message,
                                       shutdown_grace=shutdown_grace)
        sessions.append(engine_session)
        return engine_session

    yield launch

    for engine_session in sessions:
        engine_session.close()


@pytest.fixture
def session(launch_engine: LAUNCHER_TYPE) -> EngineSession:
    """A session with the scripted UCI engine."""
    return launch_engine()


@pytest.fixture
def crashing_session(launch_engine: LAUNCHER_TYPE) -> EngineSession:
    """A session with an engine that exits right after starting."""
    return launch_engine(engine_path=CRASHING_ENGINE)
