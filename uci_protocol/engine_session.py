"""Provides communication with a UCI engine running in its own process."""
from __future__ import annotations
import os
import signal
import subprocess
import sys
import threading
import logging
import time
import contextlib
from datetime import timedelta
from enum import Enum
from types import TracebackType
from typing import IO, Any, Optional, cast
from uci_protocol import commands
from uci_protocol.commands import Command, SetOption, Stop, Quit
from uci_protocol.config import Configuration, ConfigurationError
from uci_protocol.response_queue import ResponseQueue
from uci_protocol.responses import DecodeError, ResponseToken, decode
from uci_protocol.timer import Timer, msec, msec_str, seconds, to_seconds
from uci_protocol.uci_types import COMMANDS_TYPE, OPTIONS_TYPE, OPTION_VALUE_TYPE

logger = logging.getLogger(__name__)

DEFAULT_RECEIVE_TIMEOUT = msec(3000)
DEFAULT_SHUTDOWN_GRACE = msec(250)
PROCESS_EXIT_TIMEOUT = seconds(5)
READER_JOIN_TIMEOUT = seconds(5)


class ProcessIoError(OSError):
    """The engine's input or output is closed or broken, or the engine has exited."""


class BatchDecodeError(DecodeError):
    """
    Some of the lines drained by one `EngineSession.receive()` call could not be decoded.

    `tokens` holds every line that did decode, in arrival order. `errors` holds one DecodeError per failed line.
    """

    def __init__(self, tokens: list[ResponseToken], errors: list[DecodeError]) -> None:
        """
        :param tokens: The successfully decoded tokens.
        :param errors: The errors of the lines that failed.
        """
        super().__init__(f"{len(errors)} of {len(tokens) + len(errors)} received lines could not be decoded. "
                         f"First error: {errors[0]}", errors[0].line)
        self.tokens = tokens
        self.errors = errors


class SessionState(Enum):
    """The lifecycle of an engine session."""

    STARTING = "starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting down"
    CLOSED = "closed"


def create_session(engine_config: Configuration) -> EngineSession:
    """
    Start an engine session as described by the config.

    Use in a with-block to automatically shut the engine down.

    :param engine_config: The config, with an `engine` section.
    :return: A running session.
    """
    cfg = engine_config.engine
    engine_path = os.path.abspath(os.path.join(cfg.dir, cfg.name))
    interpreter_commands = []
    if cfg.interpreter:
        interpreter_commands.append(cfg.interpreter)
        interpreter_commands.extend(cfg.interpreter_options)
    engine_args = []
    if cfg.engine_options:
        for k, v in cfg.engine_options.items():
            engine_args.append(f"--{k}={v}" if v is not None else f"--{k}")

    stderr = subprocess.DEVNULL if cfg.silence_stderr else None

    return EngineSession(engine_path,
                         interpreter_commands=interpreter_commands,
                         engine_args=engine_args,
                         discard_welcome_message=cfg.discard_welcome_message,
                         stderr=stderr,
                         cwd=cfg.working_dir,
                         receive_timeout=msec(cfg.receive_timeout),
                         shutdown_grace=msec(cfg.shutdown_grace))


def option_value_string(value: OPTION_VALUE_TYPE) -> Optional[str]:
    """Render an option value the way engines expect it, e.g. `True` becomes `true`."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class EngineSession:
    """
    A long-lived conversation with one engine process.

    Commands are written to the engine's standard input by `send()`. A
    background thread reads the engine's standard output and buffers every
    line. `receive()` waits a bounded time for buffered lines and returns
    them decoded.
    """

    def __init__(self,
                 engine_path: str,
                 interpreter_commands: Optional[COMMANDS_TYPE] = None,
                 engine_args: Optional[COMMANDS_TYPE] = None,
                 discard_welcome_message: bool = False,
                 stderr: Optional[int] = None,
                 cwd: Optional[str] = None,
                 receive_timeout: timedelta = DEFAULT_RECEIVE_TIMEOUT,
                 shutdown_grace: timedelta = DEFAULT_SHUTDOWN_GRACE) -> None:
        """
        Launch the engine and start reading its output.

        :param engine_path: The engine executable (or script, if `interpreter_commands` is given).
        :param interpreter_commands: The program, and its arguments, that runs the engine. e.g. `["python3"]`.
        :param engine_args: Command line arguments for the engine.
        :param discard_welcome_message: Whether to throw away the first line the engine prints.
        :param stderr: Where the engine's standard error goes. `None` inherits it, `subprocess.DEVNULL` silences it.
        :param cwd: The engine's working directory.
        :param receive_timeout: How long `receive()` waits for output when no timeout is given.
        :param shutdown_grace: How long to wait after each of `stop` and `quit` when shutting down.
        """
        if not os.path.isfile(engine_path):
            raise ConfigurationError(f"The engine {engine_path} file does not exist.")

        self._state = SessionState.STARTING
        self._state_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._stop_reading = threading.Event()
        self.receive_timeout = receive_timeout
        self.shutdown_grace = shutdown_grace
        self.responses = ResponseQueue()
        self.commands = [*(interpreter_commands or []), engine_path, *(engine_args or [])]

        # The engine gets its own process group so that anything it starts is shut down with it.
        popen_args: dict[str, Any] = {}
        if sys.platform == "win32":
            popen_args["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            popen_args["start_new_session"] = True

        logger.debug(f"Starting engine: {self.commands}")
        try:
            self.process = subprocess.Popen(self.commands,
                                            stdin=subprocess.PIPE,
                                            stdout=subprocess.PIPE,
                                            stderr=stderr,
                                            cwd=cwd,
                                            encoding="utf-8",
                                            errors="replace",
                                            bufsize=1,
                                            **popen_args)
        except OSError as error:
            raise ProcessIoError(f"Could not start the engine {engine_path}: {error}") from error
        self.stdin = cast(IO[str], self.process.stdin)
        self.stdout = cast(IO[str], self.process.stdout)
        logger.debug(f"The engine has pid={self.process.pid}")

        if discard_welcome_message:
            welcome_message = self.stdout.readline()
            logger.debug(f"Discarded welcome message: {welcome_message.rstrip()}")

        self._reader = threading.Thread(target=self._read_responses, name=f"uci-reader-{self.process.pid}", daemon=True)
        self._reader.start()
        self._state = SessionState.RUNNING

    @property
    def state(self) -> SessionState:
        """Where the session is in its lifecycle."""
        with self._state_lock:
            return self._state

    def is_alive(self) -> bool:
        """Whether the engine process is still running."""
        return self.process.poll() is None

    def _read_responses(self) -> None:
        """Buffer every non-empty line of engine output until the output ends or the session shuts down."""
        logger.debug("Reading engine output.")
        try:
            while not self._stop_reading.is_set():
                line = self.stdout.readline()
                if not line:
                    break
                line = line.rstrip("\r\n")
                if line:
                    self.responses.push(line)
        except (OSError, ValueError) as error:
            logger.debug(f"Stopped reading engine output: {error}")
        finally:
            self.responses.close()
            logger.debug("Done reading engine output.")

    def _write(self, line: str) -> None:
        """Write one line to the engine, raising ProcessIoError if that is impossible."""
        with self._write_lock:
            if not self.is_alive():
                raise ProcessIoError(f"The engine has exited with code {self.process.returncode}.")
            try:
                self.stdin.write(line + "\n")
                self.stdin.flush()
            except (OSError, ValueError) as error:
                raise ProcessIoError(f"Could not send `{line}` to the engine: {error}") from error

    def send(self, command: Command) -> str:
        """
        Send a command to the engine. Nothing is awaited.

        The caller is responsible for the order of commands, e.g. not sending
        a new `go` while a previous search has not returned its best move.

        :param command: The command to send.
        :return: The line that was sent, or an empty string if the session is no longer running.
        """
        if self.state != SessionState.RUNNING:
            logger.debug(f"Ignoring {command} sent to a session that is {self.state.value}.")
            return ""
        line = commands.encode(command)
        logger.debug(f"Sending: {line}")
        self._write(line)
        return line

    def configure(self, options: OPTIONS_TYPE) -> None:
        """
        Send a `setoption` command for each option.

        :param options: A dictionary of option names to values. A value of `None` sends only the name (buttons).
        """
        for name, value in options.items():
            self.send(SetOption(name, option_value_string(value)))

    def awaiting_response_count(self) -> int:
        """How many lines the engine has sent that have not been received yet."""
        return len(self.responses)

    def receive(self, timeout: Optional[timedelta] = None) -> list[ResponseToken]:
        """
        Get everything the engine has written since the last call.

        :param timeout: How long to wait for a first line. Defaults to `receive_timeout`.
        :return: The decoded responses in the order the engine sent them. Empty if nothing arrived in time.
        :raises BatchDecodeError: If any of the lines could not be decoded. The rest are in the error's `tokens`.
        :raises ProcessIoError: If the engine's output has ended and there is nothing left to receive.
        """
        if self.state == SessionState.CLOSED:
            return []

        timer = Timer()
        lines = self.responses.drain(self.receive_timeout if timeout is None else timeout)
        if not lines:
            if self.responses.closed:
                raise ProcessIoError("The engine's output has ended.")
            logger.debug(f"No response from the engine after {msec_str(timer.time_since_reset())} ms.")
            return []

        logger.debug(f"Received {len(lines)} lines.")
        tokens: list[ResponseToken] = []
        errors: list[DecodeError] = []
        for line in lines:
            logger.debug(f"Received: {line}")
            try:
                tokens.append(decode(line))
            except DecodeError as error:
                logger.warning(f"Could not decode engine output: {error}")
                errors.append(error)

        if errors:
            raise BatchDecodeError(tokens, errors)
        return tokens

    def close(self) -> None:
        """
        Shut the engine down: `stop`, wait, `quit`, wait, then terminate the process and stop the reader.

        Errors are logged and never raised. Calling this more than once does nothing.
        """
        with self._state_lock:
            if self._state in (SessionState.SHUTTING_DOWN, SessionState.CLOSED):
                return
            self._state = SessionState.SHUTTING_DOWN

        try:
            logger.debug("Shutting down the engine.")
            for command in (Stop(), Quit()):
                if not self.is_alive():
                    break
                try:
                    self._write(commands.encode(command))
                except ProcessIoError as error:
                    logger.debug(f"Could not send {command} while shutting down: {error}")
                time.sleep(to_seconds(self.shutdown_grace))

            self._stop_reading.set()
            self._end_process()

            self._reader.join(to_seconds(READER_JOIN_TIMEOUT))

            with contextlib.suppress(OSError, ValueError):
                self.stdin.close()
            # Closing stdout waits for a readline() that is still blocked on it.
            if self._reader.is_alive():
                logger.debug("The engine output reader did not stop. Leaving the output stream to it.")
            else:
                with contextlib.suppress(OSError, ValueError):
                    self.stdout.close()
        finally:
            with self._state_lock:
                self._state = SessionState.CLOSED
            logger.debug(f"Engine session closed. Exit code: {self.process.returncode}")

    def _end_process(self) -> None:
        """Terminate the engine and everything it started, killing them if they will not terminate."""
        try:
            self._signal_engine(kill=False)
            self.process.wait(to_seconds(PROCESS_EXIT_TIMEOUT))
        except subprocess.TimeoutExpired as error:
            logger.debug(f"The engine did not terminate: {error}")
            self._signal_engine(kill=True)
            with contextlib.suppress(subprocess.TimeoutExpired):
                self.process.wait(to_seconds(PROCESS_EXIT_TIMEOUT))

    def _signal_engine(self, kill: bool) -> None:
        """
        Terminate or kill the engine's process group.

        Processes the engine started keep its output open, so they are stopped along with it. On Windows, where
        there is no process group to signal, only the engine itself is stopped.

        :param kill: Whether to kill instead of asking to terminate.
        """
        # The group may already be gone.
        with contextlib.suppress(OSError):
            if sys.platform == "win32":
                if not self.is_alive():
                    return
                if kill:
                    self.process.kill()
                else:
                    self.process.terminate()
            else:
                os.killpg(self.process.pid, signal.SIGKILL if kill else signal.SIGTERM)

    def __enter__(self) -> EngineSession:  # noqa: PYI034 (return Self not available until 3.11)
        """Enter context so the engine will be properly shut down."""
        return self

    def __exit__(self, exc_type: Optional[type[BaseException]],
                 exc_value: Optional[BaseException],
                 traceback: Optional[TracebackType]) -> None:
        """Exit context and shut the engine down."""
        self.close()
