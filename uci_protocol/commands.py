"""
Commands sent from the client to a UCI engine, and the encoder that renders them as wire lines.

Each command is an immutable value. `encode()` is the only place where the
text sent to the engine is built.
"""
from __future__ import annotations
import chess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, Union

MoveType = Union[str, chess.Move]


@dataclass(frozen=True)
class Uci:
    """Ask the engine to switch to UCI mode and identify itself."""


@dataclass(frozen=True)
class IsReady:
    """Ask the engine to answer `readyok` once it has processed all earlier input."""


@dataclass(frozen=True)
class UciNewGame:
    """Tell the engine that the next position belongs to a new game."""


@dataclass(frozen=True)
class PonderHit:
    """Tell the engine that the opponent played the expected ponder move."""


@dataclass(frozen=True)
class Stop:
    """Stop the current search as soon as possible."""


@dataclass(frozen=True)
class Quit:
    """Quit the engine program."""


@dataclass(frozen=True)
class Go:
    """
    Start searching the current position.

    :param time_ms: How long, in milliseconds, the engine should search. `None` searches until `Stop`.
    """

    time_ms: Optional[int] = None

    def __post_init__(self) -> None:
        """Reject search times that are not positive."""
        if self.time_ms is not None and self.time_ms <= 0:
            raise ValueError(f"The search time must be a positive number of milliseconds, not {self.time_ms}.")


@dataclass(frozen=True)
class Position:
    """
    Set up a position on the engine's internal board.

    :param fen: The starting position in FEN. `None` (or a blank string) means the standard starting position.
    :param moves: The moves to play from the starting position, in UCI notation.
    """

    fen: Optional[str] = None
    moves: Sequence[MoveType] = ()

    def __post_init__(self) -> None:
        """Store the moves as a tuple of UCI strings whether they were given as strings or `chess.Move`s."""
        object.__setattr__(self, "moves", tuple(move.uci() if isinstance(move, chess.Move) else move
                                                for move in self.moves))

    @classmethod
    def from_board(cls, board: chess.Board) -> Position:
        """
        Describe the game on a board: the position it started from followed by every move played.

        The board's moves are not checked for legality beyond what python-chess already did when they were pushed.
        """
        root = board.root()
        fen = None if root.fen() == chess.STARTING_FEN else root.fen()
        return cls(fen, board.move_stack)


@dataclass(frozen=True)
class SetOption:
    """
    Change one of the engine's options.

    :param name: The option name, as the engine reported it in its `option` lines.
    :param value: The new value. `None` or a blank string sends only the name (used for buttons).
    """

    name: str
    value: Optional[str] = None


Command = Union[Uci, IsReady, UciNewGame, PonderHit, Stop, Quit, Go, Position, SetOption]

KEYWORD_COMMANDS: dict[type, str] = {Uci: "uci",
                                     IsReady: "isready",
                                     UciNewGame: "ucinewgame",
                                     PonderHit: "ponderhit",
                                     Stop: "stop",
                                     Quit: "quit"}


def moves_clause(moves: Sequence[str]) -> str:
    """Return ` moves m1 m2 ...`, or nothing if there are no moves."""
    return f" moves {' '.join(moves)}" if moves else ""


def encode(command: Command) -> str:
    """
    Render a command as the line the engine expects on its input (without the line separator).

    :param command: The command to send.
    :return: The wire text.
    """
    keyword = KEYWORD_COMMANDS.get(type(command))
    if keyword is not None:
        return keyword

    if isinstance(command, Go):
        return "go infinite" if command.time_ms is None else f"go movetime {command.time_ms}"

    if isinstance(command, Position):
        moves = moves_clause(command.moves)
        if command.fen and command.fen.strip():
            return f"position fen {command.fen.strip()}{moves}"
        return f"position startpos{moves}"

    if isinstance(command, SetOption):
        value_clause = f" value {command.value}" if command.value and command.value.strip() else ""
        return f"setoption name {command.name}{value_clause}"

    raise TypeError(f"Cannot encode {command!r} as a UCI command.")
