"""
Responses sent by a UCI engine, and the decoder that turns each output line into a token.

Decoding is a pure function of one line. A line that starts with a known
keyword but does not follow that keyword's grammar raises `DecodeError`;
a line that starts with no known keyword becomes an `Unknown` token.
"""
from __future__ import annotations
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class DecodeError(ValueError):
    """A line that starts with a known response keyword does not follow that keyword's grammar."""

    def __init__(self, message: str, line: str) -> None:
        """
        :param message: What is wrong with the line.
        :param line: The normalized line that failed to decode.
        """
        super().__init__(f"{message} Line: {line!r}")
        self.line = line


class IdKind(Enum):
    """Which engine detail an `id` line carries."""

    NAME = "name"
    AUTHOR = "author"


class OptionType(Enum):
    """The kinds of options an engine can declare."""

    CHECK = "check"
    SPIN = "spin"
    COMBO = "combo"
    BUTTON = "button"
    STRING = "string"


class _Token:
    """Behavior shared by all response tokens."""

    raw: str

    def __str__(self) -> str:
        """The normalized text the token was decoded from."""
        return self.raw


@dataclass(frozen=True)
class Id(_Token):
    """`id name ...` or `id author ...`."""

    kind: IdKind
    value: str
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class UciOk(_Token):
    """`uciok`: the engine has sent all its `id` and `option` lines."""

    raw: str = field(default="uciok", compare=False, repr=False)


@dataclass(frozen=True)
class ReadyOk(_Token):
    """`readyok`: the answer to `isready`."""

    raw: str = field(default="readyok", compare=False, repr=False)


@dataclass(frozen=True)
class BestMove(_Token):
    """`bestmove <move> [ponder <move>]`. `ponder` is an empty string when the engine did not suggest one."""

    move: str
    ponder: str = ""
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class Option(_Token):
    """
    `option name <name> type <type> ...`.

    Only the fields that belong to `type` are filled in. The rest keep their defaults.
    """

    name: str
    type: OptionType
    check_default: bool = False
    spin_default: Optional[int] = None
    spin_min: Optional[int] = None
    spin_max: Optional[int] = None
    combo_default: Optional[str] = None
    combo_values: tuple[str, ...] = ()
    string_default: Optional[str] = None
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class Info(_Token):
    """
    `info ...`: search statistics.

    At most one of `cp_score` and `mate_score` is set. `is_lower_bound` and
    `is_upper_bound` only apply to a centipawn score.
    """

    depth: Optional[int] = None
    sel_depth: Optional[int] = None
    multi_pv: Optional[int] = None
    nodes: Optional[int] = None
    nps: Optional[int] = None
    tb_hits: Optional[int] = None
    time: Optional[int] = None
    hashfull: Optional[int] = None
    cpuload: Optional[int] = None
    curr_move: Optional[str] = None
    curr_move_number: Optional[int] = None
    cp_score: Optional[int] = None
    is_lower_bound: bool = False
    is_upper_bound: bool = False
    mate_score: Optional[int] = None
    principal_variation: Optional[tuple[str, ...]] = None
    string: Optional[str] = None
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class Unknown(_Token):
    """Any line that does not start with a known response keyword."""

    raw: str


ResponseToken = Union[Id, UciOk, ReadyOk, BestMove, Option, Info, Unknown]

MOVE_PATTERN = re.compile(r"[a-h][1-8][a-h][1-8]|[a-h][27][a-h][18][qrbn]", re.IGNORECASE)


def normalize(line: str) -> str:
    """Remove tabs and line breaks, trim the ends, and collapse runs of spaces."""
    for character in "\t\r\n":
        line = line.replace(character, "")
    return " ".join(part for part in line.split(" ") if part).strip()


def is_move(text: str) -> bool:
    """Whether the text is a move in UCI notation, e.g. `e2e4` or `e7e8q`."""
    return MOVE_PATTERN.fullmatch(text) is not None


def remainder(line: str, prefix: str) -> str:
    """Return the line without its prefix."""
    return line[len(prefix):]


def decode_id(line: str) -> Id:
    """Decode `id name <value>` and `id author <value>`."""
    lowered = line.lower()
    for kind in IdKind:
        prefix = f"id {kind.value} "
        if lowered.startswith(prefix):
            return Id(kind, remainder(line, prefix), raw=line)
    raise DecodeError("An id line must start with `id name ` or `id author `.", line)


def decode_uciok(line: str) -> UciOk:
    """Decode `uciok`."""
    return UciOk(raw=line)


def decode_readyok(line: str) -> ReadyOk:
    """Decode `readyok`."""
    return ReadyOk(raw=line)


def decode_bestmove(line: str) -> BestMove:
    """Decode `bestmove <move>` with an optional `ponder <move>` clause."""
    _, *parts = line.split(" ")
    if not parts or not is_move(parts[0]):
        raise DecodeError("Unable to find a well-formed move after `bestmove`.", line)

    ponder = ""
    if len(parts) >= 3 and parts[1].lower() == "ponder" and is_move(parts[2]):
        ponder = parts[2]
    return BestMove(parts[0], ponder, raw=line)


def parse_int(text: str, what: str, line: str) -> int:
    """Convert a number in a response to an int, raising `DecodeError` if it isn't one."""
    try:
        return int(text)
    except ValueError:
        raise DecodeError(f"Expected an integer for {what}, got {text!r}.", line) from None


def keyword_values(tokens: list[str], keywords: set[str], line: str) -> dict[str, str]:
    """
    Read a sequence of `keyword value` pairs, e.g. `default 1 min 0 max 10`.

    Every keyword must be in `keywords` and appear at most once.
    """
    if len(tokens) % 2:
        raise DecodeError("Expected a sequence of keyword-value pairs.", line)
    values: dict[str, str] = {}
    for keyword, value in zip(tokens[::2], tokens[1::2]):
        keyword = keyword.lower()
        if keyword not in keywords or keyword in values:
            raise DecodeError(f"Unexpected keyword {keyword!r}.", line)
        values[keyword] = value
    return values


def decode_option(line: str) -> Option:
    """
    Decode an option declaration.

    Examples:
        option name Ponder type check default false
        option name Hash type spin default 16 min 1 max 33554432
        option name Analysis Contempt type combo default Both var Off var White var Black var Both
        option name Clear Hash type button
        option name EvalFile type string default nn-82215d0fd0df.nnue
    """
    declaration = remainder(line, "option name ")
    type_index = declaration.lower().find(" type ")
    if type_index == -1:
        raise DecodeError("Unable to find the `type` keyword in this option.", line)

    name = declaration[:type_index]
    type_name, *tokens = declaration[type_index + len(" type "):].split(" ")
    try:
        option_type = OptionType(type_name.lower())
    except ValueError:
        raise DecodeError(f"Unknown option type {type_name!r}.", line) from None

    if option_type == OptionType.BUTTON:
        if tokens:
            raise DecodeError("A button option takes no default value.", line)
        return Option(name, option_type, raw=line)

    if not tokens or tokens[0].lower() != "default":
        raise DecodeError(f"A {option_type.value} option must declare a default.", line)
    default_clause = " ".join(tokens[1:])

    if option_type == OptionType.CHECK:
        if default_clause.lower() not in ("true", "false"):
            raise DecodeError("A check option's default must be `true` or `false`.", line)
        return Option(name, option_type, check_default=default_clause.lower() == "true", raw=line)

    if option_type == OptionType.SPIN:
        values = keyword_values(tokens, {"default", "min", "max"}, line)
        if len(values) != 3:
            raise DecodeError("A spin option must declare a default, a min and a max.", line)
        return Option(name, option_type,
                      spin_default=parse_int(values["default"], "the default", line),
                      spin_min=parse_int(values["min"], "the minimum", line),
                      spin_max=parse_int(values["max"], "the maximum", line),
                      raw=line)

    if option_type == OptionType.COMBO:
        groups: list[list[str]] = [[]]
        for token in tokens[1:]:
            if token.lower() == "var":
                groups.append([])
            else:
                groups[-1].append(token)
        default, *choices = [" ".join(group) for group in groups]
        if not default or not choices or not all(choices):
            raise DecodeError("A combo option must declare a default and at least one `var`.", line)
        return Option(name, option_type, combo_default=default, combo_values=tuple(choices), raw=line)

    return Option(name, option_type, string_default=default_clause or None, raw=line)


INFO_INTEGER_FIELDS = {"depth": "depth",
                       "seldepth": "sel_depth",
                       "multipv": "multi_pv",
                       "nodes": "nodes",
                       "nps": "nps",
                       "tbhits": "tb_hits",
                       "time": "time",
                       "hashfull": "hashfull",
                       "cpuload": "cpuload",
                       "currmovenumber": "curr_move_number"}


def decode_info(line: str) -> Info:
    """
    Decode search statistics.

    Examples:
        info depth 5 seldepth 5 multipv 1 score cp -15 nodes 825 nps 24264 tbhits 0 time 34 pv c7c5 g1f3 b8c6
        info depth 20 currmove g8f6 currmovenumber 3
    """
    tokens = remainder(line, "info ").split(" ")
    fields: dict[str, Any] = {}

    def value_at(position: int, keyword: str) -> str:
        """Return the token at `position`, which must exist because `keyword` takes a value."""
        if position >= len(tokens):
            raise DecodeError(f"`{keyword}` must be followed by a value.", line)
        return tokens[position]

    index = 0
    while index < len(tokens):
        keyword = tokens[index].lower()
        if keyword in INFO_INTEGER_FIELDS:
            fields[INFO_INTEGER_FIELDS[keyword]] = parse_int(value_at(index + 1, keyword), keyword, line)
            index += 2
        elif keyword == "currmove":
            fields["curr_move"] = value_at(index + 1, keyword)
            index += 2
        elif keyword == "score":
            score_type = value_at(index + 1, keyword).lower()
            index += 2
            if score_type == "cp":
                fields["cp_score"] = parse_int(value_at(index, "score cp"), "a centipawn score", line)
                fields["mate_score"] = None
                index += 1
                # The bound is left in place and skipped as an unrecognized keyword.
                bound = tokens[index].lower() if index < len(tokens) else ""
                fields["is_lower_bound"] = bound == "lowerbound"
                fields["is_upper_bound"] = bound == "upperbound"
            elif score_type == "mate":
                fields["mate_score"] = parse_int(value_at(index, "score mate"), "a mate score", line)
                fields["cp_score"] = None
                fields["is_lower_bound"] = fields["is_upper_bound"] = False
                index += 1
            else:
                raise DecodeError(f"Unknown score type {score_type!r}. Expected `cp` or `mate`.", line)
        elif keyword == "pv":
            fields["principal_variation"] = tuple(tokens[index + 1:])
            break
        elif keyword == "string":
            fields["string"] = " ".join(tokens[index + 1:])
            break
        else:
            index += 1

    return Info(**fields, raw=line)


def decode_unknown(line: str) -> Unknown:
    """Wrap a line that has no known keyword."""
    return Unknown(line)


DECODERS: list[tuple[str, Callable[[str], ResponseToken]]] = [("id ", decode_id),
                                                              ("uciok", decode_uciok),
                                                              ("readyok", decode_readyok),
                                                              ("bestmove ", decode_bestmove),
                                                              ("option name ", decode_option),
                                                              ("info ", decode_info)]


def decode(line: str) -> ResponseToken:
    """
    Decode one line of engine output.

    :param line: The raw line, with or without its line separator.
    :return: The token for the first keyword that the line starts with, or `Unknown`.
    :raises DecodeError: If the line starts with a known keyword but is malformed.
    """
    line = normalize(line)
    lowered = line.lower()
    for prefix, decoder in DECODERS:
        if lowered.startswith(prefix):
            return decoder(line)
    return decode_unknown(line)
