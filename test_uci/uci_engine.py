"""An engine that mimics a UCI engine for testing engine sessions."""

import sys
import chess

WELCOME_MESSAGE = "UCI_Test_Engine 1.0 by uci-protocol-devs"
OPTIONS = ["option name Ponder type check default false",
           "option name Hash type spin default 16 min 1 max 1024",
           "option name Style type combo default Normal var Solid var Normal var Risky",
           "option name Clear Hash type button",
           "option name Debug Log File type string default"]

arguments = sys.argv[1:]


def send_command(command: str) -> None:
    """Send UCI responses to the session without output buffering."""
    print(command, flush=True)  # noqa: T201 (print() found)


def search(board: chess.Board) -> str:
    """Choose the first legal move in UCI order, and the reply to ponder on."""
    move = min(board.legal_moves, key=chess.Move.uci)
    board.push(move)
    replies = sorted(board.legal_moves, key=chess.Move.uci)
    board.pop()
    send_command(f"info depth 1 seldepth 1 multipv 1 score cp 20 nodes 20 nps 20000 tbhits 0 time 1 pv {move}")
    return f"bestmove {move} ponder {replies[0]}" if replies else f"bestmove {move}"


if "--banner" in arguments:
    send_command(WELCOME_MESSAGE)

board = chess.Board()
searching = False
while True:
    try:
        line = input()
    except EOFError:
        break
    if not line.strip():
        continue
    command, *remaining = line.split()
    if command == "quit":
        break
    elif command == "uci":
        send_command("id name UCI_Test_Engine")
        send_command("id author uci-protocol-devs")
        for option in OPTIONS:
            send_command(option)
        send_command("uciok")
    elif command == "isready":
        if "--garbled" in arguments:
            send_command("bestmove xx")
        send_command("readyok")
    elif command == "ucinewgame":
        board = chess.Board()
    elif command == "setoption":
        send_command(f"info string {line}")
    elif command == "position":
        spec_type, *remaining = remaining
        if spec_type == "startpos":
            board = chess.Board()
        else:
            assert spec_type == "fen"
            fen_fields = []
            while remaining and remaining[0] != "moves":
                fen_fields.append(remaining.pop(0))
            board = chess.Board(" ".join(fen_fields))
        if remaining:
            moves_label, *move_list = remaining
            assert moves_label == "moves"
            for move in move_list:
                board.push_uci(move)
    elif command == "go":
        if remaining == ["infinite"]:
            searching = True
        else:
            send_command(search(board))
    elif command == "stop":
        if searching:
            searching = False
            send_command(search(board))
