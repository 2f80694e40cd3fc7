"""An engine that writes every command it receives, with the time it arrived, to the file named by its argument."""

import sys
import time

record_file = sys.argv[1]

while True:
    try:
        line = input().strip()
    except EOFError:
        break
    with open(record_file, "a") as record:
        record.write(f"{time.monotonic()} {line}\n")
    if line == "quit":
        break
    if line == "isready":
        print("readyok", flush=True)  # noqa: T201 (print() found)
