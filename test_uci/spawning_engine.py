"""An engine that starts a long-running helper process which shares its output, then answers only `isready`."""

import subprocess
import sys

helper = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
print(f"info string helper {helper.pid}", flush=True)  # noqa: T201 (print() found)

while True:
    try:
        line = input().strip()
    except EOFError:
        break
    if line == "quit":
        break
    if line == "isready":
        print("readyok", flush=True)  # noqa: T201 (print() found)
