"""An engine that identifies itself and then exits without waiting for any commands."""

print("id name Crasher", flush=True)  # noqa: T201 (print() found)
