"""Delayed cancellation helpers."""

from __future__ import annotations

import threading
from typing import Callable

_POLL_INTERVAL = 0.01


def with_delay(
    done: threading.Event, delay: float
) -> tuple[threading.Event, Callable[[], None]]:
    """Return an event set `delay` seconds after `done` is set, and a cancel function.

    Calling the cancel function sets the returned event at once.
    """
    ctx = threading.Event()

    def cancel() -> None:
        ctx.set()

    def watch() -> None:
        while not ctx.is_set():
            if done.wait(_POLL_INTERVAL):
                if not ctx.wait(delay):
                    ctx.set()
                return

    threading.Thread(target=watch, name="with-delay", daemon=True).start()
    return ctx, cancel