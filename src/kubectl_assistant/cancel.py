# kubectl-assistant: Cancellation token threaded through every collaborator call, armed by SIGINT for the lifetime of a run.

import contextlib
import signal
import threading
from typing import Iterator

from .errors import Cancelled


class CancelToken:
    """
    Process-wide cancellation flag for a single run.

    Collaborators check it before and after each blocking step and use wait()
    for cancellable sleeps (e.g. retry backoff).
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = "") -> None:
        if self._event.is_set():
            raise Cancelled(f"interrupted while {where}" if where else "interrupted")

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns True if the token was cancelled meanwhile."""
        return self._event.wait(seconds)


@contextlib.contextmanager
def interrupt_scope(token: CancelToken) -> Iterator[CancelToken]:
    """
    Route SIGINT to `token` for the duration of the block.

    The handler marks the token cancelled and then raises KeyboardInterrupt so the
    blocking call in progress (HTTP read, stdin read, kubectl wait) returns
    immediately. The previous handler is restored on exit.
    """
    if threading.current_thread() is not threading.main_thread():
        # signal.signal only works from the main thread
        yield token
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum, frame):
        token.cancel()
        raise KeyboardInterrupt

    signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


@contextlib.contextmanager
def suspension(token: CancelToken, what: str) -> Iterator[None]:
    """
    Wrap one suspension point: refuse to start after cancellation, convert an
    interrupt into Cancelled, and re-check the token once the step returns.
    """
    token.raise_if_cancelled(what)
    try:
        yield
    except KeyboardInterrupt:
        token.cancel()
        raise Cancelled(f"interrupted while {what}")
    token.raise_if_cancelled(what)
