# kubectl-assistant: Console I/O and debug logging wrapper, rendered through rich so the spinner and prompts share one console.

import contextlib
import sys
from typing import Iterator, Optional

from rich.console import Console

# Same charset as the kubectl spinner most users know (⣾⣽⣻⢿⡿⣟⣯⣷).
SPINNER = "dots2"


class Context:
    """
    Thin wrapper around console I/O and logging used by the assistant.

    This abstraction exists to decouple direct stdout/stderr usage from the
    session logic, and to let tests substitute captured consoles.
    """

    def __init__(
        self,
        debug: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ) -> None:
        self.debug = debug
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.err_console = err_console or Console(stderr=True, highlight=False, soft_wrap=True)

    def send_to_user(self, message: str) -> None:
        """Send a user-facing message to stdout."""
        self.console.print(message, markup=False)

    def emit_raw(self, text: str) -> None:
        """Write text verbatim to stdout, bypassing rich rendering (raw mode)."""
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        sys.stdout.flush()

    def log(self, message: str) -> None:
        """Emit a debug line to stderr when debug logging is enabled."""
        if self.debug:
            self.err_console.print(f"[DEBUG] {message}", markup=False)

    def error_message(self, message: str) -> None:
        """Print an error message to stderr."""
        self.err_console.print(f"Error: {message}", markup=False)

    @contextlib.contextmanager
    def progress(self, message: str = "Processing...", enabled: bool = True) -> Iterator[None]:
        """
        Show a spinner for the duration of the block.

        The spinner is stopped on every exit path, including exceptions, before
        control returns to the caller.
        """
        if not enabled:
            yield
            return
        with self.console.status(message, spinner=SPINNER):
            yield
