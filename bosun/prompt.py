"""Line-oriented interactive prompts."""

from __future__ import annotations

import getpass
import sys
from typing import IO, Optional, Sequence

__all__ = ["Cancelled", "Prompter", "is_interactive"]


class Cancelled(Exception):
    """Raised when the user cancels or interrupts input."""

    def __init__(self, message: str = "cancelled") -> None:
        super().__init__(message)


def is_interactive(stream: Optional[IO[str]] = None) -> bool:
    """Return True if the stream (stdin by default) is a terminal."""
    if stream is None:
        stream = sys.stdin
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError, OSError):
        return False


_AFFIRMATIVE = {"y", "yes"}
_NEGATIVE = {"n", "no"}


class Prompter:
    """Reads answers to prompts from a text stream.

    When the input is not interactive, prompts that have a sensible
    fallback return it; the others raise.
    """

    def __init__(
        self,
        stdin: Optional[IO[str]] = None,
        stdout: Optional[IO[str]] = None,
        interactive: Optional[bool] = None,
    ) -> None:
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self.interactive = is_interactive(self._stdin) if interactive is None else interactive

    def _require_interactive(self) -> None:
        if not self.interactive:
            raise RuntimeError("interactive input required but stdin is not a terminal")

    def _ask(self, text: str) -> str:
        self._stdout.write(text)
        self._stdout.flush()
        try:
            line = self._stdin.readline()
        except KeyboardInterrupt:
            raise Cancelled() from None
        if line == "":
            raise Cancelled()
        return line.rstrip("\r\n")

    def required(self, label: str) -> str:
        """Prompt for a value; return "" when not interactive or cancelled."""
        if not self.interactive:
            return ""
        try:
            return self._ask(f"{label}: ")
        except Cancelled:
            return ""

    def confirm(self, label: str, default: bool = False) -> bool:
        """Ask a yes/no question; an empty answer accepts the default."""
        if not self.interactive:
            return default
        hint = "[Y/n]" if default else "[y/N]"
        while True:
            answer = self._ask(f"{label} {hint} ").strip().lower()
            if not answer:
                return default
            if answer in _AFFIRMATIVE:
                return True
            if answer in _NEGATIVE:
                return False
            self._stdout.write("Please answer yes or no.\n")

    def value(self, label: str, default: str = "") -> str:
        """Prompt for a value pre-filled with a default."""
        if not self.interactive:
            return default
        suffix = f" [{default}]" if default else ""
        answer = self._ask(f"{label}{suffix}: ")
        return answer if answer else default

    def with_default(self, label: str, fallback: str) -> str:
        """Prompt with a placeholder; blank input accepts the fallback."""
        if not self.interactive:
            return fallback
        answer = self._ask(f"{label} ({fallback}): ")
        return answer if answer.strip() else fallback

    def select(self, label: str, options: Sequence[tuple[str, str]]) -> str:
        """Show numbered ``(label, value)`` options and return the chosen value."""
        self._require_interactive()
        if not options:
            raise ValueError("no options to select from")
        self._stdout.write(f"{label}\n")
        for number, (option_label, _) in enumerate(options, start=1):
            self._stdout.write(f"  {number}) {option_label}\n")
        while True:
            answer = self._ask("> ").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1][1]
            self._stdout.write(f"Enter a number between 1 and {len(options)}.\n")

    def secret(self, label: str) -> str:
        """Prompt for a value without echoing it on a real terminal."""
        self._require_interactive()
        if self._stdin is sys.stdin and is_interactive(self._stdin):
            try:
                return getpass.getpass(f"{label}: ", stream=self._stdout)
            except (EOFError, KeyboardInterrupt):
                raise Cancelled() from None
        return self._ask(f"{label}: ")