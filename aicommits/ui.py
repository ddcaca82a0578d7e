"""Terminal selection of a generated commit message."""

from __future__ import annotations

import asyncio
import sys
from typing import Callable, Optional, TextIO

RESET = "\033[0m"
BOLD = "\033[1m"
CYAN = "\033[96m"
DIM = "\033[2m"


class TerminalSelector:
    """Ask the user to pick, edit or reject one of the candidates.

    Resolves to the chosen (possibly edited) message, or ``None`` on cancel.
    The blocking ``input`` calls run in a worker thread.
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
        color: Optional[bool] = None,
    ) -> None:
        self._input = input_fn
        self._output = output or sys.stdout
        if color is None:
            color = bool(getattr(self._output, "isatty", lambda: False)())
        self._color = color

    async def __call__(self, messages: list[str]) -> Optional[str]:
        return await asyncio.to_thread(self.select, messages)

    def _style(self, text: str, *codes: str) -> str:
        if not self._color:
            return text
        return "".join(codes) + text + RESET

    def _print(self, text: str = "") -> None:
        print(text, file=self._output)

    def select(self, messages: list[str]) -> Optional[str]:
        if not messages:
            return None
        try:
            if len(messages) == 1:
                return self._confirm_single(messages[0])
            return self._pick(messages)
        except (EOFError, KeyboardInterrupt):
            self._print()
            return None

    def _confirm_single(self, message: str) -> Optional[str]:
        self._print(self._style("Use this commit message?", BOLD))
        self._print(f"   {self._style(message, CYAN)}")
        while True:
            answer = self._input("[y]es / [e]dit / [n]o: ").strip().lower()
            if answer in {"", "y", "yes"}:
                return message
            if answer in {"e", "edit"}:
                return self._edit(message)
            if answer in {"n", "no", "q"}:
                return None

    def _pick(self, messages: list[str]) -> Optional[str]:
        self._print(self._style("Pick a commit message to use:", BOLD))
        for index, message in enumerate(messages, start=1):
            self._print(f"  {self._style(str(index), DIM)}. {message}")
        while True:
            answer = self._input(
                f"Select [1-{len(messages)}], e<N> to edit, q to cancel: "
            ).strip().lower()
            if answer in {"", "q"}:
                return None
            edit = answer.startswith("e")
            number = answer[1:] if edit else answer
            if number.isdigit() and 1 <= int(number) <= len(messages):
                chosen = messages[int(number) - 1]
                return self._edit(chosen) if edit else chosen
            self._print(f"Invalid choice: {answer}")

    def _edit(self, message: str) -> Optional[str]:
        self._print(f"Current: {message}")
        edited = self._input("New message (empty keeps current): ").strip()
        return edited or message


class AutoSelector:
    """Non-interactive selector that accepts the first candidate."""

    async def __call__(self, messages: list[str]) -> Optional[str]:
        return messages[0] if messages else None
