"""Colored console output for the chaos CLI."""

import os
import sys
from typing import Callable, Optional

from colorama import Fore, Style


def _is_truthy_env(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Console:
    """Prints tagged, colored status lines ([OK], [WARN], [ERROR], ...)."""

    def __init__(self, no_color: bool = False, stream=None):
        self.no_color = no_color or "NO_COLOR" in os.environ or _is_truthy_env(os.getenv("CHAOS_NO_COLOR"))
        self.stream = stream

    def _out(self):
        return self.stream or sys.stdout

    def _err(self):
        return self.stream or sys.stderr

    def _paint(self, text: str, color: str = "", bright: bool = False) -> str:
        if self.no_color:
            return text
        style = Style.BRIGHT if bright else ""
        return f"{style}{color}{text}{Style.RESET_ALL}"

    def success(self, message: str):
        print(self._paint(f"[OK] {message}", Fore.GREEN, bright=True), file=self._out())

    def error(self, message: str):
        print(self._paint(f"[ERROR] {message}", Fore.RED, bright=True), file=self._err())

    def warn(self, message: str):
        print(self._paint(f"[WARN] {message}", Fore.YELLOW, bright=True), file=self._out())

    def info(self, message: str):
        print(self._paint(f"[INFO] {message}", Fore.BLUE), file=self._out())

    def tip(self, message: str):
        print(self._paint(f"[TIP] {message}", Fore.CYAN), file=self._out())

    def step(self, message: str):
        print(self._paint(f"[STEP] {message}", Fore.MAGENTA), file=self._out())

    def log(self, message: str = ""):
        print(message, file=self._out())

    def title(self, message: str):
        print(file=self._out())
        print(self._paint(message, Fore.CYAN, bright=True), file=self._out())
        print(self._paint("-" * len(message), Fore.CYAN), file=self._out())

    def divider(self):
        print(self._paint("-" * 60, Style.DIM), file=self._out())

    def code(self, text: str):
        print(self._paint(text, Style.DIM), file=self._out())

    def list_item(self, message: str, indent: int = 0):
        bullet = self._paint("*", Fore.CYAN)
        print(f"{'  ' * indent}{bullet} {message}", file=self._out())

    def box(self, message: str, kind: str = "info"):
        """Print `message` inside an ASCII frame colored by kind."""
        colors = {"success": Fore.GREEN, "error": Fore.RED, "warn": Fore.YELLOW}
        color = colors.get(kind, Fore.BLUE)

        lines = message.split("\n")
        width = max(len(line) for line in lines)
        border = "-" * (width + 4)

        print(self._paint(f"+{border}+", color), file=self._out())
        for line in lines:
            print(self._paint(f"|  {line.ljust(width)}  |", color), file=self._out())
        print(self._paint(f"+{border}+", color), file=self._out())

    def confirm(self, message: str, input_func: Callable[[str], str] = input) -> bool:
        """Ask a yes/no question. EOF or Ctrl+C count as no."""
        prompt = self._paint(f"[?] {message} (y/n): ", Fore.YELLOW)
        try:
            answer = input_func(prompt)
        except (EOFError, KeyboardInterrupt):
            print(file=self._out())
            return False
        return answer.strip().lower() in {"y", "yes"}
