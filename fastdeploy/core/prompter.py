"""Terminal input/output port used by the interactive flows."""
from abc import ABC, abstractmethod
from typing import Dict, Optional, TypeVar

import typer
from rich.console import Console

T = TypeVar("T")


class Prompter(ABC):
    """Reads answers and shows messages.

    Subclasses implement ask() and say(); everything else builds on them.
    """

    @abstractmethod
    def ask(self, text: str, secret: bool = False) -> str:
        """Read one answer; secret hides the input."""
        pass

    @abstractmethod
    def say(self, message: str, style: Optional[str] = None) -> None:
        """Show one message, optionally styled."""
        pass

    def error(self, message: str) -> None:
        self.say(message, style="red")

    def choose(self, text: str, choices: Dict[str, T], default: str) -> T:
        """Ask until the answer is one of the choice keys (case-insensitive).

        Args:
            text: Prompt text, including the accepted answers
            choices: Lower-case answers mapped to results
            default: Key used when the answer is empty
        """
        while True:
            answer = self.ask(text).strip().lower() or default
            if answer in choices:
                return choices[answer]
            accepted = ", ".join(f"'{key}'" for key in choices)
            self.error(f"Invalid input. Please enter one of {accepted}.")

    def confirm(self, text: str) -> bool:
        """Yes/no question defaulting to no."""
        return self.ask(f"{text} [y/N]").strip().lower() in ("y", "yes")


class ConsolePrompter(Prompter):
    """Prompter backed by typer prompts and a rich console."""

    def __init__(self, console: Console):
        self.console = console

    def ask(self, text: str, secret: bool = False) -> str:
        return typer.prompt(text, default="", show_default=False, hide_input=secret)

    def say(self, message: str, style: Optional[str] = None) -> None:
        self.console.print(message, style=style, markup=False, highlight=False)
