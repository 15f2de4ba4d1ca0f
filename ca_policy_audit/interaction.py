"""
Operator interaction — menu commands and export targets as typed values.
The orchestrator only sees Command and ExportTarget; text parsing stays here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, Sequence


class Command(Enum):
    SHOW_TERMINAL = "show"
    GENERATE_REPORT = "report"
    EXPORT_JSON = "export"
    QUIT = "quit"


@dataclass(frozen=True)
class ExportTarget:
    """Operator's export choice: all, back, or a 1-based policy number."""
    kind: str                       # "all", "back" or "index"
    number: Optional[int] = None

    @classmethod
    def all(cls) -> "ExportTarget":
        return cls("all")

    @classmethod
    def back(cls) -> "ExportTarget":
        return cls("back")

    @classmethod
    def index(cls, number: int) -> "ExportTarget":
        return cls("index", number)


class Operator(Protocol):
    def select_mode(self) -> Command: ...

    def select_export_target(self, policy_names: Sequence[str]) -> ExportTarget: ...

    def confirm_continue(self) -> bool: ...


_MENU = """
  1) Show policies in the terminal
  2) Generate HTML report
  3) Export policies to JSON
  Q) Quit
"""

_MENU_KEYS = {
    "1": Command.SHOW_TERMINAL,
    "2": Command.GENERATE_REPORT,
    "3": Command.EXPORT_JSON,
    "q": Command.QUIT,
}


class ConsoleOperator:
    """Operator backed by input()/print(); unknown answers re-prompt."""

    def __init__(self, prompt: Callable[[str], str] = input, echo: Callable[..., None] = print):
        self._prompt = prompt
        self._echo = echo

    def select_mode(self) -> Command:
        while True:
            self._echo(_MENU)
            choice = self._prompt("  Select an option: ").strip().lower()
            if choice in _MENU_KEYS:
                return _MENU_KEYS[choice]
            self._echo(f"  ❌ Unknown option '{choice}'.")

    def select_export_target(self, policy_names: Sequence[str]) -> ExportTarget:
        while True:
            self._echo("\n  Policies available for export:")
            for number, name in enumerate(policy_names, 1):
                self._echo(f"   {number:>3}) {name}")
            self._echo("     A) All policies\n     B) Back")
            choice = self._prompt("  Select a policy: ").strip().lower()
            if choice == "a":
                return ExportTarget.all()
            if choice == "b":
                return ExportTarget.back()
            if choice.isdigit():
                # Range checking belongs to the exporter
                return ExportTarget.index(int(choice))
            self._echo(f"  ❌ Unknown option '{choice}'.")

    def confirm_continue(self) -> bool:
        while True:
            choice = self._prompt("\n  Continue? (y/n): ").strip().lower()
            if choice in ("y", "yes"):
                return True
            if choice in ("n", "no"):
                return False
