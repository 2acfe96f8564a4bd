"""Operator interaction.

`ConsolePrompter` reads from stdin; `DefaultsPrompter` answers every question with
its default so the run can be scripted (`--non-interactive`).
"""

from __future__ import annotations

import getpass
from typing import Protocol

_YES = {"y", "yes"}
_NO = {"n", "no"}


class Prompter(Protocol):
    def ask(self, question: str, default: str = "") -> str: ...

    def secret(self, question: str, default: str = "") -> str: ...

    def confirm(self, question: str, default: bool = False) -> bool: ...


class ConsolePrompter:
    """Prompt on the terminal; blank answers take the default."""

    def ask(self, question: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        answer = input(f"{question}{suffix}: ").strip()
        return answer or default

    def secret(self, question: str, default: str = "") -> str:
        suffix = " [press Enter to use the configured value]" if default else ""
        answer = getpass.getpass(f"{question}{suffix}: ").strip()
        return answer or default

    def confirm(self, question: str, default: bool = False) -> bool:
        hint = "Y/n" if default else "y/N"
        while True:
            answer = input(f"{question} ({hint}): ").strip().lower()
            if not answer:
                return default
            if answer in _YES:
                return True
            if answer in _NO:
                return False
            print("Please answer 'y' or 'n'.")


class DefaultsPrompter:
    """Answer every prompt with its default."""

    def ask(self, question: str, default: str = "") -> str:
        return default

    def secret(self, question: str, default: str = "") -> str:
        return default

    def confirm(self, question: str, default: bool = False) -> bool:
        return default