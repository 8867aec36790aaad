"""Terminal interaction used by the interactive credential source.

All prompting during authentication goes through a :class:`PromptSource`
so that the flow can run unattended. :class:`TerminalPrompt` talks to the
user on stderr and reads the token with :func:`getpass.getpass` (input is
hidden). :class:`NonInteractivePrompt` answers nothing, which makes the
interactive source yield no credential; it is selected by ``--no-input`` or
when stdin is not a TTY.
"""

from __future__ import annotations

import getpass
import sys
from abc import ABC, abstractmethod
from typing import Optional

import click
import typer


class PromptSource(ABC):
    """Abstract terminal: messages out, answers in."""

    @property
    def interactive(self) -> bool:
        """Whether a human can answer prompts."""
        return True

    @abstractmethod
    def message(self, text: str = "") -> None:
        """Show a line of text to the user."""

    @abstractmethod
    def ask(self, question: str) -> Optional[str]:
        """Ask a question with visible input. ``None`` when no answer is possible."""

    @abstractmethod
    def ask_secret(self, question: str) -> Optional[str]:
        """Ask for a secret with hidden input. ``None`` when no answer is possible."""


class TerminalPrompt(PromptSource):
    """Prompt the user on stderr, reading answers from stdin."""

    def message(self, text: str = "") -> None:
        typer.echo(text, err=True)

    def ask(self, question: str) -> Optional[str]:
        try:
            return typer.prompt(question, default="", show_default=False, err=True)
        except (click.exceptions.Abort, EOFError):
            return None

    def ask_secret(self, question: str) -> Optional[str]:
        try:
            return getpass.getpass(question, stream=sys.stderr)
        except EOFError:
            return None


class NonInteractivePrompt(PromptSource):
    """A prompt that never asks. Used with ``--no-input`` and without a TTY."""

    @property
    def interactive(self) -> bool:
        return False

    def message(self, text: str = "") -> None:
        pass

    def ask(self, question: str) -> Optional[str]:
        return None

    def ask_secret(self, question: str) -> Optional[str]:
        return None


def default_prompt(no_input: bool = False) -> PromptSource:
    """Return a :class:`TerminalPrompt` when stdin is a TTY and input is allowed."""
    if no_input or not sys.stdin.isatty():
        return NonInteractivePrompt()
    return TerminalPrompt()
