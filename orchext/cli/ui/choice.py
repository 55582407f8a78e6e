"""Confirmation and selection prompts used by the installer.

`TerminalConfirmer` renders prompt_toolkit dialogs; `AutoConfirmer` answers
without a terminal and backs `--confirm` and non-interactive use.
"""

from __future__ import annotations

import html
from typing import Callable, List, Optional, Protocol, Sequence

from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.shortcuts import checkboxlist_dialog, choice
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.markup import escape

Describe = Callable[[str], str]


def neutral_choice_style() -> Style:
    """Create the default neutral style for choice prompts."""
    return Style.from_dict(
        {
            "frame.border": "#7f8fa6",  # Muted blue-gray border
            "selected-option": "bold",
            "option": "#d7e3f4",
            "question": "#e8ecf5",
            "description": "#d9d9d9",
            "default": "#88c0d0",
            "dialog": "bg:#1e2430",
            "dialog.body": "bg:#1e2430 #d7e3f4",
            "checkbox-selected": "bold",
        }
    )


class Confirmer(Protocol):
    """Yes/no confirmation and multi-selection over a list of options."""

    def confirm(self, message: str, help_text: str = "") -> bool: ...

    def multi_select(
        self,
        message: str,
        options: Sequence[str],
        describe: Optional[Describe] = None,
    ) -> List[str]: ...


class TerminalConfirmer:
    """Interactive prompts rendered with prompt_toolkit."""

    def __init__(self, console: Optional[Console] = None, style: Optional[Style] = None):
        self.console = console or Console(stderr=True)
        self.style = style or neutral_choice_style()

    def confirm(self, message: str, help_text: str = "") -> bool:
        if help_text:
            self.console.print(f"[dim]{escape(help_text.rstrip())}[/dim]")
        result = choice(
            message=HTML(f"<question>{html.escape(message)}</question>"),
            options=[("yes", "Yes"), ("no", "No")],
            default="no",
            style=self.style,
        )
        return result == "yes"

    def multi_select(
        self,
        message: str,
        options: Sequence[str],
        describe: Optional[Describe] = None,
    ) -> List[str]:
        if not options:
            return []
        values = []
        for option in options:
            label = option
            if describe is not None:
                description = describe(option)
                if description:
                    label = f"{option}  ({description})"
            values.append((option, label))
        selected = checkboxlist_dialog(
            title="Extensions",
            text=message,
            values=values,
            style=self.style,
        ).run()
        # None means the dialog was cancelled.
        return list(selected or [])


class AutoConfirmer:
    """Answers every prompt with a fixed decision."""

    def __init__(self, answer: bool = True):
        self.answer = answer

    def confirm(self, message: str, help_text: str = "") -> bool:
        return self.answer

    def multi_select(
        self,
        message: str,
        options: Sequence[str],
        describe: Optional[Describe] = None,
    ) -> List[str]:
        return list(options) if self.answer else []


__all__ = ["AutoConfirmer", "Confirmer", "TerminalConfirmer", "neutral_choice_style"]
