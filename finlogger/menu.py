"""Numbered command menus driven from a console."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from finlogger.conio import NL, Console

MAX_COMMAND_LENGTH = 64
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


@dataclass(frozen=True)
class MenuItem:
    """A menu entry: a non-zero command number with an action or a submenu."""

    cmd: int
    name: str
    action: Optional[Callable[[], object]] = None
    submenu: Optional[Sequence["MenuItem"]] = None

    def __post_init__(self) -> None:
        if self.cmd == 0:
            raise ValueError("menu command numbers must be non-zero")
        if (self.action is None) == (self.submenu is None):
            raise ValueError("a menu item needs exactly one of action or submenu")

    @property
    def is_submenu(self) -> bool:
        return self.submenu is not None


def find_command(text: str, menu: Sequence[MenuItem]) -> Optional[MenuItem]:
    """Find the item whose number leads ``text``; None if there is none."""
    value = _atoi(text)
    if value == 0:
        return None
    return next((item for item in menu if item.cmd == value), None)


def display_menu(menu: Sequence[MenuItem], console: Console) -> None:
    """Print each item's number and name."""
    for item in menu:
        console.printf("%6d: %s" + NL, item.cmd, item.name)


def execute_menu(menu: Sequence[MenuItem], console: Console) -> None:
    """Run ``menu`` until the user enters ``q`` or input runs out.

    ``?`` shows the menu again; a submenu runs until it is left, after which
    this menu is shown again.
    """
    display_menu(menu, console)
    console.printf(NL)
    while True:
        console.printf(">")
        try:
            line = console.getline(MAX_COMMAND_LENGTH)
        except EOFError:
            console.printf(NL)
            return
        if not line:
            continue
        if line[0] == "q":
            console.printf(NL)
            return
        if line[0] == "?":
            display_menu(menu, console)
            console.printf(NL)
            continue
        item = find_command(line, menu)
        if item is None:
            console.printf("Unknown command" + NL)
            display_menu(menu, console)
            continue
        if item.is_submenu:
            execute_menu(item.submenu, console)
            display_menu(menu, console)
        else:
            item.action()
            console.printf(NL)