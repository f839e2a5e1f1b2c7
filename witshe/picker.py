"""Interactive terminal picker with incremental search."""

from __future__ import annotations

import os
import select
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, TextIO

try:
    import termios
    import tty
except ImportError:  # pragma: no cover - non-POSIX platforms
    termios = None  # type: ignore[assignment]
    tty = None  # type: ignore[assignment]

MAX_VISIBLE = 8
DESC_LIMIT = 40

NEWLINE = "\r\n"
CLEAR_LINE = "\x1b[2K"
RESET = "\x1b[0m"
BOLD = "\x1b[1m"
GRAY = "\x1b[90m"
CYAN_TEXT = "\x1b[36m"
CYAN = "\x1b[38;5;14m"
DARK_CYAN = "\x1b[38;5;6m"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CURSOR_UP = "\x1b[1A"
CURSOR_DOWN = "\x1b[1B"
COLUMN_ZERO = "\x1b[1G"


class Key(Enum):
    """Non-character keys the picker reacts to."""

    UP = "up"
    DOWN = "down"
    ENTER = "enter"
    ESC = "esc"
    BACKSPACE = "backspace"
    CTRL_C = "ctrl-c"


@dataclass
class PickerItem:
    """One selectable line."""

    label: str
    hint: str = ""
    desc: str | None = None
    is_done: bool = False


@dataclass(frozen=True)
class PickResult:
    """The chosen item's index in the given list and whether it was done."""

    index: int
    is_done: bool


def filter_items(items: Sequence[PickerItem], search: str) -> list[int]:
    """Indices of items matching the search, active ones first, then done ones."""
    query = search.lower()

    def matches(item: PickerItem) -> bool:
        if not query:
            return True
        return (
            query in item.label.lower()
            or query in item.hint.lower()
            or (item.desc is not None and query in item.desc.lower())
        )

    hits = [(i, item) for i, item in enumerate(items) if matches(item)]
    active = [i for i, item in hits if not item.is_done]
    done = [i for i, item in hits if item.is_done]
    return active + done


def truncate(text: str, limit: int) -> str:
    """The text cut to at most ``limit`` characters."""
    return text if len(text) <= limit else text[:limit]


def render(
    title: str,
    items: Sequence[PickerItem],
    filtered: Sequence[int],
    selected: int,
    search: str,
) -> str:
    """The picker screen as terminal output; each line ends with CR LF."""
    out: list[str] = []

    def line(text: str = "") -> None:
        out.append(CLEAR_LINE + text + NEWLINE)

    line()
    line(f"  {BOLD}{title}{RESET}")

    if search:
        line(f"  {CYAN_TEXT}╭─ ⌕ {search}{RESET}")
    else:
        line(f"  {GRAY}╭─ ⌕ Search…{RESET}")
    line()

    if not filtered:
        suffix = " matching search" if search else ""
        line(f"  {GRAY}  no threads{suffix}{RESET}")
    else:
        in_done_section = False
        for shown, (position, idx) in enumerate(zip(range(MAX_VISIBLE), filtered)):
            item = items[idx]
            if item.is_done and not in_done_section:
                in_done_section = True
                if shown > 0:
                    line()
                    line(f"  {GRAY}  done{RESET}")

            desc_part = (
                f" {GRAY}— {truncate(item.desc, DESC_LIMIT)}{RESET}" if item.desc is not None else ""
            )
            if position == selected:
                text = f"{CYAN}  ❯ {RESET}{item.label}"
                if item.hint:
                    text += f"{DARK_CYAN} {item.hint}{RESET}"
                text += desc_part
            else:
                text = f"    {GRAY}{item.label}"
                if item.hint:
                    text += f" {item.hint}"
                text += f"{desc_part}{RESET}"
            line(text)

        if len(filtered) > MAX_VISIBLE:
            line(f"  {GRAY}  ... {len(filtered) - MAX_VISIBLE} more{RESET}")

    line()
    line(f"  {GRAY}↑↓ select · enter switch · type to search · esc quit{RESET}")
    return "".join(out)


class Picker:
    """Selection state driven by key presses."""

    def __init__(self, title: str, items: Sequence[PickerItem]):
        self.title = title
        self.items = list(items)
        self.search = ""
        self.selected = 0
        self.finished = False
        self.result: PickResult | None = None
        self.prev_lines = 0

    def filtered(self) -> list[int]:
        return filter_items(self.items, self.search)

    def handle_key(self, key: Key | str | None) -> bool:
        """Apply a key; return True if the screen should be redrawn or the pick ended."""
        if self.finished:
            return False

        if key is Key.UP:
            if self.selected > 0:
                self.selected -= 1
        elif key is Key.DOWN:
            matches = self.filtered()
            if matches and self.selected < len(matches) - 1:
                self.selected += 1
        elif key is Key.ENTER:
            matches = self.filtered()
            if self.selected < len(matches):
                idx = matches[self.selected]
                self._finish(PickResult(index=idx, is_done=self.items[idx].is_done))
                return True
        elif key is Key.ESC:
            if self.search:
                self.search = ""
                self.selected = 0
            else:
                self._finish(None)
                return True
        elif key is Key.CTRL_C:
            self._finish(None)
            return True
        elif key is Key.BACKSPACE:
            self.search = self.search[:-1]
            self.selected = 0
        elif isinstance(key, str) and key:
            self.search += key
            self.selected = 0
        else:
            return False

        matches = self.filtered()
        if matches and self.selected >= len(matches):
            self.selected = len(matches) - 1
        return True

    def _finish(self, result: PickResult | None) -> None:
        self.finished = True
        self.result = result

    def render(self) -> str:
        """The current screen; remembers how many lines it spans."""
        text = render(self.title, self.items, self.filtered(), self.selected, self.search)
        self.prev_lines = text.count(NEWLINE)
        return text


def _move_up(lines: int) -> str:
    return (CURSOR_UP + COLUMN_ZERO) * lines


def _cleanup_sequence(lines: int) -> str:
    return (
        _move_up(lines)
        + (CLEAR_LINE + CURSOR_DOWN) * (lines + 1)
        + _move_up(lines + 1)
        + COLUMN_ZERO
    )


def _pending(fd: int, timeout: float = 0.05) -> bool:
    ready, _, _ = select.select([fd], [], [], timeout)
    return bool(ready)


def _utf8_length(lead: int) -> int:
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


def _read_exact(fd: int, count: int) -> bytes:
    data = b""
    while len(data) < count:
        chunk = os.read(fd, count - len(data))
        if not chunk:
            break
        data += chunk
    return data


def _read_key(fd: int) -> Key | str | None:
    first = os.read(fd, 1)
    if not first:
        return Key.CTRL_C
    byte = first[0]

    if byte == 0x1B:
        if not _pending(fd):
            return Key.ESC
        introducer = os.read(fd, 1)
        if introducer not in (b"[", b"O"):
            return None
        final = os.read(fd, 1)
        while final and not 0x40 <= final[0] <= 0x7E:
            final = os.read(fd, 1)
        return {b"A": Key.UP, b"B": Key.DOWN}.get(final)
    if byte == 0x03:
        return Key.CTRL_C
    if byte in (0x0D, 0x0A):
        return Key.ENTER
    if byte in (0x7F, 0x08):
        return Key.BACKSPACE
    if byte < 0x20:
        return None

    data = first + _read_exact(fd, _utf8_length(byte) - 1)
    return data.decode("utf-8", errors="replace")


def _write(out: TextIO, text: str) -> None:
    out.write(text)
    out.flush()


def pick(title: str, items: Sequence[PickerItem]) -> PickResult | None:
    """Let the user choose an item on the terminal; None if cancelled or unavailable."""
    if not items or termios is None:
        return None
    try:
        fd = sys.stdin.fileno()
        saved = termios.tcgetattr(fd)
    except (termios.error, ValueError, OSError):
        return None

    out = sys.stdout
    picker = Picker(title, items)
    try:
        tty.setraw(fd)
        _write(out, HIDE_CURSOR)
        _write(out, picker.render())
        while True:
            key = _read_key(fd)
            if not picker.handle_key(key):
                continue
            if picker.finished:
                _write(out, _cleanup_sequence(picker.prev_lines))
                return picker.result
            _write(out, _move_up(picker.prev_lines) + picker.render())
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        _write(out, SHOW_CURSOR)