#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Gap-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import curses
import logging
from typing import Any, Dict, List, Optional, Tuple

from wcwidth import wcswidth, wcwidth

from .buffer import NEWLINE, Buffer
from .editor import Editor, EditorState

STATUS_BAR_HEIGHT = 2

_ATTRIBUTES = {
    "normal": curses.A_NORMAL,
    "bold": curses.A_BOLD,
    "dim": curses.A_DIM,
    "reverse": curses.A_REVERSE,
    "underline": curses.A_UNDERLINE,
}


def display_cell(cell: str) -> str:
    """Maps a text cell to what is drawn for it: tabs as a space, CR as nothing, other controls as '?'."""
    if cell == "\t":
        return " "
    if cell == "\r":
        return ""
    width = wcwidth(cell)
    # NUL has width 0 and curses rejects it outright
    if width < 0 or (width == 0 and not cell.isprintable()):
        return "?"
    return cell


def display_text(text: str) -> str:
    return "".join(display_cell(cell) for cell in text)


def display_width(text: str) -> int:
    """Terminal columns taken by already-sanitized text."""
    width = wcswidth(text)
    return width if width >= 0 else len(text)


def clip_to_width(text: str, max_width: int) -> str:
    """Longest prefix of `text` that fits in `max_width` terminal columns."""
    if max_width <= 0:
        return ""
    used = 0
    for index, char in enumerate(text):
        used += max(0, wcwidth(char))
        if used > max_width:
            return text[:index]
    return text


class TerminalRenderer:
    """
    Draws the focused buffer of an Editor on a curses screen.

    Layout, top to bottom: text rows with a line-number gutter, one status
    line (file name, modified flag, cursor line:column), one minibuffer line
    (prompt or last status message).
    """

    def __init__(self, stdscr: "curses.window", config: Optional[Dict[str, Any]] = None) -> None:
        self.stdscr = stdscr
        self.config = config or {}
        self.window_start = 0

        colors = self.config.get("colors", {})
        self.attrs = {
            "status": _ATTRIBUTES.get(colors.get("status", "reverse"), curses.A_REVERSE),
            "gutter": _ATTRIBUTES.get(colors.get("gutter", "dim"), curses.A_DIM),
            "selection": _ATTRIBUTES.get(colors.get("selection", "reverse"), curses.A_REVERSE),
        }

    # ───────────────────── Geometry ─────────────────────
    def text_height(self) -> int:
        height, _ = self.stdscr.getmaxyx()
        return max(1, height - STATUS_BAR_HEIGHT)

    @staticmethod
    def gutter_width(buffer: Buffer) -> int:
        return max(2, len(str(buffer.line_count()))) + 1

    def update_window(self, buffer: Buffer) -> bool:
        """
        Scrolls by half a window whenever the cursor line leaves the visible rows.

        Returns:
            bool: True if `window_start` changed.
        """
        old_window_start = self.window_start
        line, _ = buffer.cursor_position()
        window_height = self.text_height()
        half = max(1, window_height // 2)

        while line <= self.window_start:
            self.window_start = max(0, self.window_start - half)
        while line > self.window_start + window_height:
            self.window_start += half

        if old_window_start != self.window_start:
            logging.info(f"window start updated from {old_window_start} to {self.window_start}")
            return True
        return False

    # ───────────────────── Content hooks ─────────────────────
    def visible_lines(self, buffer: Buffer) -> List[str]:
        return buffer.text_lines()

    def selection_span(self, buffer: Buffer) -> Optional[Tuple[Tuple[int, int], Tuple[int, int]]]:
        return buffer.get_selection()

    def cursor_cells(self, buffer: Buffer, lines: List[str], line: int, column: int) -> int:
        """Screen columns between the gutter and the cursor."""
        return display_width(display_text(lines[line - 1][:column - 1]))

    def status_right(self, buffer: Buffer) -> str:
        line, column = buffer.cursor_position()
        return f" {line}:{column} "

    # ───────────────────── Drawing ─────────────────────
    def render(self, editor: Editor) -> None:
        """Redraws the whole screen."""
        try:
            buffer = editor.focused_buffer()
            _, width = self.stdscr.getmaxyx()
            self.update_window(buffer)
            self.stdscr.erase()

            lines = self.visible_lines(buffer)
            gutter = self.gutter_width(buffer)
            selection = self.selection_span(buffer)
            shown = lines[self.window_start:self.window_start + self.text_height()]

            for row, line_text in enumerate(shown):
                line_number = self.window_start + row + 1
                self.stdscr.addnstr(row, 0, str(line_number).rjust(gutter - 1), gutter - 1, self.attrs["gutter"])
                self._draw_line(row, gutter, width - gutter - 1, line_number, line_text, selection)

            self.render_status_line(editor)
            self.render_minibuffer(editor)
            self.render_cursor(editor)
            self.stdscr.refresh()
        except curses.error as e:
            logging.error(f"Curses error in TerminalRenderer.render(): {e}", exc_info=True)

    def _draw_line(
            self,
            row: int,
            x: int,
            max_width: int,
            line_number: int,
            line_text: str,
            selection: Optional[Tuple[Tuple[int, int], Tuple[int, int]]],
    ) -> None:
        visible = clip_to_width(display_text(line_text), max_width)
        if visible:
            self.stdscr.addstr(row, x, visible)

        if selection is None:
            return
        (start_line, start_col), (end_line, end_col) = selection
        if not start_line <= line_number <= end_line:
            return

        first = start_col if line_number == start_line else 1
        last = end_col if line_number == end_line else len(line_text) + 1
        if last <= first:
            return
        before = display_width(display_text(line_text[:first - 1]))
        selected = clip_to_width(display_text(line_text[first - 1:last - 1]), max_width - before)
        if selected:
            self.stdscr.addstr(row, x + before, selected, self.attrs["selection"])

    def render_status_line(self, editor: Editor) -> None:
        height, width = self.stdscr.getmaxyx()
        buffer = editor.focused_buffer()
        y = max(0, height - STATUS_BAR_HEIGHT)

        file_name = buffer.path or "[No Name]"
        if buffer.modified:
            file_name += "[+]"
        left = f" {file_name} "
        right = self.status_right(buffer)

        usable = max(0, width - 1)
        fill = max(0, usable - display_width(left) - display_width(right))
        status = clip_to_width(left + " " * fill + right, usable)
        self.stdscr.addnstr(y, 0, status.ljust(usable), usable, self.attrs["status"])

    def render_minibuffer(self, editor: Editor) -> None:
        height, width = self.stdscr.getmaxyx()
        y = height - 1
        self.stdscr.move(y, 0)
        self.stdscr.clrtoeol()

        if editor.state is EditorState.PROMPT_RESPONSE:
            message = f"{editor.prompt_message}: {display_text(editor.minibuffer.text())}"
            self.stdscr.addnstr(y, 0, message, max(0, width - 1))
        elif editor.status_message:
            self.stdscr.addnstr(y, 0, editor.status_message, max(0, width - 1), self.attrs["gutter"])

    def render_cursor(self, editor: Editor) -> None:
        height, width = self.stdscr.getmaxyx()

        if editor.state is EditorState.PROMPT_RESPONSE:
            _, column = editor.minibuffer.cursor_position()
            typed = display_text(editor.minibuffer.text()[:column - 1])
            x = display_width(f"{editor.prompt_message}: ") + display_width(typed)
            self.stdscr.move(height - 1, min(x, max(0, width - 1)))
            return

        buffer = editor.focused_buffer()
        line, column = buffer.cursor_position()
        lines = self.visible_lines(buffer)
        y = line - 1 - self.window_start
        x = self.gutter_width(buffer) + self.cursor_cells(buffer, lines, line, column)
        self.stdscr.move(max(0, min(y, self.text_height() - 1)), min(x, max(0, width - 1)))


class DebugRenderer(TerminalRenderer):
    """
    Shows the raw gap buffer storage instead of the text: gap cells as `_`,
    the cursor as `|`, and the storage counters on the status line.
    """

    def visible_lines(self, buffer: Buffer) -> List[str]:
        return buffer.debug_view().split(NEWLINE)

    def selection_span(self, buffer: Buffer) -> None:
        return None

    def cursor_cells(self, buffer: Buffer, lines: List[str], line: int, column: int) -> int:
        # Distance in raw cells from the last stored newline; gap cells count too.
        start = 0
        for index in range(buffer.cursor_offset - 1, -1, -1):
            if buffer.gap_start <= index < buffer.gap_end:
                continue
            if buffer.data[index] == NEWLINE:
                start = index + 1
                break
        return buffer.cursor_offset - start

    def status_right(self, buffer: Buffer) -> str:
        line, column = buffer.cursor_position()
        return (f" cap={buffer.capacity} gap={buffer.gap_start}+{buffer.gap_len}"
                f" cur={buffer.cursor_offset} {line}:{column} ")
