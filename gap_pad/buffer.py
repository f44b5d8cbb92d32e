#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Gap-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Gap buffer text store with cursor, text-object navigation and selection.

The buffer keeps its text in a single list of one-character cells with one
contiguous unused region (the *gap*). Edits happen at the gap, so the gap is
moved to the cursor before every insertion or deletion. Two coordinate systems
are in play throughout this module:

- **physical** offsets index the raw storage list, gap included;
- **logical** offsets index the text the user sees, gap excluded.

Navigation deltas are always computed over logical text and translated back to
physical storage offsets at the end.
"""

import logging
import string
from enum import Enum
from typing import List, Optional, Tuple, Union

logger = logging.getLogger("gap_pad.buffer")

INITIAL_CAPACITY = 10
GROWTH_INCREMENT = 10
DEFAULT_CELL = "\0"
NEWLINE = "\n"

# Markers used by debug_view()
GAP_MARK = "_"
CURSOR_MARK = "|"

# Whitespace and punctuation end a word; underscore is part of identifiers.
WORD_BOUNDARIES = frozenset(string.whitespace + string.punctuation.replace("_", ""))

Position = Tuple[int, int]


class InvariantViolation(RuntimeError):
    """
    Raised when the physical and logical views of a Buffer can no longer be
    reconciled (cursor inside the gap, column math on a misaligned gap, growth
    with a non-empty gap, gap running past the end of storage).

    This is a programming error inside the engine, never a user-facing
    condition. Boundary conditions (moving left at the start of the text,
    deleting past the end) are clamped silently and never raise.
    """


class TextObject(Enum):
    CHAR = "char"
    WORD = "word"
    LINE = "line"


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class Buffer:
    """
    A mutable, cursor-addressed text store built on a gap buffer.

    Attributes:
        data (List[str]): Physical storage, one character per cell.
        gap_start (int): Physical index where the gap begins.
        gap_len (int): Number of cells in the gap.
        cursor_offset (int): Physical cursor index, never strictly inside the gap.
        modified (bool): Set by every mutating operation. Cleared by the save collaborator.
        path (Optional[str]): Location the buffer was loaded from or saved to.
        mark (Optional[Tuple[int, int]]): Selection anchor as a 1-based (line, column).
        clipboard (Optional[str]): Text captured by the last copy.

    Example:
        >>> buf = Buffer()
        >>> buf.insert_text("foo bar")
        >>> buf.go(TextObject.WORD, Direction.LEFT)
        -3
        >>> buf.cursor_position()
        (1, 5)
        >>> buf.text()
        'foo bar'
    """

    def __init__(
            self,
            initial: Optional[Union[bytes, bytearray, str]] = None,
            path: Optional[str] = None,
            *,
            capacity: int = INITIAL_CAPACITY,
            growth: int = GROWTH_INCREMENT,
    ) -> None:
        """
        Creates a buffer, either empty or holding `initial` as its text.

        Args:
            initial: Initial content. `bytes` are taken one cell per byte
                (each byte maps to the code point of the same value, so the
                mapping is lossless); a `str` is taken one cell per code point.
                `None` creates an empty buffer whose gap spans the whole storage.
            path: Optional location identifier kept for the save collaborator.
            capacity: Storage size of an empty buffer.
            growth: Number of cells added to the storage each time the gap runs out.

        Raises:
            ValueError: If `capacity` is negative or `growth` is not positive.
        """
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        if growth < 1:
            raise ValueError(f"growth must be >= 1, got {growth}")

        self.path = path
        self.modified = False
        self.mark: Optional[Position] = None
        self.clipboard: Optional[str] = None

        self._initial_capacity = capacity
        self._growth = growth
        self._reset_storage(initial)

    @classmethod
    def new(cls, initial_bytes: Optional[bytes] = None, **kwargs) -> "Buffer":
        """Builds a buffer from raw bytes, one cell per byte, or an empty one."""
        return cls(initial_bytes, **kwargs)

    def _reset_storage(self, initial: Optional[Union[bytes, bytearray, str]]) -> None:
        if initial is None:
            self.data: List[str] = [DEFAULT_CELL] * self._initial_capacity
            self.gap_start = 0
            self.gap_len = self._initial_capacity
        else:
            if isinstance(initial, (bytes, bytearray)):
                initial = bytes(initial).decode("latin-1")
            self.data = list(initial)
            self.gap_start = 0
            self.gap_len = 0
        self.cursor_offset = 0

    def __len__(self) -> int:
        return len(self.data) - self.gap_len

    def __repr__(self) -> str:
        return (f"Buffer(capacity={self.capacity}, gap_start={self.gap_start}, "
                f"gap_len={self.gap_len}, cursor_offset={self.cursor_offset}, "
                f"modified={self.modified}, path={self.path!r})")

    @property
    def capacity(self) -> int:
        return len(self.data)

    @property
    def gap_end(self) -> int:
        return self.gap_start + self.gap_len

    @property
    def is_selecting(self) -> bool:
        return self.mark is not None

    # ───────────────────── Invariants ─────────────────────
    def check_invariants(self) -> None:
        """
        Verifies the storage invariants that must hold after every public operation.

        Raises:
            InvariantViolation: If the gap overruns the storage or the cursor
                sits strictly inside the gap or outside the storage.
        """
        if self.gap_start < 0 or self.gap_len < 0 or self.gap_end > self.capacity:
            raise self._violation(
                f"gap [{self.gap_start}, {self.gap_end}) does not fit in capacity {self.capacity}")
        if not 0 <= self.cursor_offset <= self.capacity:
            raise self._violation(
                f"cursor {self.cursor_offset} outside storage of capacity {self.capacity}")
        if self.gap_start < self.cursor_offset < self.gap_end:
            raise self._violation(
                f"cursor {self.cursor_offset} inside gap [{self.gap_start}, {self.gap_end})")

    def _violation(self, message: str) -> InvariantViolation:
        logger.critical("Buffer invariant violated: %s (%r)", message, self)
        return InvariantViolation(message)

    # ───────────────────── Offset mapping ─────────────────────
    def logical_offset(self, physical: int) -> int:
        """
        Converts a physical storage index into a logical text offset.

        Raises:
            InvariantViolation: If `physical` lies strictly inside the gap.
        """
        if physical <= self.gap_start:
            return physical
        if physical < self.gap_end:
            raise self._violation(
                f"physical offset {physical} inside gap [{self.gap_start}, {self.gap_end})")
        return physical - self.gap_len

    def physical_offset(self, logical: int) -> int:
        """
        Converts a logical text offset into a physical storage index.

        An offset equal to `gap_start` maps to `gap_start` itself, never to the
        trailing edge of the gap, and anything past it lands across the gap.
        """
        if not 0 <= logical <= len(self):
            raise ValueError(f"logical offset {logical} outside text of length {len(self)}")
        if logical <= self.gap_start:
            return logical
        return logical + self.gap_len

    def logical_cursor(self) -> int:
        return self.logical_offset(self.cursor_offset)

    # ───────────────────── Gap alignment & growth ─────────────────────
    def align_gap(self) -> None:
        """
        Moves the gap so that it starts at the cursor.

        Only the text between the cursor and the gap is shifted, as one block
        move across the gap:

        - cursor before the gap: `[cursor, gap_start)` moves right by `gap_len`;
        - cursor after the gap: `[gap_end, cursor)` moves left by `gap_len` and
          the cursor follows it to the new `gap_start`.

        Slice assignment copies its right-hand side first, so the overlapping
        source and destination ranges are safe.

        Raises:
            InvariantViolation: If the cursor is inside the gap on entry.
        """
        self.check_invariants()
        cursor = self.cursor_offset
        if cursor == self.gap_start:
            return

        if cursor < self.gap_start:
            self.data[cursor + self.gap_len:self.gap_end] = self.data[cursor:self.gap_start]
            self.gap_start = cursor
        else:
            self.data[self.gap_start:cursor - self.gap_len] = self.data[self.gap_end:cursor]
            self.gap_start = cursor - self.gap_len
            self.cursor_offset = self.gap_start

        if self.cursor_offset != self.gap_start:
            raise self._violation("gap not aligned with cursor after align_gap()")

    def grow(self) -> None:
        """
        Expands the storage by the growth increment, opening a new gap at the cursor.

        The text right of the gap is moved to the high end of the new storage,
        so the gap keeps its start and becomes `growth` cells long.

        Raises:
            InvariantViolation: If the gap is not empty or not aligned with the cursor.
        """
        if self.gap_len != 0:
            raise self._violation(f"grow() called with non-empty gap of {self.gap_len} cells")
        if self.cursor_offset != self.gap_start:
            raise self._violation("grow() called with gap misaligned from cursor")

        old_capacity = self.capacity
        right_count = old_capacity - self.gap_start
        new_data = self.data + [DEFAULT_CELL] * self._growth

        new_gap_end = self.gap_start + self._growth
        new_data[new_gap_end:new_gap_end + right_count] = new_data[self.gap_start:old_capacity]
        new_data[self.gap_start:new_gap_end] = [DEFAULT_CELL] * self._growth

        self.data = new_data
        self.gap_len = self._growth
        logger.debug("Buffer grown from %d to %d cells (gap at %d)", old_capacity, self.capacity, self.gap_start)

    # ───────────────────── Character edits ─────────────────────
    def insert(self, cell: str) -> None:
        """
        Inserts one character at the cursor and moves the cursor past it.

        Raises:
            ValueError: If `cell` is not exactly one character.
        """
        if not isinstance(cell, str) or len(cell) != 1:
            raise ValueError(f"insert() expects a single character, got {cell!r}")

        self.align_gap()
        if self.gap_len == 0:
            self.grow()

        self.data[self.gap_start] = cell
        self.gap_start += 1
        self.gap_len -= 1
        self.cursor_offset += 1
        self.modified = True

    def insert_text(self, text: str) -> None:
        for cell in text:
            self.insert(cell)

    def delete_forward(self) -> bool:
        """Absorbs the character after the cursor into the gap. No-op at the end of the text."""
        if self.logical_cursor() >= len(self):
            return False
        self.align_gap()
        self.gap_len += 1
        self.modified = True
        return True

    def delete_backward(self) -> bool:
        """Absorbs the character before the cursor into the gap. No-op at the start of the text."""
        if self.logical_cursor() == 0:
            return False
        self.align_gap()
        self.cursor_offset -= 1
        self.gap_start -= 1
        self.gap_len += 1
        self.modified = True
        return True

    # ───────────────────── Text views ─────────────────────
    def text(self) -> str:
        return "".join(self.data[:self.gap_start]) + "".join(self.data[self.gap_end:])

    def text_lines(self) -> List[str]:
        return self.text().split(NEWLINE)

    def line_count(self) -> int:
        return self.text().count(NEWLINE) + 1

    # ───────────────────── Positions ─────────────────────
    def cursor_position(self) -> Position:
        """
        Returns the cursor as a 1-based (line, column) pair.

        The gap is aligned first: the text before the cursor is then exactly the
        storage before `gap_start`, which is what the column math scans.
        """
        self.align_gap()
        return self._aligned_cursor_position()

    def _aligned_cursor_position(self) -> Position:
        if self.cursor_offset != self.gap_start:
            raise self._violation(
                f"column requested with cursor {self.cursor_offset} away from gap start {self.gap_start}")
        head = "".join(self.data[:self.gap_start])
        line = head.count(NEWLINE) + 1
        column = len(head) - head.rfind(NEWLINE)
        return line, column

    def position_of(self, offset: int) -> Position:
        """1-based (line, column) of an arbitrary logical offset."""
        head = self.text()[:offset]
        return head.count(NEWLINE) + 1, len(head) - head.rfind(NEWLINE)

    def offset_of(self, line: int, column: int) -> int:
        """
        Resolves a 1-based (line, column) pair to a logical offset.

        Positions beyond the text are clamped: the line to the last line and
        the column to one past the last character of that line.
        """
        lines = self.text_lines()
        line = max(1, min(line, len(lines)))
        start = sum(len(previous) + 1 for previous in lines[:line - 1])
        column = max(1, min(column, len(lines[line - 1]) + 1))
        return start + column - 1

    # ───────────────────── Text-object navigation ─────────────────────
    def get_object_offset(self, obj: TextObject, direction: Direction) -> int:
        """
        Computes how far a text object extends from the cursor.

        The result is a signed *logical* delta: negative values point towards
        the start of the text. Callers clamp it to the text bounds.

        Args:
            obj: Character, word or line.
            direction: Direction to measure in. Characters and words only
                measure left and right; up and down give 0 for them.

        Returns:
            int: The signed number of cells spanned.
        """
        if obj is TextObject.CHAR:
            if direction is Direction.LEFT:
                return -1
            if direction is Direction.RIGHT:
                return 1
            return 0
        if obj is TextObject.WORD:
            return self._word_offset(direction)
        if obj is TextObject.LINE:
            return self._line_offset(direction)
        raise ValueError(f"Unknown text object: {obj!r}")

    def _word_offset(self, direction: Direction) -> int:
        text = self.text()
        start = self.logical_cursor()
        index = start

        if direction is Direction.RIGHT:
            # rest of the current word, then the separators up to the next one
            while index < len(text) and text[index] not in WORD_BOUNDARIES:
                index += 1
            while index < len(text) and text[index] in WORD_BOUNDARIES:
                index += 1
        elif direction is Direction.LEFT:
            # scanning looks one cell back, so the end of the text needs no special case
            while index > 0 and text[index - 1] in WORD_BOUNDARIES:
                index -= 1
            while index > 0 and text[index - 1] not in WORD_BOUNDARIES:
                index -= 1

        return index - start

    def _line_offset(self, direction: Direction) -> int:
        line, column = self.cursor_position()
        lines = self.text_lines()
        length = len(lines[line - 1])

        if direction is Direction.LEFT:
            return -(column - 1)
        if direction is Direction.RIGHT:
            return length + 1 - column
        if direction is Direction.UP:
            if line == 1:
                return 0
            above = len(lines[line - 2])
            target = min(column, above + 1)
            # back to column 1, over the newline, then forward on the line above
            return -(column - 1) - 1 - above + (target - 1)
        if direction is Direction.DOWN:
            if line == len(lines):
                return 0
            below = len(lines[line])
            target = min(column, below + 1)
            return (length + 1 - column) + 1 + (target - 1)
        raise ValueError(f"Unknown direction: {direction!r}")

    def go(self, obj: TextObject, direction: Direction) -> int:
        """
        Moves the cursor by one text object.

        The delta is clamped to the text bounds in logical space and the result
        mapped back to storage, so the cursor never rests inside the gap or on
        its trailing edge.

        Returns:
            int: The logical distance actually moved.
        """
        delta = self.get_object_offset(obj, direction)
        current = self.logical_cursor()
        target = max(0, min(current + delta, len(self)))
        self.cursor_offset = self.physical_offset(target)
        self.check_invariants()
        return target - current

    def delete(self, obj: TextObject, direction: Direction) -> int:
        """
        Deletes one text object next to the cursor.

        The object's extent is clamped so deletion never runs past either end
        of the text, then removed one character at a time.

        Returns:
            int: Signed number of characters removed (negative when deleting backwards).
        """
        delta = self.get_object_offset(obj, direction)
        current = self.logical_cursor()
        delta = max(-current, min(delta, len(self) - current))

        if delta > 0:
            for _ in range(delta):
                self.delete_forward()
        elif delta < 0:
            for _ in range(-delta):
                self.delete_backward()

        self.check_invariants()
        return delta

    # ───────────────────── Selection & clipboard ─────────────────────
    def toggle_selection(self) -> bool:
        """Starts a selection at the cursor, or drops the current one. Returns True when selecting."""
        if self.mark is None:
            self.mark = self.cursor_position()
            logger.debug("Selection started at %s", self.mark)
        else:
            self.mark = None
            logger.debug("Selection cleared")
        return self.mark is not None

    def get_selection(self) -> Optional[Tuple[Position, Position]]:
        """
        Returns the selection endpoints as ((line, column), (line, column)),
        earliest first, or None when nothing is selected.
        """
        if self.mark is None:
            return None
        start, end = sorted((self.mark, self.cursor_position()))
        return start, end

    def _selection_bounds(self) -> Tuple[int, int]:
        mark_offset = self.offset_of(*self.mark)
        return mark_offset, self.logical_cursor()

    def copy_to_clipboard(self) -> Optional[str]:
        """
        Copies the selected text into the clipboard and ends the selection.

        A single leading newline is not carried into the clipboard.

        Returns:
            Optional[str]: The copied text, or None when nothing was selected.
        """
        if self.mark is None:
            return None
        mark_offset, cursor = self._selection_bounds()
        start, end = sorted((mark_offset, cursor))
        copied = self.text()[start:end]
        if copied.startswith(NEWLINE):
            copied = copied[1:]
        self.clipboard = copied
        self.mark = None
        logger.debug("Copied %d characters to clipboard", len(copied))
        return copied

    def paste_from_clipboard(self) -> int:
        """Inserts the clipboard at the cursor. Returns the number of characters inserted."""
        if not self.clipboard:
            return 0
        self.insert_text(self.clipboard)
        return len(self.clipboard)

    def delete_selection(self) -> int:
        """
        Deletes the text between the mark and the cursor and ends the selection.

        Returns:
            int: Signed distance from the cursor to the mark that was deleted.
        """
        if self.mark is None:
            return 0
        mark_offset, cursor = self._selection_bounds()
        distance = mark_offset - cursor

        if distance > 0:
            for _ in range(distance):
                self.delete_forward()
        elif distance < 0:
            for _ in range(-distance):
                self.delete_backward()

        self.mark = None
        self.check_invariants()
        return distance

    # ───────────────────── Lifecycle ─────────────────────
    def clear(self) -> None:
        """Discards all text and any selection. The path and the clipboard are kept."""
        self._reset_storage(None)
        self.mark = None
        self.modified = True

    def debug_view(self) -> str:
        """
        Renders the raw storage: gap cells as `_` and the cursor as `|`
        placed before the cell it points at.
        """
        cells = []
        for index, cell in enumerate(self.data):
            if index == self.cursor_offset:
                cells.append(CURSOR_MARK)
            if self.gap_start <= index < self.gap_end:
                cells.append(GAP_MARK)
            else:
                cells.append(cell)
        if self.cursor_offset == self.capacity:
            cells.append(CURSOR_MARK)
        return "".join(cells)
