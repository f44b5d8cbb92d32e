#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Gap-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Editor session state around the gap buffers: open buffers, the minibuffer
used for prompts, file loading and saving, and the system clipboard bridge.
"""

import codecs
import logging
import os
from enum import Enum
from typing import Any, Dict, List, Optional

import chardet
import pyperclip

from .buffer import GROWTH_INCREMENT, INITIAL_CAPACITY, Buffer
from .config import default_config

CHARDET_SAMPLE_SIZE = 1024 * 20
CHARDET_MIN_CONFIDENCE = 0.5


class EditorError(Exception):
    """Recoverable editor-level failure, reported to the user in the status line."""


class EditorIOError(EditorError):
    """A file could not be read or written."""


class NoPathError(EditorError):
    """A buffer without a file path was asked to save itself."""


class EditorState(Enum):
    EDITING = "editing"
    PROMPT_RESPONSE = "prompt_response"


def detect_encoding(raw: bytes, default: str = "utf-8") -> str:
    """
    Guesses the text encoding of raw file content.

    Valid UTF-8 wins outright. Otherwise `chardet` is consulted on a sample of
    the data; low-confidence or unknown guesses fall back to Latin-1, which
    decodes any byte sequence.

    Args:
        raw (bytes): File content.
        default (str): Encoding reported for empty content.

    Returns:
        str: A codec name usable with `bytes.decode`.
    """
    if not raw:
        return default
    try:
        raw.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    result = chardet.detect(raw[:CHARDET_SAMPLE_SIZE])
    encoding_guess = result.get("encoding")
    confidence = result.get("confidence") or 0.0
    logging.debug(f"detect_encoding: chardet guessed {encoding_guess!r} with confidence {confidence:.2f}")

    if encoding_guess and confidence >= CHARDET_MIN_CONFIDENCE:
        try:
            codecs.lookup(encoding_guess)
            return encoding_guess
        except LookupError:
            logging.warning(f"detect_encoding: Unknown codec {encoding_guess!r} reported by chardet.")
    return "latin-1"


class Editor:
    """
    Owns every open Buffer of a session plus the prompt minibuffer.

    Attributes:
        config (dict): Loaded configuration.
        buffers (Dict[int, Buffer]): Open buffers keyed by id.
        encodings (Dict[int, str]): Encoding each buffer is saved with.
        focused (int): Id of the buffer being edited.
        minibuffer (Buffer): Single-line buffer that collects prompt answers.
        state (EditorState): Whether keys go to the focused buffer or the minibuffer.
        prompt_message (str): Question shown while in PROMPT_RESPONSE state.
        status_message (str): Last message for the user.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self.config = config if config is not None else default_config()
        editor_config = self.config.get("editor", {})

        self.capacity = int(editor_config.get("initial_capacity", INITIAL_CAPACITY))
        self.growth = int(editor_config.get("growth_increment", GROWTH_INCREMENT))
        self.default_encoding = editor_config.get("default_encoding", "utf-8")

        self.buffers: Dict[int, Buffer] = {}
        self.encodings: Dict[int, str] = {}
        self.next_buffer_id = 1
        self.focused = 0

        self.minibuffer = self._make_buffer()
        self.state = EditorState.EDITING
        self.prompt_message = ""
        self.status_message = ""

        self.use_system_clipboard = bool(editor_config.get("use_system_clipboard", True))
        self.pyclip_available = self._check_pyclip_availability()

    def _make_buffer(self, initial: Optional[str] = None, path: Optional[str] = None) -> Buffer:
        return Buffer(initial, path, capacity=self.capacity, growth=self.growth)

    def set_status(self, message: str) -> None:
        self.status_message = message
        logging.debug(f"Status message: '{message}'")

    # ───────────────────── Buffers ─────────────────────
    def focused_buffer(self) -> Buffer:
        try:
            return self.buffers[self.focused]
        except KeyError:
            raise EditorError("No buffer is open") from None

    def active_buffer(self) -> Buffer:
        """The buffer keystrokes currently edit: the minibuffer while prompting."""
        if self.state is EditorState.PROMPT_RESPONSE:
            return self.minibuffer
        return self.focused_buffer()

    def buffer_ids(self) -> List[int]:
        return sorted(self.buffers)

    def _register(self, buffer: Buffer, encoding: str) -> int:
        buffer_id = self.next_buffer_id
        self.next_buffer_id += 1
        self.buffers[buffer_id] = buffer
        self.encodings[buffer_id] = encoding
        self.focused = buffer_id
        return buffer_id

    def open_file(self, path: Optional[str] = None) -> int:
        """
        Opens `path` in a new buffer and focuses it.

        A path that does not exist yet gives an empty buffer bound to it, so the
        first save creates the file. Without a path an unnamed empty buffer is
        created.

        Args:
            path (Optional[str]): File to edit.

        Returns:
            int: Id of the new buffer.

        Raises:
            EditorIOError: If `path` is a directory or cannot be read.
        """
        logging.debug(f"open_file called. Requested path: '{path}'")

        if path is None:
            return self._register(self._make_buffer(), self.default_encoding)

        if os.path.isdir(path):
            raise EditorIOError(f"'{os.path.basename(path) or path}' is a directory")

        if not os.path.exists(path):
            logging.info(f"open_file: '{path}' does not exist yet, starting an empty buffer for it.")
            return self._register(self._make_buffer(path=path), self.default_encoding)

        try:
            with open(path, "rb") as f_binary:
                raw = f_binary.read()
        except OSError as e:
            logging.error(f"open_file: Failed to read '{path}': {e}", exc_info=True)
            raise EditorIOError(f"Cannot read '{os.path.basename(path)}': {e.strerror or e}") from e

        encoding = detect_encoding(raw, self.default_encoding)
        text = raw.decode(encoding, errors="replace")
        buffer_id = self._register(self._make_buffer(text, path=path), encoding)
        logging.info(f"open_file: Loaded '{path}' ({len(raw)} bytes, encoding {encoding}) as buffer {buffer_id}.")
        return buffer_id

    def save_buffer(self, new_path: Optional[str] = None) -> int:
        """
        Writes the focused buffer to its path.

        Args:
            new_path (Optional[str]): Replaces the buffer's path before writing (save-as).

        Returns:
            int: Number of bytes written.

        Raises:
            NoPathError: If the buffer has no path and none was given.
            EditorIOError: If the file cannot be written.
        """
        buffer = self.focused_buffer()
        if new_path:
            buffer.path = new_path
        if not buffer.path:
            raise NoPathError("Buffer has no file name")

        encoding = self.encodings.get(self.focused, self.default_encoding)
        payload = buffer.text().encode(encoding, errors="replace")
        try:
            with open(buffer.path, "wb") as f_binary:
                f_binary.write(payload)
        except OSError as e:
            logging.error(f"save_buffer: Failed to write '{buffer.path}': {e}", exc_info=True)
            raise EditorIOError(f"Cannot write '{os.path.basename(buffer.path)}': {e.strerror or e}") from e

        buffer.modified = False
        logging.info(f"save_buffer: Wrote {len(payload)} bytes to '{buffer.path}' ({encoding}).")
        return len(payload)

    def close_buffer(self, buffer_id: int) -> None:
        """Drops a buffer. Focus moves to the newest remaining buffer, or a fresh empty one."""
        self.buffers.pop(buffer_id, None)
        self.encodings.pop(buffer_id, None)
        if self.focused == buffer_id:
            if self.buffers:
                self.focused = max(self.buffers)
            else:
                self.open_file(None)

    # ───────────────────── Prompting ─────────────────────
    def begin_prompt(self, message: str) -> None:
        self.minibuffer.clear()
        self.minibuffer.modified = False
        self.prompt_message = message
        self.state = EditorState.PROMPT_RESPONSE

    def prompt_response(self) -> str:
        """Returns what was typed into the minibuffer and empties it."""
        response = self.minibuffer.text()
        self.minibuffer.clear()
        self.minibuffer.modified = False
        return response

    def end_prompt(self) -> str:
        response = self.prompt_response()
        self.prompt_message = ""
        self.state = EditorState.EDITING
        return response

    # ----- Clipboard Handling --------------------------------------
    def _check_pyclip_availability(self) -> bool:
        """Checks whether pyperclip can reach a system clipboard, when enabled in the config."""
        if not self.use_system_clipboard:
            logging.debug("System clipboard usage is disabled by editor configuration.")
            return False
        try:
            pyperclip.paste()
            logging.debug("pyperclip and system clipboard utilities appear to be available.")
            return True
        except pyperclip.PyperclipException as e:
            logging.warning(
                f"System clipboard unavailable via pyperclip: {str(e)}. "
                f"Falling back to internal clipboard."
            )
            return False

    def _push_system_clipboard(self, text: str) -> bool:
        if not (self.use_system_clipboard and self.pyclip_available):
            return False
        try:
            pyperclip.copy(text)
            return True
        except pyperclip.PyperclipException as e:
            logging.error(f"Failed to copy to system clipboard: {str(e)}")
            return False

    def _pull_system_clipboard(self) -> Optional[str]:
        if not (self.use_system_clipboard and self.pyclip_available):
            return None
        try:
            return pyperclip.paste()
        except pyperclip.PyperclipException as e:
            logging.error(f"Failed to read system clipboard: {str(e)}")
            return None

    def copy(self) -> bool:
        """Copies the selection of the focused buffer. Returns True if anything was copied."""
        buffer = self.focused_buffer()
        copied = buffer.copy_to_clipboard()
        if copied is None:
            self.set_status("Nothing to copy")
            return False
        if self._push_system_clipboard(copied):
            self.set_status("Copied to system clipboard")
        else:
            self.set_status("Copied to internal clipboard")
        return True

    def cut(self) -> bool:
        """Copies the selection, then deletes it from the focused buffer."""
        buffer = self.focused_buffer()
        mark = buffer.mark
        if mark is None:
            self.set_status("Nothing to cut")
            return False
        copied = buffer.copy_to_clipboard()
        buffer.mark = mark
        buffer.delete_selection()
        self._push_system_clipboard(copied)
        self.set_status(f"Cut {len(copied)} characters")
        return True

    def paste(self) -> bool:
        """
        Inserts the clipboard at the cursor of the focused buffer.

        Non-empty system clipboard text takes precedence over the buffer's own
        clipboard, so text copied in other programs can be pasted.
        """
        buffer = self.focused_buffer()
        system_text = self._pull_system_clipboard()
        if system_text:
            buffer.clipboard = system_text

        inserted = buffer.paste_from_clipboard()
        if not inserted:
            self.set_status("Clipboard is empty")
            return False
        self.set_status(f"Pasted {inserted} characters")
        return True
