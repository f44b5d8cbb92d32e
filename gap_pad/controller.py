#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Gap-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import argparse
import curses
import locale
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional, Union

from . import __version__
from .buffer import Direction, InvariantViolation, TextObject
from .config import load_config
from .editor import Editor, EditorError, EditorIOError, EditorState, NoPathError
from .logs import KEY_LOGGER, logger, setup_logging
from .renderer import DebugRenderer, TerminalRenderer

Key = Union[int, str]

ESCAPE = 27

NAMED_KEYS: Dict[str, List[int]] = {
    "left": [curses.KEY_LEFT],
    "right": [curses.KEY_RIGHT],
    "up": [curses.KEY_UP],
    "down": [curses.KEY_DOWN],
    "home": [curses.KEY_HOME],
    "end": [getattr(curses, "KEY_END", curses.KEY_LL)],
    "pageup": [curses.KEY_PPAGE],
    "pagedown": [curses.KEY_NPAGE],
    "delete": [curses.KEY_DC],
    "del": [curses.KEY_DC],
    # terminals disagree on what Backspace and Enter send
    "backspace": [curses.KEY_BACKSPACE, 127, 8],
    "enter": [curses.KEY_ENTER, 10, 13],
    "return": [curses.KEY_ENTER, 10, 13],
    "tab": [9],
    "space": [ord(" ")],
    "esc": [ESCAPE],
    "escape": [ESCAPE],
}


def decode_keystring(key_input: Union[str, int]) -> List[Key]:
    """
    Decodes a key specification from the configuration into the key codes it matches.

    Supports named keys (``"left"``, ``"backspace"``), ``ctrl+`` combinations
    and Alt bindings, which stay logical strings (``"alt+f"`` and ``"alt-f"``
    both give ``"alt-f"``) because terminals deliver them as ESC sequences.

    Args:
        key_input (Union[str, int]): Key string such as ``"ctrl+s"``, or a raw key code.

    Returns:
        List[Union[int, str]]: Every key code that triggers the binding.

    Raises:
        ValueError: If the key string is empty or uses an unknown key or modifier.

    Example:
        >>> decode_keystring("ctrl+s")
        [19]
        >>> decode_keystring("alt+F")
        ['alt-f']
    """
    if isinstance(key_input, int):
        return [key_input]
    if not isinstance(key_input, str):
        raise ValueError(f"Invalid key_input type: {type(key_input)}. Expected str or int.")

    s = key_input.strip().lower()
    if not s:
        raise ValueError("Key string cannot be empty.")

    if s.startswith("alt+"):
        s = "alt-" + s[len("alt+"):]
    if s.startswith("alt-"):
        if not s[len("alt-"):]:
            raise ValueError(f"Missing key after alt in '{key_input}'")
        return [s]

    if s in NAMED_KEYS:
        return list(NAMED_KEYS[s])

    parts = s.split("+")
    base = parts[-1]
    modifiers = set(parts[:-1])

    if modifiers == {"ctrl"}:
        if base == "space" or base == "@":
            return [0]
        if len(base) == 1 and "a" <= base <= "z":
            return [ord(base) - ord("a") + 1]
        ctrl_symbols = {"[": 27, "\\": 28, "]": 29, "^": 30, "_": 31, "/": 31}
        if base in ctrl_symbols:
            return [ctrl_symbols[base]]
        raise ValueError(f"Unsupported ctrl combination '{key_input}'")

    if modifiers:
        raise ValueError(f"Unknown or unhandled modifiers {sorted(modifiers)} in '{key_input}'")
    if len(base) == 1:
        return [ord(base)]
    raise ValueError(f"Unknown key '{base}' in '{key_input}'")


class KeyBinder:
    """
    Translates key presses into editor actions.

    Keys are looked up in an action map built from the ``keybindings``
    configuration section; unbound printable characters are inserted. While
    the editor is prompting, keys edit the minibuffer instead.
    """

    def __init__(self, editor: Editor, config: Optional[Dict[str, Any]] = None) -> None:
        self.editor = editor
        self.config = config if config is not None else editor.config
        self.running = True
        self._on_prompt_done: Optional[Callable[[str], None]] = None
        self.action_map = self._setup_action_map()

    def _actions(self) -> Dict[str, Callable[[], Any]]:
        return {
            "char_left": lambda: self._go(TextObject.CHAR, Direction.LEFT),
            "char_right": lambda: self._go(TextObject.CHAR, Direction.RIGHT),
            "word_left": lambda: self._go(TextObject.WORD, Direction.LEFT),
            "word_right": lambda: self._go(TextObject.WORD, Direction.RIGHT),
            "line_up": lambda: self._go(TextObject.LINE, Direction.UP),
            "line_down": lambda: self._go(TextObject.LINE, Direction.DOWN),
            "line_start": lambda: self._go(TextObject.LINE, Direction.LEFT),
            "line_end": lambda: self._go(TextObject.LINE, Direction.RIGHT),
            "delete_char_left": lambda: self._delete(TextObject.CHAR, Direction.LEFT),
            "delete_char_right": lambda: self._delete(TextObject.CHAR, Direction.RIGHT),
            "delete_word_left": lambda: self._delete(TextObject.WORD, Direction.LEFT),
            "delete_word_right": lambda: self._delete(TextObject.WORD, Direction.RIGHT),
            "kill_line": self.kill_line,
            "newline": lambda: self.editor.focused_buffer().insert("\n"),
            "tab": lambda: self.editor.focused_buffer().insert("\t"),
            "toggle_selection": self.toggle_selection,
            "copy": self.editor.copy,
            "cut": self.editor.cut,
            "paste": self.editor.paste,
            "save_file": self.save_file,
            "cancel": self.cancel,
            "quit": self.quit,
        }

    def _setup_action_map(self) -> Dict[Key, Callable[[], Any]]:
        """
        Builds the key code → action mapping from the ``keybindings`` section.

        Unknown action names and undecodable key strings are logged and skipped,
        so a broken user binding never prevents the editor from starting.
        """
        actions = self._actions()
        bindings = dict(self.config.get("keybindings", {}))
        bindings.setdefault("tab", "tab")

        action_map: Dict[Key, Callable[[], Any]] = {}
        for action_name, key_specs in bindings.items():
            action = actions.get(action_name)
            if action is None:
                logging.warning(f"Keybinding for unknown action '{action_name}' ignored.")
                continue
            if not isinstance(key_specs, list):
                key_specs = [key_specs]
            for key_spec in key_specs:
                try:
                    codes = decode_keystring(key_spec)
                except ValueError as e:
                    logging.error(f"Invalid keybinding {key_spec!r} for '{action_name}': {e}")
                    continue
                for code in codes:
                    if code in action_map:
                        logging.debug(f"Key {code!r} rebound to '{action_name}'.")
                    action_map[code] = action
        return action_map

    # ───────────────────── Actions ─────────────────────
    def _go(self, obj: TextObject, direction: Direction) -> None:
        self.editor.focused_buffer().go(obj, direction)

    def _delete(self, obj: TextObject, direction: Direction) -> None:
        self.editor.focused_buffer().delete(obj, direction)

    def kill_line(self) -> None:
        """Deletes to the end of the line; at the end of a line, joins the next one."""
        buffer = self.editor.focused_buffer()
        if buffer.delete(TextObject.LINE, Direction.RIGHT) == 0:
            buffer.delete(TextObject.CHAR, Direction.RIGHT)

    def toggle_selection(self) -> None:
        if self.editor.focused_buffer().toggle_selection():
            self.editor.set_status("Mark set")
        else:
            self.editor.set_status("Mark deactivated")

    def save_file(self) -> None:
        try:
            written = self.editor.save_buffer()
        except NoPathError:
            self.begin_prompt("Enter a file name", self._save_as)
            return
        self.editor.set_status(f"Wrote {written} bytes to {self.editor.focused_buffer().path}")

    def _save_as(self, response: str) -> None:
        path = response.strip()
        if not path:
            self.editor.set_status("Save cancelled: no file name given")
            return
        written = self.editor.save_buffer(new_path=path)
        self.editor.set_status(f"Wrote {written} bytes to {path}")

    def cancel(self) -> None:
        buffer = self.editor.focused_buffer()
        if buffer.is_selecting:
            buffer.toggle_selection()
        self.editor.set_status("Quit")

    def quit(self) -> None:
        logger.info("Quit requested.")
        self.running = False

    # ───────────────────── Prompting ─────────────────────
    def begin_prompt(self, message: str, on_done: Callable[[str], None]) -> None:
        self._on_prompt_done = on_done
        self.editor.begin_prompt(message)

    def _handle_prompt_key(self, key: Key) -> bool:
        minibuffer = self.editor.minibuffer
        action = self.action_map.get(key)

        if key in NAMED_KEYS["enter"]:
            response = self.editor.end_prompt()
            on_done, self._on_prompt_done = self._on_prompt_done, None
            if on_done is not None:
                on_done(response)
        elif action in (self.cancel, self.quit):
            self.editor.end_prompt()
            self._on_prompt_done = None
            self.editor.set_status("Cancelled")
        elif key in NAMED_KEYS["backspace"]:
            minibuffer.delete(TextObject.CHAR, Direction.LEFT)
        elif key == curses.KEY_LEFT:
            minibuffer.go(TextObject.CHAR, Direction.LEFT)
        elif key == curses.KEY_RIGHT:
            minibuffer.go(TextObject.CHAR, Direction.RIGHT)
        elif isinstance(key, str) and len(key) == 1 and key.isprintable():
            minibuffer.insert(key)
        else:
            KEY_LOGGER.debug("Key %r ignored while prompting", key)
        return True

    # ───────────────────── Dispatch ─────────────────────
    def handle_input(self, key: Key) -> bool:
        """
        Processes a single key event.

        Args:
            key (Union[str, int]): Printable character, key code, or a logical
                Alt identifier such as ``"alt-f"``.

        Returns:
            bool: True if the screen needs a redraw.

        Raises:
            InvariantViolation: Buffer corruption is never absorbed here.
        """
        KEY_LOGGER.debug("handle_input: %r (%s)", key, type(key).__name__)
        try:
            if self.editor.state is EditorState.PROMPT_RESPONSE:
                return self._handle_prompt_key(key)

            action = self.action_map.get(key)
            if action is not None:
                action()
                return True

            if isinstance(key, str) and len(key) == 1 and key.isprintable():
                self.editor.focused_buffer().insert(key)
                return True

            KEY_LOGGER.debug("Unbound key %r", key)
            self.editor.set_status(f"Key not bound: {key!r}")
            return True
        except InvariantViolation:
            logging.critical("Buffer invariant violated while handling key %r", key, exc_info=True)
            raise
        except EditorError as e:
            logging.error(f"handle_input: {e}", exc_info=True)
            self.editor.set_status(f"Error: {e}")
            return True


class EditorSession:
    """Blocking read-key → handle → redraw loop on a curses screen."""

    def __init__(self, stdscr: "curses.window", editor: Editor, renderer: TerminalRenderer,
                 keybinder: Optional[KeyBinder] = None) -> None:
        self.stdscr = stdscr
        self.editor = editor
        self.renderer = renderer
        self.keybinder = keybinder or KeyBinder(editor)

    def parse_alt_key(self, follow: Key) -> Key:
        """Turns the key read after ESC into a logical Alt identifier."""
        if follow in ("\x7f", "\x08", curses.KEY_BACKSPACE, 127, 8):
            return "alt-backspace"
        if isinstance(follow, str):
            return f"alt-{follow.lower()}"
        return ESCAPE

    def get_key(self) -> Key:
        """
        Reads one key with ``get_wch()``, folding ESC-prefixed sequences into Alt
        identifiers and control characters into their integer codes.
        """
        key = self.stdscr.get_wch()
        if key == "\x1b":
            self.stdscr.nodelay(True)
            try:
                follow = self.stdscr.get_wch()
            except curses.error:
                return ESCAPE
            finally:
                self.stdscr.nodelay(False)
            return self.parse_alt_key(follow)
        if isinstance(key, str) and len(key) == 1 and (ord(key) < 32 or ord(key) == 127):
            return ord(key)
        return key

    def run(self) -> None:
        logger.info("Editor main loop started.")
        self.stdscr.keypad(True)
        try:
            curses.raw()
        except curses.error as e:
            logging.warning(f"Could not switch terminal to raw mode: {e}")

        self.renderer.render(self.editor)
        while self.keybinder.running:
            try:
                key = self.get_key()
            except KeyboardInterrupt:
                logger.info("KeyboardInterrupt received in main loop, exiting.")
                break
            except curses.error as e:
                logging.error(f"A curses error occurred while reading input: {e}", exc_info=True)
                continue

            if key == curses.KEY_RESIZE or self.keybinder.handle_input(key):
                self.renderer.render(self.editor)
        logger.info("Editor main loop finished.")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="gap-pad", description="Terminal text editor built on a gap buffer.")
    parser.add_argument("path", nargs="?", help="Name of the file to edit")
    parser.add_argument("-d", "--debug", action="store_true",
                        help="Show the raw gap buffer storage instead of the text")
    parser.add_argument("-c", "--config", help="Path to a config.toml file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def run_session(stdscr: "curses.window", args: argparse.Namespace, config: Dict[str, Any]) -> None:
    """Entry point handed to ``curses.wrapper()``."""
    editor = Editor(config)
    try:
        editor.open_file(args.path)
    except EditorIOError as e:
        logger.error(f"Could not open '{args.path}': {e}")
        editor.open_file(None)
        editor.set_status(f"Error: {e}")

    renderer_class = DebugRenderer if args.debug else TerminalRenderer
    EditorSession(stdscr, editor, renderer_class(stdscr, config), KeyBinder(editor, config)).run()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Command-line entry point: loads configuration, sets up logging and runs the
    editor inside ``curses.wrapper()``, which restores the terminal on any exit.
    """
    args = parse_args(argv)
    config = load_config(args.config)
    setup_logging(config)
    logger.info("Gap-Pad editor starting up...")

    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error as e_locale:
        logger.error(f"Failed to set system locale: {e_locale}. Character widths may be wrong.")
    os.environ.setdefault("ESCDELAY", "25")

    try:
        curses.wrapper(run_session, args, config)
    except InvariantViolation:
        logger.critical("Editor stopped: buffer invariant violated.", exc_info=True)
        print("\nCRITICAL ERROR: internal buffer state became inconsistent. See 'editor.log'.", file=sys.stderr)
        return 2
    except Exception:
        logger.critical("Unhandled exception during editor execution.", exc_info=True)
        print("\nCRITICAL ERROR: An unexpected error occurred. See 'editor.log' for details.", file=sys.stderr)
        raise

    logger.info("Gap-Pad editor shut down gracefully.")
    return 0
