#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Gap-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import logging
import os
from typing import Any, Dict, Optional

import toml

from .buffer import GROWTH_INCREMENT, INITIAL_CAPACITY

CONFIG_FILENAME = "config.toml"


# --- Dictionary Deep Merge Utility ---
def deep_merge(base: Dict[Any, Any], override: Dict[Any, Any]) -> Dict[Any, Any]:
    """
    Recursively merges the `override` dictionary into the `base` dictionary.

    If a key exists in both dictionaries and both values are dictionaries,
    the merge is performed recursively. Otherwise, the value from `override`
    replaces the value from `base`. Neither input is modified; a new merged
    dictionary is returned.

    Example:
        >>> deep_merge({'a': 1, 'b': {'x': 10, 'y': 20}}, {'b': {'y': 99}, 'c': 3})
        {'a': 1, 'b': {'x': 10, 'y': 99}, 'c': 3}
    """
    result = dict(base)
    for key, override_value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
        else:
            result[key] = override_value
    return result


def default_config() -> Dict[str, Any]:
    """Hard-coded defaults that let the editor start in any environment."""
    return {
        "editor": {
            "initial_capacity": INITIAL_CAPACITY,
            "growth_increment": GROWTH_INCREMENT,
            "use_system_clipboard": True,
            "default_encoding": "utf-8",
        },
        "colors": {
            "status": "reverse",
            "gutter": "dim",
            "selection": "reverse",
        },
        # Emacs-style defaults; every action accepts one key string or a list.
        "keybindings": {
            "char_left": ["left", "ctrl+b"],
            "char_right": ["right", "ctrl+f"],
            "line_up": ["up", "ctrl+p"],
            "line_down": ["down", "ctrl+n"],
            "line_start": ["home", "ctrl+a"],
            "line_end": ["end", "ctrl+e"],
            "word_left": "alt-b",
            "word_right": "alt-f",
            "delete_char_left": "backspace",
            "delete_char_right": ["del", "ctrl+d"],
            "delete_word_left": "alt-backspace",
            "delete_word_right": "alt-d",
            "kill_line": "ctrl+k",
            "newline": "enter",
            "toggle_selection": ["ctrl+space", "ctrl+@"],
            "copy": "alt-w",
            "cut": "ctrl+w",
            "paste": "ctrl+y",
            "save_file": "ctrl+s",
            "cancel": ["esc", "ctrl+g"],
            "quit": "ctrl+c",
        },
        "logging": {
            "log_file": "editor.log",
            "file_level": "DEBUG",
            "console_level": "WARNING",
            "log_to_console": False,
            "separate_error_log": False,
        },
    }


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads the application configuration, applying safe defaults.

    1. Starts from `default_config()`.
    2. Merges user settings from `path`, or from *config.toml* in the current
       working directory when no path is given, overriding only the keys it sets.
    3. Back-fills any section the user file replaced with a non-table value.

    Missing files, TOML syntax errors and I/O problems are logged and answered
    with the defaults, so this function never raises.

    Args:
        path (Optional[str]): Explicit configuration file.

    Returns:
        dict: The merged configuration.

    Example:
        >>> config = load_config("/nonexistent/config.toml")
        >>> config["editor"]["growth_increment"]
        10
    """
    defaults = default_config()
    config_path = path or os.path.join(os.getcwd(), CONFIG_FILENAME)

    user_config: Dict[str, Any] = {}
    if os.path.isfile(config_path):
        try:
            user_config = toml.load(config_path)
            logging.debug(f"load_config: Loaded user configuration from '{config_path}'")
        except toml.TomlDecodeError as e:
            logging.error(f"load_config: TOML syntax error in '{config_path}': {e}. Using defaults.")
        except OSError as e:
            logging.error(f"load_config: Could not read '{config_path}': {e}. Using defaults.")
    else:
        if path:
            logging.warning(f"load_config: Config file '{path}' not found. Using defaults.")
        else:
            logging.debug("load_config: No config.toml in working directory. Using defaults.")

    merged = deep_merge(defaults, user_config)

    # Sanity pass: every section must still be a table.
    for section, section_defaults in defaults.items():
        if not isinstance(merged.get(section), dict):
            logging.warning(f"load_config: Section '{section}' is invalid or missing. Restoring defaults.")
            merged[section] = section_defaults

    return merged
