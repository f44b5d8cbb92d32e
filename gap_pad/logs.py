#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Gap-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import logging
import logging.handlers
import os
import sys
import tempfile
from typing import Any, Dict, Optional

KEYTRACE_ENV = "GAP_PAD_KEYTRACE"
KEY_LOGGER_NAME = "gap_pad.keyevents"

FILE_FORMAT = "%(asctime)s - %(levelname)-8s - %(name)-15s - %(message)s (%(filename)s:%(lineno)d)"
CONSOLE_FORMAT = "%(levelname)-8s - %(name)-12s - %(message)s"
KEYTRACE_FORMAT = "%(asctime)s - %(message)s"

# (maxBytes, backupCount) per log file
MAIN_LOG_ROTATION = (2 * 1024 * 1024, 5)
SIDE_LOG_ROTATION = (1 * 1024 * 1024, 3)


def _level(name: Any, default: int) -> int:
    return getattr(logging, str(name).upper(), default)


def _rotating_handler(path: str, level: int, fmt: str,
                      rotation=SIDE_LOG_ROTATION) -> Optional[logging.Handler]:
    """Rotating UTF-8 file handler, or None (reported on stderr) if the file cannot be opened."""
    max_bytes, backups = rotation
    try:
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8"
        )
    except OSError as e:
        print(f"Cannot open log file '{path}': {e}", file=sys.stderr)
        return None
    handler.setFormatter(logging.Formatter(fmt))
    handler.setLevel(level)
    return handler


def _log_directory(log_file: str) -> str:
    """Creates the directory of `log_file`; falls back to the temp directory if that fails."""
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.isdir(log_dir):
        try:
            os.makedirs(log_dir)
        except OSError as e:
            print(f"Cannot create log directory '{log_dir}': {e}", file=sys.stderr)
            return tempfile.gettempdir()
    return log_dir


def setup_logging(config: Optional[Dict[str, Any]] = None) -> None:
    """
    Installs the root handlers described by the ``logging`` config section.

    The main log always rotates in ``log_file``. A stderr handler, a separate
    ERROR-only ``error.log`` and a ``keytrace.log`` for the key-event logger
    (when ``GAP_PAD_KEYTRACE`` is 1/true/yes) are optional; the side logs are
    written next to the main log. Root handlers are replaced on every call.
    """
    logging_config = (config or {}).get("logging", {})

    log_file = logging_config.get("log_file", "editor.log")
    log_dir = _log_directory(log_file)
    if log_dir != os.path.dirname(log_file):
        log_file = os.path.join(log_dir, "gap_pad_editor.log")
    file_level = _level(logging_config.get("file_level", "DEBUG"), logging.DEBUG)

    handlers = [_rotating_handler(log_file, file_level, FILE_FORMAT, MAIN_LOG_ROTATION)]

    if logging_config.get("log_to_console", False):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        console_handler.setLevel(_level(logging_config.get("console_level", "WARNING"), logging.WARNING))
        handlers.append(console_handler)

    if logging_config.get("separate_error_log", False):
        handlers.append(_rotating_handler(os.path.join(log_dir, "error.log"), logging.ERROR, FILE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler for handler in handlers if handler is not None]
    root_logger.setLevel(file_level)

    key_logger = logging.getLogger(KEY_LOGGER_NAME)
    key_logger.propagate = False
    key_logger.setLevel(logging.DEBUG)
    key_logger.handlers = []

    trace_handler = None
    if os.environ.get(KEYTRACE_ENV, "").lower() in {"1", "true", "yes"}:
        trace_handler = _rotating_handler(os.path.join(log_dir, "keytrace.log"), logging.DEBUG, KEYTRACE_FORMAT)
    key_logger.disabled = trace_handler is None
    key_logger.addHandler(trace_handler or logging.NullHandler())

    logging.info("Logging to '%s' at %s; key tracing %s.", log_file,
                 logging.getLevelName(file_level), "on" if trace_handler else "off")


# Configured by setup_logging(); silent until then.
logger = logging.getLogger("gap_pad")
KEY_LOGGER = logging.getLogger(KEY_LOGGER_NAME)
