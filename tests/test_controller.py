import curses
import os
import tempfile
import unittest
from argparse import Namespace
from unittest.mock import MagicMock, patch

from gap_pad.buffer import InvariantViolation
from gap_pad.config import default_config
from gap_pad.controller import (
    ESCAPE,
    EditorSession,
    KeyBinder,
    decode_keystring,
    main,
    parse_args,
    run_session,
)
from gap_pad.editor import Editor, EditorState
from gap_pad.renderer import DebugRenderer, TerminalRenderer


def offline_config():
    config = default_config()
    config["editor"]["use_system_clipboard"] = False
    return config


class TestDecodeKeystring(unittest.TestCase):

    def test_ctrl_letters(self):
        self.assertEqual(decode_keystring("ctrl+s"), [19])
        self.assertEqual(decode_keystring("Ctrl+A"), [1])
        self.assertEqual(decode_keystring("ctrl+space"), [0])
        self.assertEqual(decode_keystring("ctrl+@"), [0])

    def test_alt_keys_stay_logical(self):
        self.assertEqual(decode_keystring("alt+F"), ["alt-f"])
        self.assertEqual(decode_keystring("alt-backspace"), ["alt-backspace"])

    def test_named_and_plain_keys(self):
        self.assertEqual(decode_keystring("backspace"), [curses.KEY_BACKSPACE, 127, 8])
        self.assertEqual(decode_keystring("left"), [curses.KEY_LEFT])
        self.assertEqual(decode_keystring("x"), [ord("x")])
        self.assertEqual(decode_keystring(42), [42])

    def test_invalid_keys(self):
        for spec in ("", "   ", "alt-", "shift+x", "ctrl+1", "f13"):
            with self.subTest(spec=spec):
                with self.assertRaises(ValueError):
                    decode_keystring(spec)
        with self.assertRaises(ValueError):
            decode_keystring(None)


class TestKeyBinder(unittest.TestCase):

    def setUp(self):
        self.editor = Editor(offline_config())
        self.editor.open_file()
        self.binder = KeyBinder(self.editor)
        self.buffer = self.editor.focused_buffer()

    def press(self, *keys):
        for key in keys:
            self.binder.handle_input(key)

    def test_typing_and_character_keys(self):
        self.press("h", "i")
        self.assertEqual(self.buffer.text(), "hi")
        self.press(2, "X")
        self.assertEqual(self.buffer.text(), "hXi")
        self.press(127)
        self.assertEqual(self.buffer.text(), "hi")
        self.press(10, 9)
        self.assertEqual(self.buffer.text(), "h\n\ti")

    def test_word_keys(self):
        self.buffer.insert_text("foo bar")
        self.press("alt-b")
        self.assertEqual(self.buffer.logical_cursor(), 4)
        self.press("alt-d")
        self.assertEqual(self.buffer.text(), "foo ")
        self.press("alt-backspace")
        self.assertEqual(self.buffer.text(), "")

    def test_line_keys(self):
        self.buffer.insert_text("abc\ndef")
        self.press(16, 1)
        self.assertEqual(self.buffer.cursor_position(), (1, 1))
        self.press(5)
        self.assertEqual(self.buffer.cursor_position(), (1, 4))
        self.press(curses.KEY_DOWN)
        self.assertEqual(self.buffer.cursor_position(), (2, 4))

    def test_kill_line_joins_lines_at_end_of_line(self):
        self.buffer.insert_text("ab\ncd")
        self.press(16)
        self.assertEqual(self.buffer.cursor_position(), (1, 3))
        self.press(11)
        self.assertEqual(self.buffer.text(), "abcd")
        self.press(1, 11)
        self.assertEqual(self.buffer.text(), "")

    def test_selection_copy_and_paste(self):
        self.buffer.insert_text("hello world")
        self.press("alt-b", 0)
        self.assertEqual(self.editor.status_message, "Mark set")
        self.press(5, "alt-w")
        self.assertEqual(self.buffer.clipboard, "world")
        self.press(25)
        self.assertEqual(self.buffer.text(), "hello worldworld")

    def test_cut_without_selection(self):
        self.buffer.insert_text("text")
        self.press(23)
        self.assertEqual(self.editor.status_message, "Nothing to cut")
        self.assertEqual(self.buffer.text(), "text")

    def test_cancel_drops_selection(self):
        self.press(0)
        self.assertTrue(self.buffer.is_selecting)
        self.press(7)
        self.assertFalse(self.buffer.is_selecting)

    def test_save_prompts_for_missing_name(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            target = os.path.join(temp_dir, "saved.txt")
            self.press("d", "a", "t", "a", 19)
            self.assertIs(self.editor.state, EditorState.PROMPT_RESPONSE)
            self.assertEqual(self.editor.prompt_message, "Enter a file name")

            self.press(*target)
            self.assertEqual(self.buffer.text(), "data")
            self.press(10)

            self.assertIs(self.editor.state, EditorState.EDITING)
            self.assertEqual(self.buffer.path, target)
            self.assertFalse(self.buffer.modified)
            with open(target, "rb") as f:
                self.assertEqual(f.read(), b"data")
            self.assertEqual(self.editor.status_message, f"Wrote 4 bytes to {target}")

    def test_prompt_editing_and_cancel(self):
        self.press(19, "a", "b", curses.KEY_LEFT, "X", 127)
        self.assertEqual(self.editor.minibuffer.text(), "ab")
        self.press(ESCAPE)
        self.assertIs(self.editor.state, EditorState.EDITING)
        self.assertEqual(self.editor.status_message, "Cancelled")
        self.assertEqual(self.editor.minibuffer.text(), "")
        self.assertTrue(self.binder.running)

    def test_empty_prompt_answer_does_not_save(self):
        self.press("x", 19, 10)
        self.assertIsNone(self.buffer.path)
        self.assertIn("no file name", self.editor.status_message)

    def test_quit(self):
        self.press(3)
        self.assertFalse(self.binder.running)

    def test_invalid_bindings_are_skipped(self):
        config = offline_config()
        config["keybindings"]["quit"] = ["hyper+q", "ctrl+q"]
        config["keybindings"]["no_such_action"] = "ctrl+x"
        with self.assertLogs(level="WARNING"):
            binder = KeyBinder(self.editor, config)
        self.assertNotIn(24, binder.action_map)
        binder.handle_input(3)
        self.assertTrue(binder.running)
        self.assertIn("not bound", self.editor.status_message)
        binder.handle_input(17)
        self.assertFalse(binder.running)

    def test_editor_errors_go_to_status_line(self):
        editor = Editor(offline_config())
        binder = KeyBinder(editor)
        self.assertTrue(binder.handle_input("a"))
        self.assertEqual(editor.status_message, "Error: No buffer is open")

    def test_invariant_violation_propagates(self):
        self.buffer.insert_text("ab")
        self.buffer.cursor_offset = 5
        with self.assertLogs(level="CRITICAL"):
            with self.assertRaises(InvariantViolation):
                self.binder.handle_input(6)


class TestEditorSession(unittest.TestCase):

    def setUp(self):
        self.stdscr = MagicMock()
        self.editor = Editor(offline_config())
        self.editor.open_file()
        self.renderer = MagicMock()
        self.session = EditorSession(self.stdscr, self.editor, self.renderer)

    def test_escape_sequences_become_alt_keys(self):
        self.stdscr.get_wch.side_effect = ["\x1b", "f"]
        self.assertEqual(self.session.get_key(), "alt-f")
        self.stdscr.nodelay.assert_any_call(True)
        self.stdscr.nodelay.assert_called_with(False)

        self.stdscr.get_wch.side_effect = ["\x1b", "\x7f"]
        self.assertEqual(self.session.get_key(), "alt-backspace")

    def test_lone_escape(self):
        self.stdscr.get_wch.side_effect = ["\x1b", curses.error("no input")]
        self.assertEqual(self.session.get_key(), ESCAPE)

    def test_control_characters_become_codes(self):
        self.stdscr.get_wch.side_effect = ["\x13", "é", curses.KEY_LEFT]
        self.assertEqual(self.session.get_key(), 19)
        self.assertEqual(self.session.get_key(), "é")
        self.assertEqual(self.session.get_key(), curses.KEY_LEFT)

    @patch('gap_pad.controller.curses.raw')
    def test_run_until_quit(self, mock_raw):
        self.stdscr.get_wch.side_effect = ["a", "b", "\x03"]
        self.session.run()
        self.assertEqual(self.editor.focused_buffer().text(), "ab")
        self.assertEqual(self.renderer.render.call_count, 4)
        self.stdscr.keypad.assert_called_once_with(True)

    @patch('gap_pad.controller.curses.raw')
    def test_run_stops_on_keyboard_interrupt(self, mock_raw):
        self.stdscr.get_wch.side_effect = ["a", KeyboardInterrupt]
        self.session.run()
        self.assertEqual(self.editor.focused_buffer().text(), "a")


class TestCommandLine(unittest.TestCase):

    def test_parse_args(self):
        args = parse_args(["notes.txt", "-d"])
        self.assertEqual(args.path, "notes.txt")
        self.assertTrue(args.debug)
        self.assertIsNone(args.config)

        args = parse_args([])
        self.assertIsNone(args.path)
        self.assertFalse(args.debug)

    @patch('gap_pad.controller.EditorSession')
    def test_run_session_picks_renderer(self, mock_session):
        stdscr = MagicMock()
        run_session(stdscr, Namespace(path=None, debug=True), offline_config())
        renderer = mock_session.call_args[0][2]
        self.assertIsInstance(renderer, DebugRenderer)
        mock_session.return_value.run.assert_called_once_with()

        run_session(stdscr, Namespace(path=None, debug=False), offline_config())
        renderer = mock_session.call_args[0][2]
        self.assertIs(type(renderer), TerminalRenderer)

    @patch('gap_pad.controller.EditorSession')
    def test_run_session_survives_unreadable_path(self, mock_session):
        with tempfile.TemporaryDirectory() as temp_dir:
            run_session(MagicMock(), Namespace(path=temp_dir, debug=False), offline_config())
        editor = mock_session.call_args[0][1]
        self.assertEqual(editor.focused_buffer().text(), "")
        self.assertIn("is a directory", editor.status_message)

    @patch('gap_pad.controller.setup_logging')
    @patch('gap_pad.controller.curses.wrapper')
    def test_main_exit_codes(self, mock_wrapper, mock_setup_logging):
        self.assertEqual(main(["file.txt"]), 0)
        args = mock_wrapper.call_args[0][1]
        self.assertEqual(args.path, "file.txt")
        mock_setup_logging.assert_called_once()

        mock_wrapper.side_effect = InvariantViolation("gap corrupted")
        with patch('sys.stderr'):
            self.assertEqual(main([]), 2)

        mock_wrapper.side_effect = RuntimeError("boom")
        with patch('sys.stderr'):
            with self.assertRaises(RuntimeError):
                main([])


if __name__ == '__main__':
    unittest.main()
