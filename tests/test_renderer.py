import curses
import unittest
from unittest.mock import MagicMock

from gap_pad.buffer import Direction, TextObject
from gap_pad.config import default_config
from gap_pad.editor import Editor
from gap_pad.renderer import (
    DebugRenderer,
    TerminalRenderer,
    clip_to_width,
    display_cell,
    display_text,
    display_width,
)


def make_editor(text="", capacity=None):
    config = default_config()
    config["editor"]["use_system_clipboard"] = False
    if capacity is not None:
        config["editor"]["initial_capacity"] = capacity
    editor = Editor(config)
    editor.open_file()
    editor.focused_buffer().insert_text(text)
    return editor


class TestDisplayHelpers(unittest.TestCase):

    def test_display_cell(self):
        self.assertEqual(display_cell("a"), "a")
        self.assertEqual(display_cell("\t"), " ")
        self.assertEqual(display_cell("\r"), "")
        self.assertEqual(display_cell("\x01"), "?")
        self.assertEqual(display_cell("\0"), "?")
        self.assertEqual(display_cell("\u200b"), "?")
        # combining marks are zero-width but printable
        self.assertEqual(display_cell("\u0301"), "\u0301")

    def test_display_text_and_width(self):
        self.assertEqual(display_text("a\tb\r"), "a b")
        self.assertEqual(display_width("日本"), 4)
        self.assertEqual(display_width("abc"), 3)

    def test_clip_to_width(self):
        self.assertEqual(clip_to_width("日本語", 3), "日")
        self.assertEqual(clip_to_width("hello", 10), "hello")
        self.assertEqual(clip_to_width("hello", 0), "")


class TestTerminalRenderer(unittest.TestCase):

    def setUp(self):
        self.stdscr = MagicMock()
        self.stdscr.getmaxyx.return_value = (10, 40)
        self.renderer = TerminalRenderer(self.stdscr, default_config())

    def test_text_and_gutter(self):
        editor = make_editor("hello\nworld")
        self.renderer.render(editor)

        self.stdscr.erase.assert_called_once_with()
        self.stdscr.addnstr.assert_any_call(0, 0, " 1", 2, curses.A_DIM)
        self.stdscr.addnstr.assert_any_call(1, 0, " 2", 2, curses.A_DIM)
        self.stdscr.addstr.assert_any_call(0, 3, "hello")
        self.stdscr.addstr.assert_any_call(1, 3, "world")
        self.stdscr.refresh.assert_called_once_with()

    def test_status_line(self):
        editor = make_editor("hello\nworld")
        self.renderer.render(editor)

        status_calls = [c for c in self.stdscr.addnstr.call_args_list if c[0][0] == 8]
        self.assertEqual(len(status_calls), 1)
        y, x, text, width, attr = status_calls[0][0]
        self.assertEqual((x, width, attr), (0, 39, curses.A_REVERSE))
        self.assertEqual(len(text), 39)
        self.assertTrue(text.startswith(" [No Name][+] "))
        self.assertTrue(text.endswith(" 2:6 "))

    def test_status_line_shows_saved_path(self):
        editor = make_editor()
        editor.focused_buffer().path = "notes.txt"
        self.renderer.render_status_line(editor)
        text = self.stdscr.addnstr.call_args[0][2]
        self.assertTrue(text.startswith(" notes.txt "))
        self.assertNotIn("[+]", text)

    def test_cursor_follows_text(self):
        editor = make_editor("hello\nworld")
        self.renderer.render(editor)
        self.assertEqual(self.stdscr.move.call_args[0], (1, 8))

    def test_cursor_counts_wide_characters(self):
        editor = make_editor("日本")
        self.renderer.render(editor)
        self.assertEqual(self.stdscr.move.call_args[0], (0, 7))

    def test_nul_characters_are_drawn_as_placeholders(self):
        editor = make_editor("a\0b")
        self.assertEqual(display_text(editor.focused_buffer().text()), "a?b")
        self.renderer.render(editor)
        self.stdscr.addstr.assert_any_call(0, 3, "a?b")
        for c in self.stdscr.addstr.call_args_list + self.stdscr.addnstr.call_args_list:
            self.assertNotIn("\0", c[0][2])
        self.assertEqual(self.stdscr.move.call_args[0], (0, 6))

    def test_long_lines_are_clipped(self):
        editor = make_editor("x" * 50)
        self.renderer.render(editor)
        self.stdscr.addstr.assert_any_call(0, 3, "x" * 36)

    def test_gutter_grows_with_line_count(self):
        editor = make_editor("\n" * 119)
        self.assertEqual(TerminalRenderer.gutter_width(editor.focused_buffer()), 4)

    def test_scrolls_by_half_window(self):
        editor = make_editor("\n".join(str(n) for n in range(1, 21)))
        buffer = editor.focused_buffer()
        self.assertTrue(self.renderer.update_window(buffer))
        self.assertEqual(self.renderer.window_start, 12)
        self.assertFalse(self.renderer.update_window(buffer))

        self.renderer.render(editor)
        self.stdscr.addnstr.assert_any_call(0, 0, "13", 2, curses.A_DIM)
        self.assertEqual(self.stdscr.move.call_args[0], (7, 5))

        for _ in range(19):
            buffer.go(TextObject.LINE, Direction.UP)
        self.assertTrue(self.renderer.update_window(buffer))
        self.assertEqual(self.renderer.window_start, 0)

    def test_selection_is_highlighted(self):
        editor = make_editor("hello world")
        buffer = editor.focused_buffer()
        buffer.go(TextObject.LINE, Direction.LEFT)
        buffer.toggle_selection()
        buffer.go(TextObject.WORD, Direction.RIGHT)
        self.renderer.render(editor)
        self.stdscr.addstr.assert_any_call(0, 3, "hello ", curses.A_REVERSE)

    def test_multiline_selection(self):
        editor = make_editor("ab\ncd\nef")
        buffer = editor.focused_buffer()
        buffer.go(TextObject.LINE, Direction.UP)
        buffer.go(TextObject.LINE, Direction.UP)
        buffer.go(TextObject.CHAR, Direction.LEFT)
        buffer.toggle_selection()
        buffer.go(TextObject.LINE, Direction.DOWN)
        buffer.go(TextObject.LINE, Direction.DOWN)
        self.renderer.render(editor)
        self.stdscr.addstr.assert_any_call(0, 4, "b", curses.A_REVERSE)
        self.stdscr.addstr.assert_any_call(1, 3, "cd", curses.A_REVERSE)
        self.stdscr.addstr.assert_any_call(2, 3, "e", curses.A_REVERSE)

    def test_prompt_in_minibuffer(self):
        editor = make_editor("text")
        editor.begin_prompt("Enter a file name")
        editor.minibuffer.insert("a")
        self.renderer.render(editor)
        self.stdscr.addnstr.assert_any_call(9, 0, "Enter a file name: a", 39)
        self.assertEqual(self.stdscr.move.call_args[0], (9, 20))

    def test_status_message_in_minibuffer(self):
        editor = make_editor()
        editor.set_status("Mark set")
        self.renderer.render_minibuffer(editor)
        self.stdscr.clrtoeol.assert_called_once_with()
        self.stdscr.addnstr.assert_called_once_with(9, 0, "Mark set", 39, curses.A_DIM)

    def test_color_configuration(self):
        config = default_config()
        config["colors"] = {"gutter": "bold", "selection": "sparkly"}
        renderer = TerminalRenderer(self.stdscr, config)
        self.assertEqual(renderer.attrs["gutter"], curses.A_BOLD)
        self.assertEqual(renderer.attrs["selection"], curses.A_REVERSE)

    def test_curses_errors_are_logged(self):
        self.stdscr.addstr.side_effect = curses.error("out of bounds")
        editor = make_editor("hello")
        with self.assertLogs(level="ERROR"):
            self.renderer.render(editor)


class TestDebugRenderer(unittest.TestCase):

    def setUp(self):
        self.stdscr = MagicMock()
        self.stdscr.getmaxyx.return_value = (10, 60)
        self.renderer = DebugRenderer(self.stdscr, default_config())

    def test_shows_raw_storage(self):
        editor = make_editor("ab", capacity=4)
        self.renderer.render(editor)
        self.stdscr.addstr.assert_any_call(0, 3, "ab|__")

        status = [c[0][2] for c in self.stdscr.addnstr.call_args_list if c[0][0] == 8][0]
        self.assertTrue(status.rstrip().endswith("cap=4 gap=2+2 cur=2 1:3"))

    def test_selection_is_not_drawn(self):
        editor = make_editor("ab", capacity=4)
        buffer = editor.focused_buffer()
        buffer.toggle_selection()
        buffer.go(TextObject.LINE, Direction.LEFT)
        self.renderer.render(editor)
        for c in self.stdscr.addstr.call_args_list:
            self.assertEqual(len(c[0]), 3)

    def test_cursor_counts_raw_cells(self):
        editor = make_editor("a\nbc", capacity=6)
        buffer = editor.focused_buffer()
        buffer.go(TextObject.CHAR, Direction.LEFT)
        self.assertEqual(buffer.debug_view(), "a\nb|c__")
        buffer.align_gap()
        self.assertEqual(buffer.debug_view(), "a\nb|__c")
        self.renderer.render(editor)
        self.assertEqual(self.stdscr.move.call_args[0], (1, 4))


if __name__ == '__main__':
    unittest.main()
