from interface.keymap import Action
from interface.line_editor import LineBuffer, LineEditor


def test_kill_previous_word_from_end():
    editor = LineEditor()
    editor.insert("hello world")
    editor.apply(Action.KILL_PREVIOUS_WORD)
    assert editor.text == "hello "
    assert editor.buffer.kill == "world"


def test_home_then_kill_to_end_empties_buffer():
    editor = LineEditor()
    editor.insert("hello world")
    editor.apply(Action.LINE_START)
    editor.apply(Action.KILL_TO_END)
    assert editor.text == ""
    assert editor.cursor == 0
    assert editor.buffer.kill == "hello world"


def test_two_word_right_motions_land_before_third_word():
    buf = LineBuffer("foo bar baz", 0)
    buf.move_word_right()
    buf.move_word_right()
    assert buf.cursor == buf.text.index("baz")


def test_word_left_from_end():
    buf = LineBuffer("foo bar  ", 9)
    buf.move_word_left()
    assert buf.cursor == 4


def test_yank_reinserts_killed_text():
    buf = LineBuffer("alpha beta", 10)
    buf.kill_previous_word()
    buf.move_home()
    buf.yank()
    assert buf.text == "betaalpha "
    assert buf.cursor == 4


def test_kill_to_start_keeps_tail():
    buf = LineBuffer("project:home +next", 12)
    assert buf.kill_to_start()
    assert buf.text == " +next"
    assert buf.kill == "project:home"


def test_kill_next_word():
    buf = LineBuffer("one two three", 3)
    buf.kill_next_word()
    assert buf.text == "one three"
    assert buf.kill == " two"


def test_transpose_words():
    buf = LineBuffer("first second", 6)
    assert buf.transpose_words()
    assert buf.text == "second first"
    assert buf.cursor == len("second first")


def test_transpose_single_word_is_noop():
    buf = LineBuffer("lonely", 3)
    assert not buf.transpose_words()
    assert buf.text == "lonely"


def test_backspace_and_delete_at_edges():
    buf = LineBuffer("ab", 0)
    assert not buf.backspace()
    assert buf.delete_char()
    assert buf.text == "b"
    buf.move_end()
    assert not buf.delete_char()
    assert buf.backspace()
    assert buf.text == ""


def test_cursor_motion_bounds():
    buf = LineBuffer("xy", 5)
    assert buf.cursor == 2
    assert not buf.move_right()
    assert buf.move_left()
    assert buf.move_home()
    assert not buf.move_left()


def test_editor_handles_only_editing_actions():
    editor = LineEditor()
    assert editor.handles(Action.YANK)
    assert not editor.handles(Action.CONFIRM)
    assert not editor.apply(Action.QUIT)


def test_reset_places_cursor_at_end():
    editor = LineEditor()
    editor.reset("due:tomorrow")
    assert editor.cursor == len("due:tomorrow")
