from interface.completion import CompletionSession, token_under_cursor
from interface.history import CommandHistory
from interface.line_editor import LineBuffer


class TestHistory:
    def test_always_appends_including_repeats_and_empty(self):
        history = CommandHistory()
        history.add("a")
        history.add("a")
        history.add("")
        assert list(history.entries) == ["a", "a", ""]

    def test_bounded(self):
        history = CommandHistory(max_size=2)
        for line in ("one", "two", "three"):
            history.add(line)
        assert list(history.entries) == ["two", "three"]

    def test_previous_filters_by_prefix_left_of_cursor(self):
        history = CommandHistory()
        for line in ("project:home", "+next", "project:work"):
            history.add(line)
        assert history.previous("pro", 3) == ("project:work", len("project:work"))
        assert history.previous("project:work", 12) == ("project:home", len("project:home"))
        assert history.previous("project:home", 12) is None

    def test_next_past_newest_restores_original_line_and_cursor(self):
        history = CommandHistory()
        history.add("first")
        history.add("second")
        assert history.previous("draft", 2) is None
        found = history.previous("", 0)
        assert found == ("second", 6)
        assert history.next("second") == ("", 0)
        assert not history.browsing

    def test_next_without_browsing(self):
        assert CommandHistory().next("x") is None

    def test_persists_to_file(self, tmp_path):
        path = tmp_path / "sub" / "add.history"
        history = CommandHistory(path=path)
        history.add("buy milk")
        history.add("call mom")
        assert path.read_text(encoding="utf-8") == "buy milk\ncall mom\n"

        reloaded = CommandHistory(path=path)
        reloaded.load()
        assert list(reloaded.entries) == ["buy milk", "call mom"]


class TestCompletion:
    def test_token_under_cursor_stops_at_delimiters(self):
        assert token_under_cursor("(project:ho", 11) == (1, "project:ho")
        assert token_under_cursor("a b", 3) == (2, "b")
        assert token_under_cursor("", 0) == (0, "")

    def test_cycles_candidates_for_the_same_token(self):
        session = CompletionSession(lambda token: ["+home", "+hold", "+work"])
        buf = LineBuffer("add +ho", 7)
        assert session.complete(buf)
        assert buf.text == "add +hold"
        assert session.complete(buf)
        assert buf.text == "add +home"
        assert session.complete(buf)
        assert buf.text == "add +hold"
        assert session.queries == 1

    def test_previous_direction_starts_from_last(self):
        session = CompletionSession(lambda token: ["+home", "+hold"])
        buf = LineBuffer("+h", 2)
        session.complete(buf, step=-1)
        assert buf.text == "+home"

    def test_editing_restarts_the_session(self):
        session = CompletionSession(lambda token: ["+home", "+work"])
        buf = LineBuffer("+h", 2)
        session.complete(buf)
        buf.insert(" +w")
        session.complete(buf)
        assert buf.text == "+home +work"
        assert session.queries == 2

    def test_keeps_text_after_cursor(self):
        session = CompletionSession(lambda token: ["project:home"])
        buf = LineBuffer("pro due:today", 3)
        session.complete(buf)
        assert buf.text == "project:home due:today"
        assert buf.cursor == len("project:home")

    def test_no_candidates(self):
        session = CompletionSession(lambda token: [])
        buf = LineBuffer("zz", 2)
        assert not session.complete(buf)
        assert not session.active
        assert buf.text == "zz"
