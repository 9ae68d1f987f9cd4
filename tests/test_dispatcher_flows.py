"""End-to-end key flows through the dispatcher with a fake task store."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from application.background_job import JobReport, JobStatus
from config import AppConfig
from core import Priority
from interface.events import JobEvent, Tick
from interface.views import PromptKind, ViewKind

from conftest import NOW, Harness, ManualExecutor, make_record


def test_initial_refresh_loads_snapshot(harness):
    d = harness.dispatcher
    assert d.loaded
    assert len(d.records) == 5
    assert d.selection.cursor == 0
    assert not d.busy


def test_add_sends_literal_text_once_and_refreshes(harness):
    exports_before = harness.task.exports
    harness.press("a")
    assert harness.dispatcher.prompt == PromptKind.ADD
    harness.type("buy milk")
    harness.press("<Enter>")

    assert harness.task.calls == [("add", "buy milk")]
    assert harness.task.exports == exports_before + 1
    assert harness.dispatcher.views.kind == ViewKind.TASK_TABLE


def test_add_moves_cursor_to_created_task(harness):
    harness.press("a")
    harness.type("buy milk")
    harness.press("<Enter>")
    assert harness.dispatcher.current_record().id == 100


def test_add_records_history(harness):
    harness.press("a")
    harness.type("buy milk")
    harness.press("<Enter>")
    assert list(harness.dispatcher.history(PromptKind.ADD).entries) == ["buy milk"]


def test_cycle_view_twice_returns_to_table(harness):
    d = harness.dispatcher
    harness.press("]")
    assert d.views.main == ViewKind.CALENDAR
    harness.press("]")
    assert d.views.main == ViewKind.TASK_TABLE


def test_help_then_escape_keeps_cursor_and_marks(harness):
    d = harness.dispatcher
    harness.press("jvj")
    cursor, marked = d.selection.cursor, set(d.selection.marked)
    assert cursor == 2 and len(marked) == 1

    harness.press("?")
    assert d.views.kind == ViewKind.HELP_OVERLAY
    harness.press("<Esc>")

    assert d.views.kind == ViewKind.TASK_TABLE
    assert d.selection.cursor == cursor
    assert d.selection.marked == marked


def test_escape_in_table_clears_marks(harness):
    harness.press("V")
    assert len(harness.dispatcher.selection.marked) == 5
    harness.press("<Esc>")
    assert not harness.dispatcher.selection.marked


def test_prompt_cancel_sends_nothing(harness):
    harness.press("a")
    harness.type("never")
    harness.press("<Esc>")
    assert harness.task.calls == []
    assert harness.dispatcher.views.kind == ViewKind.TASK_TABLE


def test_table_keys_are_text_inside_prompt(harness):
    harness.press("a")
    harness.type("jk q")
    assert harness.dispatcher.editor.text == "jk q"
    assert harness.dispatcher.running


def test_force_quit_from_prompt(harness):
    harness.press("a")
    harness.press("<C-c>")
    assert not harness.dispatcher.running


def test_quit_key(harness):
    harness.press("q")
    assert not harness.dispatcher.running


def test_marks_dropped_when_record_leaves_snapshot(harness):
    d = harness.dispatcher
    harness.press("jv")
    gone = d.selection.cursor_uuid
    harness.task.records = [r for r in harness.task.records if r.uuid != gone]
    harness.press("r")
    assert gone not in d.selection.marked
    assert gone not in d.uuids


def test_toggle_all_marks_remaining_rows(harness):
    d = harness.dispatcher
    harness.press("vjvjv")
    assert len(d.selection.marked) == 3
    harness.press("V")
    assert d.selection.marked == set(d.uuids)


def test_done_acts_on_marked_rows_in_row_order(harness):
    d = harness.dispatcher
    harness.press("jjvkkv")
    harness.press("d")
    expected = [d.uuids[0], d.uuids[2]]
    assert harness.task.calls == [("done", expected)]
    assert not d.selection.marked


def test_delete_asks_for_confirmation(harness):
    d = harness.dispatcher
    harness.press("x")
    assert d.prompt == PromptKind.CONFIRM_DELETE
    harness.type("n")
    harness.press("<Enter>")
    assert harness.task.calls == []

    harness.press("x")
    harness.type("y")
    harness.press("<Enter>")
    assert harness.task.calls == [("delete", [d.uuids[0]])]


def test_filter_prompt_refetches_with_filter(harness):
    harness.press("/")
    harness.type("+work")
    harness.press("<Enter>")
    assert harness.dispatcher.filter_text == "+work"
    assert harness.task.last_filter == "+work"


def test_filter_prompt_is_prefilled_with_current_filter(harness):
    harness.dispatcher.filter_text = "project:home"
    harness.press("/")
    assert harness.dispatcher.editor.text == "project:home"


def test_modify_targets_cursor_row(harness):
    d = harness.dispatcher
    harness.press("j")
    harness.press("m")
    harness.type("+later")
    harness.press("<Enter>")
    assert harness.task.calls == [("modify", [d.uuids[1]], "+later")]


def test_jump_moves_cursor_to_record_id(harness):
    harness.press(":")
    harness.type("4")
    harness.press("<Enter>")
    assert harness.dispatcher.current_record().id == 4


def test_jump_to_unknown_id_shows_error(harness):
    harness.press(":")
    harness.type("42")
    harness.press("<Enter>")
    assert harness.dispatcher.views.kind == ViewKind.ERROR
    assert "42" in harness.dispatcher.error_message


def test_start_stop_splits_active_and_inactive(records):
    records[1] = make_record(2, start=NOW - timedelta(hours=1))
    h = Harness(records).start()
    h.press("vjv")
    h.press("s")
    d = h.dispatcher
    assert ("stop", [d.uuids[1]]) in h.task.calls
    assert ("start", [d.uuids[0]]) in h.task.calls


def test_quick_tag_toggles(records):
    records[0] = make_record(1, tags=frozenset({"next"}))
    h = Harness(records).start()
    h.press("t")
    assert h.task.calls == [("untag", [h.dispatcher.uuids[0]], "next")]


def test_priority_cycle_groups_by_new_priority(records):
    records[0] = make_record(1, priority=Priority.HIGH)
    h = Harness(records).start()
    h.press("vjv")
    h.press("+")
    d = h.dispatcher
    assert ("priority", [d.uuids[0]], Priority.NONE) in h.task.calls
    assert ("priority", [d.uuids[1]], Priority.LOW) in h.task.calls


def test_context_switch_applies_selected_context(harness):
    d = harness.dispatcher
    harness.press("c")
    assert d.views.kind == ViewKind.CONTEXT_SWITCHER
    assert d.context_cursor == 0
    harness.press("j<Enter>")
    assert harness.task.calls == [("context", "work")]
    assert d.views.kind == ViewKind.TASK_TABLE


def test_shell_placeholder_is_replaced_by_uuids(harness):
    d = harness.dispatcher
    harness.press("!")
    harness.type("notify {} now")
    harness.press("<Enter>")
    assert harness.task.calls == [("shell", ["notify", d.uuids[0], "now"])]


def test_shortcut_appends_uuids():
    config = AppConfig(history_dir=None, show_info=False, shortcuts={1: "archive --quiet"})
    h = Harness([make_record(1)], config=config).start()
    h.press("1")
    assert h.task.calls == [("shell", ["archive", "--quiet", h.dispatcher.uuids[0]])]


def test_shortcut_failure_opens_error_and_second_error_is_dropped():
    config = AppConfig(history_dir=None, show_info=False, shortcuts={2: "notify"})
    h = Harness([make_record(1)], config=config).start()
    h.task.shell_error = "Shell command `notify` ran successfully but printed:\nhello"
    d = h.dispatcher
    h.press("2")
    assert d.views.kind == ViewKind.ERROR
    depth = d.views.depth

    d.show_error("another failure")
    assert d.views.depth == depth
    assert "hello" in d.error_message

    h.press("j")
    assert d.views.kind == ViewKind.TASK_TABLE
    assert d.selection.cursor == 0


def test_unconfigured_shortcut_only_sets_status(harness):
    harness.press("5")
    assert harness.task.calls == []
    assert "5" in harness.dispatcher.status_line()


def test_fetch_failure_shows_error(records):
    h = Harness(records)
    h.task.export_error = "task exploded"
    h.start()
    assert h.dispatcher.views.kind == ViewKind.ERROR
    assert not h.dispatcher.busy


def test_refresh_requests_coalesce_while_in_flight(records):
    executor = ManualExecutor()
    h = Harness(records, executor=executor)
    d = h.dispatcher
    d.request_refresh()
    d.request_refresh()
    d.request_refresh()
    assert len(executor.jobs) == 1
    assert d.busy

    executor.run_next()
    h.pump()
    assert len(executor.jobs) == 1
    executor.run_next()
    h.pump()
    assert executor.jobs == []
    assert d.scheduler.started == 2
    assert not d.busy


def test_changed_signature_triggers_refresh(harness):
    before = harness.task.exports
    harness.dispatcher.handle(Tick(signature=1))
    assert harness.task.exports == before
    harness.dispatcher.handle(Tick(signature=2))
    harness.pump()
    assert harness.task.exports == before + 1


def test_disabled_job_sets_status_message(harness):
    report = JobReport(JobStatus.DISABLED, "Background process `sync` disabled: exited with 1")
    harness.dispatcher.handle(JobEvent(report))
    assert harness.dispatcher.job_status == JobStatus.DISABLED
    assert "disabled" in harness.dispatcher.status_line()


def test_calendar_navigation_changes_year(harness):
    d = harness.dispatcher
    harness.press("]")
    harness.press("j")
    assert d.calendar_year == NOW.year + 1
    harness.press("g")
    assert d.calendar_year == NOW.year


def test_zoom_loads_details_for_cursor(harness):
    harness.press("z")
    d = harness.dispatcher
    assert d.details[d.uuids[0]].startswith("details of")


def _undecodable():
    return UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")


def _settle(harness, executor, rounds=5):
    # single worker runs FIFO, so a finished no-op means earlier work is done
    for _ in range(rounds):
        executor.submit(lambda: None).result(timeout=5)
        harness.pump()


def test_unexpected_shortcut_failure_opens_error_and_clears_busy(monkeypatch):
    config = AppConfig(history_dir=None, show_info=False, shortcuts={2: "notify"})
    with ThreadPoolExecutor(max_workers=1) as executor:
        h = Harness([make_record(1)], config=config, executor=executor)
        d = h.dispatcher
        d.request_refresh()
        _settle(h, executor)

        def broken_shell(argv):
            raise _undecodable()

        monkeypatch.setattr(h.task, "run_shell", broken_shell)
        h.press("2")
        _settle(h, executor)
        assert d.views.kind == ViewKind.ERROR
        assert "UnicodeDecodeError" in d.error_message
        assert d.pending_jobs == 0
        assert not d.busy


def test_unexpected_fetch_failure_does_not_block_later_refreshes(monkeypatch):
    with ThreadPoolExecutor(max_workers=1) as executor:
        h = Harness([make_record(1), make_record(2)], executor=executor)
        d = h.dispatcher

        def broken_export(report, filter_text=""):
            raise _undecodable()

        monkeypatch.setattr(h.task, "export", broken_export)
        d.request_refresh()
        _settle(h, executor)
        assert d.views.kind == ViewKind.ERROR
        assert not d.scheduler.busy

        monkeypatch.undo()
        h.press("<Esc>")
        d.request_refresh()
        _settle(h, executor)
        assert d.loaded
        assert len(d.records) == 2


def test_unexpected_context_failure_opens_error(harness, monkeypatch):
    def broken_contexts():
        raise RuntimeError("context listing broke")

    monkeypatch.setattr(harness.task, "contexts", broken_contexts)
    harness.press("c")
    assert harness.dispatcher.views.kind == ViewKind.ERROR
    assert "context listing broke" in harness.dispatcher.error_message
