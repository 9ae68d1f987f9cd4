"""Routes keys to actions and owns all view, selection and editor state.

Everything here runs on the UI thread. Blocking work goes to ``executor``
and comes back as events through ``post``; nothing else touches this state.
"""

import logging
import time
from concurrent.futures import Executor
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from application.background_job import JobStatus
from application.columns import ColumnSpec, build_column_specs
from application.ports import RecordSink, RecordSource
from application.refresh import RefreshScheduler
from application.report_table import ReportTableEngine, ReportView
from application.selection import Selection
from config import AppConfig
from core import Priority, Record
from infrastructure.task_cli import TaskCliError, created_id, split_arguments

from .completion import CompletionSession
from .events import (
    ContextsDone,
    DetailsDone,
    JobEvent,
    KeyInput,
    MutationDone,
    RefreshDone,
    RefreshRequested,
    Tick,
)
from .history import CommandHistory
from .keymap import Action, KeyBindingResolver, Resolution, SHORTCUT_ACTIONS
from .keyspec import Key
from .line_editor import LineEditor
from .views import PromptKind, ViewKind, ViewStateMachine

logger = logging.getLogger("taskconsole.dispatch")

FORCE_QUIT_KEY = Key("c", ctrl=True)
SHELL_PLACEHOLDER = "{}"
ATTRIBUTE_NAMES = ("project:", "priority:", "due:", "scheduled:", "wait:", "until:", "recur:", "depends:", "status:")


def failure_message(exc: Exception) -> str:
    """Text for the error modal; call from inside the ``except`` block."""
    if isinstance(exc, TaskCliError):
        return str(exc)
    logger.exception("background call failed")
    return f"Unexpected {type(exc).__name__}: {exc}"


_NAVIGATION = {
    Action.DOWN,
    Action.UP,
    Action.PAGE_DOWN,
    Action.PAGE_UP,
    Action.GO_TO_TOP,
    Action.GO_TO_BOTTOM,
}
_PROMPT_FOR_ACTION = {
    Action.FILTER: PromptKind.FILTER,
    Action.ADD: PromptKind.ADD,
    Action.LOG: PromptKind.LOG,
    Action.MODIFY: PromptKind.MODIFY,
    Action.ANNOTATE: PromptKind.ANNOTATE,
    Action.JUMP: PromptKind.JUMP,
    Action.SHELL: PromptKind.SHELL,
}


class Dispatcher:
    def __init__(
        self,
        config: AppConfig,
        source: RecordSource,
        sink: RecordSink,
        executor: Executor,
        post: Callable[[object], None],
        resolver: Optional[KeyBindingResolver] = None,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ):
        self.config = config
        self.source = source
        self.sink = sink
        self.executor = executor
        self.post = post
        self.clock = clock
        self.resolver = resolver or KeyBindingResolver(config.keyconfig)

        self.views = ViewStateMachine()
        self.selection = Selection()
        self.records: Tuple[Record, ...] = ()
        self.column_specs: Tuple[ColumnSpec, ...] = build_column_specs(
            config.columns, config.labels, config.column_policies, config.column_widths
        )
        self.engine = ReportTableEngine(config.min_column_width, config.hide_empty_columns)
        self.scheduler = RefreshScheduler()
        self.filter_text = ""
        self.editor = LineEditor()
        self.completion = CompletionSession(self._completion_candidates)
        self.histories: Dict[PromptKind, CommandHistory] = {}
        self.pending_keys: List[Key] = []

        self.running = True
        self.loaded = False
        self.pending_jobs = 0
        self.page_size = 10
        self.zoom = config.show_info
        self.details: Dict[str, str] = {}
        self.contexts: Tuple[Tuple[str, str, bool], ...] = ()
        self.context_cursor = 0
        self.help_scroll = 0
        self.calendar_year = self.clock().year
        self.error_message = ""
        self.status_message = ""
        self.status_expires = 0.0
        self.job_status = JobStatus.NEVER_RUN
        self.last_signature: Optional[int] = None
        self._focus_uuid: Optional[str] = None
        self._focus_id = 0
        self._confirm_targets: Tuple[str, ...] = ()

    # --- state helpers ----------------------------------------------------

    @property
    def uuids(self) -> List[str]:
        return [r.uuid for r in self.records]

    @property
    def busy(self) -> bool:
        return self.scheduler.busy or self.pending_jobs > 0

    @property
    def confirm_targets(self) -> Tuple[str, ...]:
        return self._confirm_targets

    @property
    def prompt(self) -> Optional[PromptKind]:
        return self.views.current.prompt

    def current_record(self) -> Optional[Record]:
        if not self.records:
            return None
        for record in self.records:
            if record.uuid == self.selection.cursor_uuid:
                return record
        return self.records[min(self.selection.cursor, len(self.records) - 1)]

    def selected_records(self) -> List[Record]:
        chosen = set(self.selection.selected_uuids(self.uuids))
        return [r for r in self.records if r.uuid in chosen]

    def report_view(self, width: int, now: Optional[datetime] = None) -> ReportView:
        return self.engine.compute(self.records, self.column_specs, self.selection, width, now or self.clock())

    def history(self, kind: PromptKind) -> CommandHistory:
        if kind not in self.histories:
            path: Optional[Path] = None
            if self.config.history_dir is not None:
                path = self.config.history_dir / f"{kind.key}.history"
            history = CommandHistory(self.config.history_size, path)
            history.load()
            self.histories[kind] = history
        return self.histories[kind]

    def set_status_message(self, message: str, ttl: float = 4.0) -> None:
        self.status_message = message
        self.status_expires = time.time() + ttl if ttl else 0.0

    def status_line(self) -> str:
        if self.status_message and self.status_expires and time.time() > self.status_expires:
            self.status_message = ""
        return self.status_message

    def show_error(self, message: str) -> None:
        if self.views.kind == ViewKind.ERROR:
            logger.warning("dropping error while another is shown: %s", message)
            return
        logger.error("%s", message)
        self.error_message = message
        self.views.push(ViewKind.ERROR, message=message)

    # --- events -----------------------------------------------------------

    def handle(self, event: object) -> None:
        if isinstance(event, KeyInput):
            self.handle_key(event.key)
        elif isinstance(event, RefreshRequested):
            logger.debug("refresh requested: %s", event.reason or "unspecified")
            self.request_refresh()
        elif isinstance(event, RefreshDone):
            self._on_refresh_done(event)
        elif isinstance(event, MutationDone):
            self._on_mutation_done(event)
        elif isinstance(event, JobEvent):
            self._on_job(event)
        elif isinstance(event, Tick):
            self._on_tick(event)
        elif isinstance(event, DetailsDone):
            self.details[event.uuid] = event.text
        elif isinstance(event, ContextsDone):
            self._on_contexts(event)

    def _submit(self, work: Callable[[], None]) -> None:
        self.executor.submit(work)

    def request_refresh(self) -> None:
        if self.scheduler.request():
            self._start_fetch()

    def _start_fetch(self) -> None:
        report = self.config.report
        filter_text = " ".join(f for f in (self.config.report_filter, self.filter_text) if f.strip())

        def work() -> None:
            try:
                records = self.source.export(report, filter_text)
                signature = self.source.compute_signature()
            except Exception as exc:
                self.post(RefreshDone(error=failure_message(exc)))
                return
            self.post(RefreshDone(records=tuple(records), signature=signature))

        self._submit(work)

    def _on_refresh_done(self, event: RefreshDone) -> None:
        if event.error:
            self.show_error(event.error)
        else:
            self.records = event.records
            self.loaded = True
            self.last_signature = event.signature
            uuids = self.uuids
            if self._focus_id:
                for record in self.records:
                    if record.id == self._focus_id:
                        self.selection.cursor_uuid = record.uuid
                        break
            elif self._focus_uuid:
                self.selection.cursor_uuid = self._focus_uuid
            self._focus_id = 0
            self._focus_uuid = None
            self.selection.reconcile(uuids)
            self._load_details()
        if self.scheduler.complete():
            self._start_fetch()

    def _mutate(
        self,
        label: str,
        call: Callable[[], str],
        focus_uuid: Optional[str] = None,
        focus_new: bool = False,
        refresh: bool = True,
    ) -> None:
        self.pending_jobs += 1
        logger.info("submitting %s", label)

        def work() -> None:
            try:
                output = call()
            except Exception as exc:
                self.post(MutationDone(label, error=failure_message(exc), refresh=refresh))
                return
            self.post(
                MutationDone(
                    label,
                    output=output or "",
                    focus_uuid=focus_uuid,
                    focus_id=created_id(output) if focus_new else 0,
                    refresh=refresh,
                )
            )

        self._submit(work)

    def _on_mutation_done(self, event: MutationDone) -> None:
        self.pending_jobs = max(0, self.pending_jobs - 1)
        if event.error:
            self.show_error(event.error)
        else:
            if event.focus_id:
                self._focus_id = event.focus_id
            elif event.focus_uuid:
                self._focus_uuid = event.focus_uuid
        if event.refresh:
            self.request_refresh()

    def _on_job(self, event: JobEvent) -> None:
        self.job_status = event.report.status
        if event.report.status == JobStatus.DISABLED:
            self.set_status_message(event.report.message, ttl=0)
        else:
            self.request_refresh()

    def _on_tick(self, event: Tick) -> None:
        if event.signature is None:
            if self.busy:
                return

            def work() -> None:
                try:
                    signature = self.source.compute_signature()
                except Exception as exc:
                    logger.debug("signature check failed: %s", exc)
                    return
                self.post(Tick(signature=signature))

            self._submit(work)
            return
        if self.last_signature is not None and event.signature != self.last_signature:
            logger.info("data files changed on disk, refreshing")
            self.request_refresh()
        self.last_signature = event.signature

    def _on_contexts(self, event: ContextsDone) -> None:
        if event.error:
            self.show_error(event.error)
            return
        self.contexts = event.rows
        active = [i for i, row in enumerate(self.contexts) if row[2]]
        self.context_cursor = active[0] if active else 0

    def _load_details(self) -> None:
        if not self.zoom:
            return
        record = self.current_record()
        if record is None or record.uuid in self.details:
            return
        uuid = record.uuid
        self.details[uuid] = ""

        def work() -> None:
            try:
                text = self.source.details(uuid)
            except Exception as exc:
                text = failure_message(exc)
            self.post(DetailsDone(uuid, text))

        self._submit(work)

    # --- keys -------------------------------------------------------------

    def handle_key(self, key: Key) -> None:
        if key == FORCE_QUIT_KEY:
            self.running = False
            return
        if self.views.kind == ViewKind.ERROR:
            self.views.pop()
            self.error_message = ""
            return
        view = self.views.keymap_view()
        if view is None:
            return
        self.pending_keys.append(key)
        resolved = self.resolver.resolve(view, self.pending_keys)
        if resolved.kind == Resolution.PENDING:
            return
        keys = self.pending_keys
        self.pending_keys = []
        if resolved.kind == Resolution.MATCH and resolved.action is not None:
            self.dispatch(resolved.action)
            return
        if len(keys) > 1:
            # an abandoned sequence: the last key starts over on its own
            self.handle_key(keys[-1])
            return
        if self.views.kind == ViewKind.COMMAND_PROMPT and key.is_text:
            self.editor.insert(key.code)
            self.completion.reset()
            if self.prompt is not None:
                self.history(self.prompt).reset()

    def dispatch(self, action: Action) -> None:
        kind = self.views.kind
        if action == Action.FORCE_QUIT:
            self.running = False
        elif action == Action.NOP:
            return
        elif kind == ViewKind.COMMAND_PROMPT:
            self._prompt_action(action)
        elif kind == ViewKind.HELP_OVERLAY:
            self._help_action(action)
        elif kind == ViewKind.CONTEXT_SWITCHER:
            self._context_action(action)
        elif kind == ViewKind.CALENDAR:
            self._calendar_action(action)
        elif kind == ViewKind.TASK_TABLE:
            self._table_action(action)

    def _common_main_action(self, action: Action) -> bool:
        if action == Action.QUIT:
            self.running = False
        elif action == Action.REFRESH:
            self.request_refresh()
        elif action == Action.HELP:
            self.help_scroll = 0
            self.views.push(ViewKind.HELP_OVERLAY)
        elif action == Action.NEXT_TAB:
            self.views.cycle(1)
        elif action == Action.PREVIOUS_TAB:
            self.views.cycle(-1)
        else:
            return False
        return True

    def _calendar_action(self, action: Action) -> None:
        if self._common_main_action(action):
            return
        step = {
            Action.DOWN: 1,
            Action.UP: -1,
            Action.PAGE_DOWN: 10,
            Action.PAGE_UP: -10,
        }.get(action)
        if step is not None:
            self.calendar_year = max(1, self.calendar_year + step)
        elif action in (Action.GO_TO_TOP, Action.GO_TO_BOTTOM):
            self.calendar_year = self.clock().year

    def _navigate(self, action: Action) -> None:
        uuids = self.uuids
        if action == Action.DOWN:
            self.selection.move(1, uuids)
        elif action == Action.UP:
            self.selection.move(-1, uuids)
        elif action == Action.PAGE_DOWN:
            self.selection.page(1, self.page_size, uuids)
        elif action == Action.PAGE_UP:
            self.selection.page(-1, self.page_size, uuids)
        elif action == Action.GO_TO_TOP:
            self.selection.top(uuids)
        elif action == Action.GO_TO_BOTTOM:
            self.selection.bottom(uuids)
        self._load_details()

    def _table_action(self, action: Action) -> None:
        if self._common_main_action(action):
            return
        if action in _NAVIGATION:
            self._navigate(action)
        elif action == Action.SELECT:
            self.selection.toggle_mark()
        elif action == Action.SELECT_ALL:
            self.selection.toggle_all(self.uuids)
        elif action == Action.CLEAR_MARKS:
            self.selection.clear_marks()
        elif action == Action.ZOOM:
            self.zoom = not self.zoom
            self.details.clear()
            self._load_details()
        elif action == Action.CONTEXT_MENU:
            self._open_contexts()
        elif action in _PROMPT_FOR_ACTION:
            self.open_prompt(_PROMPT_FOR_ACTION[action])
        elif action == Action.DONE:
            self._done_or_delete(PromptKind.CONFIRM_DONE, self.config.prompt_on_done)
        elif action == Action.DELETE:
            self._done_or_delete(PromptKind.CONFIRM_DELETE, self.config.prompt_on_delete)
        elif action == Action.START_STOP:
            self._start_stop()
        elif action == Action.QUICK_TAG:
            self._quick_tag()
        elif action == Action.UNDO:
            self._mutate("undo", self.sink.undo)
        elif action in (Action.PRIORITY_UP, Action.PRIORITY_DOWN):
            self.cycle_priority(1 if action == Action.PRIORITY_UP else -1)
        elif action in SHORTCUT_ACTIONS:
            self.run_shortcut(action.shortcut_slot)

    # --- record actions ---------------------------------------------------

    def _done_or_delete(self, kind: PromptKind, confirm: bool) -> None:
        uuids = tuple(self.selection.selected_uuids(self.uuids))
        if not uuids:
            return
        if confirm:
            self._confirm_targets = uuids
            self.open_prompt(kind)
            return
        self._finish(kind, uuids)

    def _finish(self, kind: PromptKind, uuids: Sequence[str]) -> None:
        targets = list(uuids)
        self.selection.marked -= set(targets)
        if kind == PromptKind.CONFIRM_DONE:
            self._mutate("done", lambda: self.sink.done(targets))
        else:
            self._mutate("delete", lambda: self.sink.delete(targets))

    def _start_stop(self) -> None:
        records = self.selected_records()
        active = [r.uuid for r in records if r.is_active]
        inactive = [r.uuid for r in records if not r.is_active]
        if not records:
            return

        def call() -> str:
            output = ""
            if active:
                output += self.sink.toggle_start(active, True)
            if inactive:
                output += self.sink.toggle_start(inactive, False)
            return output

        self._mutate("start/stop", call, focus_uuid=self.selection.cursor_uuid)

    def _quick_tag(self) -> None:
        tag = self.config.quick_tag_name
        records = self.selected_records()
        tagged = [r.uuid for r in records if tag in r.tags]
        untagged = [r.uuid for r in records if tag not in r.tags]
        if not records:
            return

        def call() -> str:
            output = ""
            if tagged:
                output += self.sink.toggle_tag(tagged, tag, True)
            if untagged:
                output += self.sink.toggle_tag(untagged, tag, False)
            return output

        self._mutate("quick tag", call, focus_uuid=self.selection.cursor_uuid)

    def cycle_priority(self, step: int) -> None:
        groups: Dict[Priority, List[str]] = {}
        for record in self.selected_records():
            groups.setdefault(record.priority.cycle(step), []).append(record.uuid)
        if not groups:
            return

        def call() -> str:
            return "".join(self.sink.set_priority(uuids, prio) for prio, uuids in groups.items())

        self._mutate("priority", call, focus_uuid=self.selection.cursor_uuid)

    def run_shortcut(self, slot: int) -> None:
        command = self.config.shortcuts.get(slot, "")
        if not command:
            self.set_status_message(f"No shortcut configured for slot {slot}")
            return
        try:
            argv = split_arguments(command)
        except TaskCliError as exc:
            self.show_error(str(exc))
            return
        argv += self.selection.selected_uuids(self.uuids)
        self._mutate(f"shortcut {slot}", lambda: self.sink.run_shell(argv), focus_uuid=self.selection.cursor_uuid)

    def run_shell(self, text: str) -> None:
        try:
            argv = split_arguments(text)
        except TaskCliError as exc:
            self.show_error(str(exc))
            return
        if not argv:
            return
        uuids = self.selection.selected_uuids(self.uuids)
        if SHELL_PLACEHOLDER in argv:
            expanded: List[str] = []
            for arg in argv:
                expanded.extend(uuids if arg == SHELL_PLACEHOLDER else [arg])
            argv = expanded
        self._mutate("shell", lambda: self.sink.run_shell(argv), focus_uuid=self.selection.cursor_uuid)

    # --- prompts ----------------------------------------------------------

    def open_prompt(self, kind: PromptKind) -> None:
        text = ""
        if kind == PromptKind.FILTER:
            text = self.filter_text
        elif kind == PromptKind.MODIFY and self.config.prefill_task_metadata:
            record = self.current_record()
            if record is not None and not self.selection.marked:
                text = f'"{record.description}"'
        elif kind == PromptKind.ANNOTATE and not self.records:
            return
        elif kind == PromptKind.MODIFY and not self.records:
            return
        self.editor.reset(text)
        self.completion.reset()
        self.history(kind).reset()
        self.views.push(ViewKind.COMMAND_PROMPT, prompt=kind)

    def _close_prompt(self) -> None:
        self.views.pop()
        self.completion.reset()
        self.editor.reset("")

    def _prompt_action(self, action: Action) -> None:
        kind = self.prompt
        if kind is None:
            return
        buf = self.editor.buffer
        if action == Action.CANCEL:
            self.history(kind).reset()
            self._confirm_targets = ()
            self._close_prompt()
        elif action == Action.CONFIRM:
            text = buf.text
            self._close_prompt()
            if not kind.is_confirmation:
                self.history(kind).add(text)
            self._submit_prompt(kind, text)
        elif action == Action.HISTORY_PREVIOUS:
            found = self.history(kind).previous(buf.text, buf.cursor)
            if found is not None:
                buf.set_text(*found)
        elif action == Action.HISTORY_NEXT:
            found = self.history(kind).next(buf.text)
            if found is not None:
                buf.set_text(*found)
        elif action in (Action.COMPLETE_NEXT, Action.COMPLETE_PREVIOUS):
            self.completion.complete(buf, 1 if action == Action.COMPLETE_NEXT else -1)
        elif self.editor.handles(action):
            self.editor.apply(action)
            self.completion.reset()
            self.history(kind).reset()

    def _submit_prompt(self, kind: PromptKind, text: str) -> None:
        stripped = text.strip()
        uuids = self.selection.selected_uuids(self.uuids)
        if kind == PromptKind.FILTER:
            self.filter_text = stripped
            self.request_refresh()
        elif kind == PromptKind.ADD:
            if stripped:
                self._mutate("add", lambda: self.sink.add(stripped), focus_new=self.config.jump_to_task_on_add)
        elif kind == PromptKind.LOG:
            if stripped:
                self._mutate("log", lambda: self.sink.log(stripped))
        elif kind == PromptKind.MODIFY:
            if stripped and uuids:
                self._mutate("modify", lambda: self.sink.modify(uuids, stripped), focus_uuid=self.selection.cursor_uuid)
        elif kind == PromptKind.ANNOTATE:
            if stripped and uuids:
                self._mutate(
                    "annotate", lambda: self.sink.annotate(uuids, stripped), focus_uuid=self.selection.cursor_uuid
                )
        elif kind == PromptKind.JUMP:
            self.jump_to(stripped)
        elif kind == PromptKind.SHELL:
            self.run_shell(stripped)
        elif kind.is_confirmation:
            targets, self._confirm_targets = self._confirm_targets, ()
            if stripped.lower() in ("y", "yes") and targets:
                self._finish(kind, targets)

    def jump_to(self, text: str) -> None:
        if not text:
            return
        target: Optional[Record] = None
        if text.isdigit():
            target = next((r for r in self.records if r.id == int(text)), None)
        else:
            target = next((r for r in self.records if r.uuid.startswith(text)), None)
        if target is None:
            self.show_error(f"Cannot locate task {text} in the current report")
            return
        self.selection.jump_to(target.uuid, self.uuids)
        self._load_details()

    def _completion_candidates(self, token: str) -> List[str]:
        kind = self.prompt
        if kind == PromptKind.JUMP:
            return [str(r.id) for r in self.records if r.id]
        candidates = set(ATTRIBUTE_NAMES)
        for record in self.records:
            if record.project:
                candidates.add(f"project:{record.project}")
            for tag in record.tags:
                candidates.add(f"+{tag}")
                if kind == PromptKind.FILTER:
                    candidates.add(f"-{tag}")
        candidates.update(f"priority:{p.value}" for p in Priority if p.value)
        return sorted(candidates)

    # --- overlays ---------------------------------------------------------

    def _help_action(self, action: Action) -> None:
        if action in (Action.CANCEL, Action.HELP):
            self.views.pop()
        elif action == Action.DOWN:
            self.help_scroll += 1
        elif action == Action.UP:
            self.help_scroll = max(0, self.help_scroll - 1)

    def _open_contexts(self) -> None:
        self.views.push(ViewKind.CONTEXT_SWITCHER)

        def work() -> None:
            try:
                rows = tuple(self.source.contexts())
            except Exception as exc:
                self.post(ContextsDone(error=failure_message(exc)))
                return
            self.post(ContextsDone(rows=rows))

        self._submit(work)

    def _context_action(self, action: Action) -> None:
        total = len(self.contexts)
        if action in (Action.CANCEL, Action.CONTEXT_MENU):
            self.views.pop()
        elif action == Action.HELP:
            self.help_scroll = 0
            self.views.push(ViewKind.HELP_OVERLAY)
        elif action == Action.CONFIRM:
            if not total:
                return
            name = self.contexts[self.context_cursor][0]
            self.views.pop()
            self._mutate(f"context {name}", lambda: self.sink.set_context(name))
        elif action in _NAVIGATION and total:
            target = {
                Action.DOWN: self.context_cursor + 1,
                Action.UP: self.context_cursor - 1,
                Action.PAGE_DOWN: self.context_cursor + self.page_size,
                Action.PAGE_UP: self.context_cursor - self.page_size,
                Action.GO_TO_TOP: 0,
                Action.GO_TO_BOTTOM: total - 1,
            }[action]
            self.context_cursor = max(0, min(target, total - 1))


__all__ = ["Dispatcher", "FORCE_QUIT_KEY"]
