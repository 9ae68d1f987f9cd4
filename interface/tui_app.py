#!/usr/bin/env python3
"""TUI application - TaskConsoleTUI class and cmd_tui command."""

import logging
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.containers import DynamicContainer
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension

from application.background_job import BackgroundJob
from config import AppConfig
from infrastructure.task_cli import TaskCli, run_command

from .dispatcher import Dispatcher
from .events import JobEvent, KeyInput, RefreshRequested, Tick
from .keymap import KeyBindingResolver
from .keyspec import Key, from_terminal
from .tui_calendar import build_calendar_text
from .tui_render import (
    build_context_text,
    build_details_text,
    build_error_text,
    build_help_text,
    build_prompt_text,
    build_table_text,
    build_tabs_text,
)
from .tui_status import build_status_text
from .tui_themes import build_style, theme_name
from .views import ViewKind

logger = logging.getLogger("taskconsole.tui")

TICK_SECONDS = 2.0


class TaskConsoleTUI:
    def __init__(self, config: AppConfig, cli: TaskCli, resolver: Optional[KeyBindingResolver] = None):
        self.config = config
        self.cli = cli
        self.events: "queue.Queue[object]" = queue.Queue()
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="taskconsole-task")
        self.dispatcher = Dispatcher(config, cli, cli, self.executor, post=self.post, resolver=resolver)
        self.job = BackgroundJob(
            config.background_process,
            config.background_period,
            run_command,
            lambda report: self.post(JobEvent(report)),
        )
        self._stop = threading.Event()
        self.style = build_style(theme_name(config.styles), config.styles)
        self.app = self._build_app()
        # Esc is a prefix of Alt combinations; keep the wait short.
        try:
            wait = max(0.0, float(os.getenv("TASKCONSOLE_TTIMEOUTLEN", "0.05")))
        except ValueError:
            wait = 0.05
        self.app.ttimeoutlen = wait
        self.app.timeoutlen = wait

    @staticmethod
    def get_terminal_width() -> int:
        """Get current terminal width, default to 100 if unavailable."""
        try:
            return os.get_terminal_size().columns
        except (AttributeError, ValueError, OSError):
            return 100

    @staticmethod
    def get_terminal_height() -> int:
        try:
            return os.get_terminal_size().lines
        except (AttributeError, ValueError, OSError):
            return 30

    # --- event pump -------------------------------------------------------

    def post(self, event: object) -> None:
        """Queue an event from any thread and wake the UI thread."""
        self.events.put(event)
        loop = getattr(self.app, "loop", None) if hasattr(self, "app") else None
        if loop is not None and loop.is_running():
            loop.call_soon_threadsafe(self.drain)

    def drain(self) -> None:
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                break
            try:
                self.dispatcher.handle(event)
            except Exception:
                logger.exception("unhandled error while handling %r", event)
                self.dispatcher.show_error("Internal error, see the log for details")
        if not self.dispatcher.running:
            if self.app.is_running:
                self.app.exit()
            return
        self.app.invalidate()

    def _ticker(self) -> None:
        while not self._stop.wait(TICK_SECONDS):
            self.post(Tick())

    # --- layout -----------------------------------------------------------

    def _body_height(self) -> int:
        reserved = 2 + self._bottom_height()
        return max(3, self.get_terminal_height() - reserved)

    def _bottom_height(self) -> int:
        kind = self.dispatcher.views.kind
        if kind == ViewKind.ERROR:
            return len(self.dispatcher.error_message.splitlines() or [""]) + 1
        if kind == ViewKind.COMMAND_PROMPT:
            return 1
        return 0

    def _body(self):
        d = self.dispatcher
        width = self.get_terminal_width()
        height = self._body_height()
        top = d.views.kind
        if top == ViewKind.HELP_OVERLAY:
            return Window(FormattedTextControl(lambda: build_help_text(d, width, height)), wrap_lines=False)
        if top == ViewKind.CONTEXT_SWITCHER or d.views.showing(ViewKind.CONTEXT_SWITCHER):
            return Window(FormattedTextControl(lambda: build_context_text(d, width, height)), wrap_lines=False)
        if d.views.main == ViewKind.CALENDAR:
            return Window(
                FormattedTextControl(
                    lambda: build_calendar_text(
                        d.calendar_year, d.records, width, self.config.calendar_months_per_row, date.today()
                    )
                ),
                wrap_lines=False,
            )
        if d.zoom:
            table_height = max(3, height // 2)
            return HSplit(
                [
                    Window(
                        FormattedTextControl(lambda: build_table_text(d, width, table_height)),
                        height=Dimension.exact(table_height),
                        wrap_lines=False,
                    ),
                    Window(height=1, char="─", style="class:border"),
                    Window(FormattedTextControl(lambda: build_details_text(d, width)), wrap_lines=False),
                ]
            )
        return Window(FormattedTextControl(lambda: build_table_text(d, width, height)), wrap_lines=False)

    def _bottom(self):
        d = self.dispatcher
        width = self.get_terminal_width()
        kind = d.views.kind
        if kind == ViewKind.ERROR:
            return Window(
                FormattedTextControl(lambda: build_error_text(d, width)),
                height=Dimension.exact(self._bottom_height()),
            )
        if kind == ViewKind.COMMAND_PROMPT:
            return Window(FormattedTextControl(lambda: build_prompt_text(d, width)), height=1)
        return Window(height=0)

    def _build_app(self) -> Application:
        d = self.dispatcher
        kb = KeyBindings()

        def feed(presses) -> None:
            if not presses:
                return
            last = presses[-1]
            if last.key == Keys.BracketedPaste:
                for ch in last.data.replace("\r", " ").replace("\n", " "):
                    if ch.isprintable():
                        self.post(KeyInput(Key(ch)))
                return
            alt = len(presses) > 1 and presses[0].key == Keys.Escape
            name = last.key.value if isinstance(last.key, Keys) else str(last.key)
            key = from_terminal(name, last.data, alt=alt)
            if key is None:
                logger.debug("ignoring unmapped key %r", name)
                return
            self.events.put(KeyInput(key))
            self.drain()

        @kb.add(Keys.Any)
        def _(event):
            feed(event.key_sequence)

        @kb.add("escape", Keys.Any)
        def _(event):
            feed(event.key_sequence)

        root = HSplit(
            [
                Window(FormattedTextControl(lambda: build_tabs_text(d, self.get_terminal_width())), height=1),
                DynamicContainer(self._body),
                DynamicContainer(self._bottom),
                Window(
                    FormattedTextControl(lambda: build_status_text(d, self.get_terminal_width())),
                    height=1,
                    style="class:border",
                ),
            ]
        )
        return Application(
            layout=Layout(root),
            key_bindings=kb,
            style=self.style,
            full_screen=True,
            mouse_support=False,
            refresh_interval=1.0,
        )

    # --- lifecycle --------------------------------------------------------

    def _start(self) -> None:
        self.post(RefreshRequested(reason="startup"))
        self.job.start()
        threading.Thread(target=self._ticker, name="taskconsole-tick", daemon=True).start()
        self.drain()

    def run(self) -> None:
        try:
            self.app.run(pre_run=self._start)
        finally:
            self._stop.set()
            self.job.stop()
            self.executor.shutdown(wait=False)


def cmd_tui(config: AppConfig, cli: Optional[TaskCli] = None, resolver: Optional[KeyBindingResolver] = None) -> int:
    tui = TaskConsoleTUI(config, cli or TaskCli(), resolver)
    tui.run()
    return 0


__all__ = ["TaskConsoleTUI", "cmd_tui"]
