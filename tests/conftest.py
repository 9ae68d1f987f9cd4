import queue
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from config import AppConfig
from core import Record
from infrastructure.task_cli import TaskCliError
from interface.dispatcher import Dispatcher
from interface.keyspec import Key, parse_key_spec

NOW = datetime(2024, 5, 17, 12, 0, 0, tzinfo=timezone.utc)


def make_record(n: int, description: str = "", **kwargs) -> Record:
    kwargs.setdefault("entry", NOW - timedelta(days=n))
    return Record(
        uuid=f"{n:08d}-0000-4000-8000-000000000000",
        id=n,
        description=description or f"task {n}",
        **kwargs,
    )


class SyncExecutor:
    """Runs submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn):
        self.submitted += 1
        fn()


class ManualExecutor:
    """Holds submitted work until the test runs it."""

    def __init__(self):
        self.jobs: List = []

    def submit(self, fn):
        self.jobs.append(fn)

    def run_next(self):
        self.jobs.pop(0)()


class FakeTask:
    """In-memory record source and sink."""

    def __init__(self, records=()):
        self.records = list(records)
        self.calls: List[tuple] = []
        self.exports = 0
        self.last_filter = None
        self.signature = 1
        self.next_id = 100
        self.shell_error = ""
        self.export_error = ""
        self.context_rows = [("none", "", True), ("work", "project:work", False), ("home", "project:home", False)]

    # source
    def export(self, report, filter_text=""):
        self.exports += 1
        self.last_filter = filter_text
        if self.export_error:
            raise TaskCliError(self.export_error)
        return tuple(self.records)

    def compute_signature(self):
        return self.signature

    def contexts(self):
        return list(self.context_rows)

    def details(self, uuid):
        return f"details of {uuid}"

    # sink
    def add(self, text):
        self.calls.append(("add", text))
        self.records.append(make_record(self.next_id, text))
        return f"Created task {self.next_id}."

    def log(self, text):
        self.calls.append(("log", text))
        return "Logged task."

    def modify(self, uuids, text):
        self.calls.append(("modify", list(uuids), text))
        return ""

    def annotate(self, uuids, text):
        self.calls.append(("annotate", list(uuids), text))
        return ""

    def set_priority(self, uuids, priority):
        self.calls.append(("priority", list(uuids), priority))
        return ""

    def done(self, uuids):
        self.calls.append(("done", list(uuids)))
        return ""

    def delete(self, uuids):
        self.calls.append(("delete", list(uuids)))
        return ""

    def toggle_start(self, uuids, active):
        self.calls.append(("stop" if active else "start", list(uuids)))
        return ""

    def toggle_tag(self, uuids, tag, present):
        self.calls.append(("untag" if present else "tag", list(uuids), tag))
        return ""

    def undo(self):
        self.calls.append(("undo",))
        return ""

    def set_context(self, name):
        self.calls.append(("context", name))
        return ""

    def run_shell(self, argv):
        self.calls.append(("shell", list(argv)))
        if self.shell_error:
            raise TaskCliError(self.shell_error)
        return ""


class Harness:
    """Dispatcher wired to a fake task store and a synchronous executor."""

    def __init__(self, records=(), config=None, executor=None):
        self.task = FakeTask(records)
        self.events: "queue.Queue[object]" = queue.Queue()
        self.executor = executor or SyncExecutor()
        self.config = config or AppConfig(history_dir=None, show_info=False)
        self.dispatcher = Dispatcher(
            self.config,
            self.task,
            self.task,
            self.executor,
            post=self.events.put,
            clock=lambda: NOW,
        )

    def pump(self):
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                return
            self.dispatcher.handle(event)

    def start(self):
        self.dispatcher.request_refresh()
        self.pump()
        return self

    def press(self, spec: str):
        for key in parse_key_spec(spec):
            self.dispatcher.handle_key(key)
            self.pump()

    def type(self, text: str):
        for ch in text:
            self.dispatcher.handle_key(Key(ch))
            self.pump()


@pytest.fixture
def records():
    return [make_record(n) for n in range(1, 6)]


@pytest.fixture
def harness(records):
    return Harness(records).start()
