"""Record source and sink backed by the ``task`` command line tool.

Every call is blocking and must run off the UI thread. Calls never read
from the terminal: stdin is /dev/null and confirmations are switched off, so
a command that wants an answer fails instead of hanging.
"""

import logging
import os
import re
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from core import Priority, Record

from .export_parser import ExportParseError, ExportParser

logger = logging.getLogger("taskconsole.task")

NON_INTERACTIVE = (
    "rc.bulk=0",
    "rc.confirmation=off",
    "rc.dependency.confirmation=off",
    "rc.recurrence.confirmation=off",
)
DATA_FILES = ("pending.data", "completed.data", "undo.data", "taskchampion.sqlite3")
CREATED_RE = re.compile(r"Created task (\d+)")


class TaskCliError(RuntimeError):
    """The ``task`` binary is unreachable or a call failed."""


@dataclass(frozen=True)
class CommandResult:
    argv: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def split_arguments(text: str) -> List[str]:
    try:
        return shlex.split(text)
    except ValueError as exc:
        raise TaskCliError(f"Unable to split `{text}`: {exc}") from exc


def run_command(argv: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
    """Run any argv non-interactively; OSError propagates to the caller."""
    proc = subprocess.run(
        list(argv),
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        errors="replace",
        timeout=timeout,
    )
    return CommandResult(tuple(argv), proc.returncode, proc.stdout or "", proc.stderr or "")


def created_id(output: str) -> int:
    match = CREATED_RE.search(output or "")
    return int(match.group(1)) if match else 0


class TaskCli:
    def __init__(self, binary: str = "task", data_location: Optional[Path] = None):
        self.binary = binary
        self._data_location = data_location

    # --- plumbing ---------------------------------------------------------

    def _run(self, args: Sequence[str], check: bool = True) -> CommandResult:
        argv = [self.binary, *args]
        logger.debug("running %s", " ".join(shlex.quote(a) for a in argv))
        try:
            result = run_command(argv)
        except OSError as exc:
            raise TaskCliError(f"Cannot run `{self.binary}`: {exc}") from exc
        if check and not result.ok:
            detail = result.stderr.strip() or result.stdout.strip()
            logger.warning("`%s` exited with %s: %s", " ".join(argv), result.returncode, detail)
            raise TaskCliError(f"`task {' '.join(args)}` failed: {detail}" if detail else f"`task {' '.join(args)}` failed")
        return result

    def _mutate(self, uuids: Sequence[str], command: str, extra: Sequence[str] = ()) -> str:
        if not uuids:
            return ""
        result = self._run([*NON_INTERACTIVE, *uuids, command, *extra])
        return result.stdout

    # --- source -----------------------------------------------------------

    def ensure_available(self) -> str:
        return self._run(["--version"]).stdout.strip()

    def show_config(self) -> Dict[str, str]:
        """Flat key=value map of the tool's effective configuration."""
        out = self._run(["rc.color=off", "_show"]).stdout
        data: Dict[str, str] = {}
        for line in out.splitlines():
            key, sep, value = line.partition("=")
            if sep and key.strip():
                data[key.strip()] = value.strip()
        return data

    def current_context(self) -> str:
        return self._run(["_get", "rc.context"], check=False).stdout.strip()

    def context_filter(self, name: str) -> str:
        if not name or name == "none":
            return ""
        read = self._run(["_get", f"rc.context.{name}.read"], check=False).stdout.strip()
        if read:
            return read
        return self._run(["_get", f"rc.context.{name}"], check=False).stdout.strip()

    def contexts(self) -> List[Tuple[str, str, bool]]:
        """(name, definition, active) for every context, ``none`` first."""
        active = self.current_context()
        names = [n.strip() for n in self._run(["_context"], check=False).stdout.splitlines() if n.strip()]
        rows = [("none", "", not active or active == "none")]
        for name in names:
            if name == "none":
                continue
            rows.append((name, self.context_filter(name), name == active))
        return rows

    def export(self, report: str, filter_text: str = "") -> Tuple[Record, ...]:
        args = ["rc.json.array=on", "rc.confirmation=off"]
        if filter_text.strip():
            args.extend(split_arguments(filter_text.strip()))
        context = self.context_filter(self.current_context())
        if context:
            args.append(f"( {context} )")
        args.append("export")
        if report:
            args.append(report)
        result = self._run(args)
        try:
            records = ExportParser.parse(result.stdout)
        except ExportParseError as exc:
            raise TaskCliError(str(exc)) from exc
        logger.debug("exported %d records for report %r", len(records), report)
        return records

    def details(self, uuid: str, width: int = 80) -> str:
        return self._run(["rc.color=off", f"rc.defaultwidth={max(20, width)}", uuid], check=False).stdout

    def data_location(self) -> Optional[Path]:
        if self._data_location is None:
            raw = self._run(["_get", "rc.data.location"], check=False).stdout.strip()
            if raw:
                self._data_location = Path(os.path.expanduser(raw))
        return self._data_location

    def compute_signature(self) -> int:
        location = self.data_location()
        if location is None:
            return 0
        sig = 0
        for name in DATA_FILES:
            try:
                sig ^= int((location / name).stat().st_mtime_ns)
            except OSError:
                continue
        return sig

    # --- sink -------------------------------------------------------------

    def add(self, text: str) -> str:
        return self._run(["add", *split_arguments(text)]).stdout

    def log(self, text: str) -> str:
        return self._run(["log", *split_arguments(text)]).stdout

    def modify(self, uuids: Sequence[str], text: str) -> str:
        return self._mutate(uuids, "modify", split_arguments(text))

    def annotate(self, uuids: Sequence[str], text: str) -> str:
        return self._mutate(uuids, "annotate", split_arguments(text))

    def set_priority(self, uuids: Sequence[str], priority: Priority) -> str:
        return self._mutate(uuids, "modify", [f"priority:{priority.value}"])

    def done(self, uuids: Sequence[str]) -> str:
        return self._mutate(uuids, "done")

    def delete(self, uuids: Sequence[str]) -> str:
        return self._mutate(uuids, "delete")

    def toggle_start(self, uuids: Sequence[str], active: bool) -> str:
        return self._mutate(uuids, "stop" if active else "start")

    def toggle_tag(self, uuids: Sequence[str], tag: str, present: bool) -> str:
        return self._mutate(uuids, "modify", [f"{'-' if present else '+'}{tag}"])

    def undo(self) -> str:
        return self._run(["rc.confirmation=off", "undo"]).stdout

    def set_context(self, name: str) -> str:
        return self._run(["rc.confirmation=off", "context", name or "none"]).stdout

    def run_shell(self, argv: Sequence[str]) -> str:
        """Run an external command; a non-zero exit or any stdout is an error."""
        if not argv:
            raise TaskCliError("Empty shell command")
        label = " ".join(argv)
        try:
            result = run_command(argv)
        except OSError as exc:
            raise TaskCliError(f"Cannot run `{label}`: {exc}") from exc
        if not result.ok:
            detail = result.stderr.strip()
            raise TaskCliError(
                f"Shell command `{label}` exited with non-zero output" + (f": {detail}" if detail else "")
            )
        if result.stdout.strip():
            raise TaskCliError(f"Shell command `{label}` ran successfully but printed:\n{result.stdout.strip()}")
        return result.stdout


__all__ = [
    "TaskCli",
    "TaskCliError",
    "CommandResult",
    "NON_INTERACTIVE",
    "run_command",
    "split_arguments",
    "created_id",
]
