"""Periodic user-configured command with once-only failure suppression."""

import logging
import shlex
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger("taskconsole.job")


class JobStatus(Enum):
    NEVER_RUN = "never-run"
    OK = "ok"
    DISABLED = "disabled"


@dataclass(frozen=True)
class JobReport:
    status: JobStatus
    message: str = ""


class BackgroundJob:
    """Runs ``command`` every ``period`` seconds on a daemon thread.

    ``runner`` executes an argv and returns an object with ``returncode``,
    ``stdout`` and ``stderr``; ``post`` receives a ``JobReport`` after each
    run. The first failure disables the job until the process restarts.
    """

    def __init__(
        self,
        command: str,
        period: float,
        runner: Callable[[List[str]], object],
        post: Callable[[JobReport], None],
    ):
        self.command = (command or "").strip()
        self.period = float(period or 0)
        self.runner = runner
        self.post = post
        self.status = JobStatus.NEVER_RUN
        self.runs = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def enabled(self) -> bool:
        return bool(self.command) and self.period > 0 and self.status != JobStatus.DISABLED

    def start(self) -> bool:
        if not self.enabled or self._thread is not None:
            return False
        self._thread = threading.Thread(target=self._loop, name="taskconsole-job", daemon=True)
        self._thread.start()
        logger.info("background job started: %r every %ss", self.command, self.period)
        return True

    def stop(self) -> None:
        self._stop.set()

    def _loop(self) -> None:
        while not self._stop.wait(self.period):
            if not self.run_once():
                break

    def run_once(self) -> bool:
        """Run one iteration; False once the job is disabled."""
        if self.status == JobStatus.DISABLED:
            return False
        self.runs += 1
        error = ""
        try:
            argv = shlex.split(self.command)
            if not argv:
                raise ValueError("empty command")
            result = self.runner(argv)
            code = getattr(result, "returncode", 1)
            if code != 0:
                stderr = (getattr(result, "stderr", "") or "").strip()
                error = f"exited with {code}" + (f": {stderr}" if stderr else "")
        except (OSError, ValueError) as exc:
            error = str(exc)
        except Exception as exc:
            logger.exception("background job %r raised", self.command)
            error = f"{type(exc).__name__}: {exc}"
        if error:
            self.status = JobStatus.DISABLED
            logger.warning("background job %r failed, disabled: %s", self.command, error)
            self.post(JobReport(JobStatus.DISABLED, f"Background process `{self.command}` disabled: {error}"))
            return False
        self.status = JobStatus.OK
        self.post(JobReport(JobStatus.OK))
        return True


__all__ = ["JobStatus", "JobReport", "BackgroundJob"]
