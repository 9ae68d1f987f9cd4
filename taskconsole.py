#!/usr/bin/env python3
"""Entry point: parse arguments, load configuration, run the console."""

import argparse
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from config import ConfigError, load_config
from infrastructure.task_cli import TaskCli, TaskCliError
from interface.keymap import KeyBindingResolver
from interface.keyspec import KeySpecError

LOG_ENV = "TASKCONSOLE_LOG"
LOG_LEVEL_ENV = "TASKCONSOLE_LOG_LEVEL"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskconsole", description="Interactive terminal console for Taskwarrior")
    parser.add_argument("-r", "--report", default=None, help="report to show at startup (default: next)")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    parser.add_argument("--task-binary", default="task", help="path to the task executable")
    return parser


def setup_logging() -> None:
    """Route taskconsole.* loggers to a rotating file when TASKCONSOLE_LOG is set."""
    logger = logging.getLogger("taskconsole")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = False
    log_path = os.environ.get(LOG_ENV, "").strip()
    if not log_path:
        logger.addHandler(logging.NullHandler())
        return
    level = getattr(logging, os.environ.get(LOG_LEVEL_ENV, "INFO").upper(), logging.INFO)
    logger.setLevel(logging.DEBUG)
    fh = RotatingFileHandler(os.path.expanduser(log_path), maxBytes=2000000, backupCount=2, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(fh)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    log = logging.getLogger("taskconsole")
    cli = TaskCli(binary=args.task_binary)
    try:
        version = cli.ensure_available()
        log.info("using task %s", version)
        config = load_config(cli.show_config(), args.config, args.report)
        # fail before the screen opens on malformed key specs
        resolver = KeyBindingResolver(config.keyconfig)
    except (TaskCliError, ConfigError, KeySpecError) as exc:
        log.error("startup failed: %s", exc)
        print(f"taskconsole: {exc}", file=sys.stderr)
        return 1

    from interface.tui_app import cmd_tui

    return cmd_tui(config, cli, resolver)


if __name__ == "__main__":
    sys.exit(main())
