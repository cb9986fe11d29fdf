from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .app import run
from .settings import SettingsStore


def _default_log_file() -> Path:
    return SettingsStore.default_path().parent / "nightmare.log"


def _configure_logging(level: str, log_file: Path | None) -> None:
    handlers: list[logging.Handler] = []
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    else:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for running the game from the command line."""
    parser = argparse.ArgumentParser(prog="nightmare-assault", description="Nightmare Assault horror text adventure")
    parser.add_argument("--config", type=Path, default=None, help="settings file (default: ~/.nightmare/config.json)")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", type=Path, default=None, help="log destination (default: next to the settings file)")
    parser.add_argument("--log-stderr", action="store_true", help="log to stderr instead of a file")
    args = parser.parse_args(argv)

    log_file = None if args.log_stderr else (args.log_file or _default_log_file())
    _configure_logging(args.log_level, log_file)
    return run(settings_path=args.config)


if __name__ == "__main__":
    raise SystemExit(main())
