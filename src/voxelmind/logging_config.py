# src/voxelmind/logging_config.py
"""
Logging bootstrap for voxelmind processes.

The engine itself only ever calls ``logging.getLogger(__name__)``; this
module is what a hosting process (the inspection server, a bot runner, a
test harness) calls once at startup to decide where those records go.

Key concepts:

    **Display filter**: the console handler always exists, but while
    ``console_enabled`` is False it only lets through records logged with
    ``extra={"display": True}``. Operator-facing events ("stuck detected,
    relocating") stay visible while per-tick chatter goes to the file only.

    **File modes**: ``file_mode="per_run"`` writes a new timestamped file
    per process; ``file_mode="single"`` appends to one file rotated by a
    ``RotatingFileHandler``.

Usage:
    from voxelmind.logging_config import configure_logging, log_display

    configure_logging(app_name="voxelmind", config=engine_config.logging)

    logger = logging.getLogger("voxelmind.runner")
    log_display(logger, logging.INFO, "Engine started for %s", bot_name)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Default logging configuration
# ---------------------------------------------------------------------------

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": True,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/voxelmind/logs",
    "file_mode": "per_run",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-32s - %(message)s",
    "rotation_max_bytes": 10 * 1024 * 1024,
    "rotation_backup_count": 5,
    "display_min_level": "INFO",
    "components": {
        "voxelmind": "INFO",
        "voxelmind.goals.scheduler": "INFO",
        "voxelmind.execution": "INFO",
        "httpx": "WARNING",
        "httpcore": "WARNING",
        "asyncio": "WARNING",
        "uvicorn.access": "WARNING",
    },
}


def _level(value: str | int, fallback: int) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else fallback


# ---------------------------------------------------------------------------
# DisplayFilter
# ---------------------------------------------------------------------------


class DisplayFilter(logging.Filter):
    """Decides which records reach the console handler.

    With the console globally enabled every record passes and the handler's
    own level does the filtering. Otherwise only records carrying
    ``display=True`` pass, and only at or above ``display_min_level``.
    """

    def __init__(
        self,
        console_globally_enabled: bool = False,
        display_min_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


# ---------------------------------------------------------------------------
# LoggingManager
# ---------------------------------------------------------------------------


class LoggingManager:
    """Owns the root handlers installed by :func:`configure_logging`."""

    def __init__(self) -> None:
        self.configured = False
        self.log_file_path: Path | None = None
        self._console_handler: logging.Handler | None = None
        self._file_handler: logging.Handler | None = None

    def configure(
        self,
        app_name: str = "voxelmind",
        config: dict[str, Any] | None = None,
        force_reconfigure: bool = False,
    ) -> Path | None:
        """
        Install console and file handlers on the root logger.

        Args:
            app_name: Used in the log file name.
            config: Logging settings; missing keys fall back to
                ``DEFAULT_LOGGING_CONFIG``.
            force_reconfigure: Replace handlers even if already configured.

        Returns:
            Path of the log file, or None when file logging is off or the
            directory is not writable.
        """
        if self.configured and not force_reconfigure:
            return self.log_file_path

        log_config = {**DEFAULT_LOGGING_CONFIG, **(config or {})}

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()
        root_logger.setLevel(logging.DEBUG)

        console_enabled = bool(log_config.get("console_enabled", False))
        display_filter = DisplayFilter(
            console_globally_enabled=console_enabled,
            display_min_level=_level(log_config.get("display_min_level", "INFO"), logging.INFO),
        )
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter(log_config["console_format"]))
        if console_enabled:
            console.setLevel(_level(log_config.get("console_level", "WARNING"), logging.WARNING))
        else:
            # The filter is the only gate while the console is "off".
            console.setLevel(logging.DEBUG)
        console.addFilter(display_filter)
        root_logger.addHandler(console)
        self._console_handler = console

        self._file_handler = None
        self.log_file_path = None
        if log_config.get("file_enabled", True):
            self._file_handler, self.log_file_path = self._create_file_handler(log_config, app_name)
            if self._file_handler is not None:
                root_logger.addHandler(self._file_handler)

        for component_name, level_str in log_config.get("components", {}).items():
            logging.getLogger(component_name).setLevel(_level(level_str, logging.INFO))

        self.configured = True
        if self.log_file_path:
            logging.getLogger(__name__).debug("Logging configured. Log file: %s", self.log_file_path)
        return self.log_file_path

    def _create_file_handler(
        self, config: dict[str, Any], app_name: str
    ) -> tuple[logging.Handler | None, Path | None]:
        log_dir = Path(os.path.expanduser(config["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        if config.get("file_mode", "per_run") == "single":
            log_file_path = log_dir / config["file_single_name"].format(app=app_name)
            try:
                handler: logging.Handler = RotatingFileHandler(
                    log_file_path,
                    maxBytes=config["rotation_max_bytes"],
                    backupCount=config["rotation_backup_count"],
                    encoding="utf-8",
                )
            except OSError as e:
                sys.stderr.write(f"Warning: Cannot create log file {log_file_path}: {e}\n")
                return None, None
        else:
            timestamp = datetime.now()
            try:
                filename = config["file_name_pattern"].format(app=app_name, timestamp=timestamp)
            except (KeyError, ValueError):
                filename = f"{app_name}_{timestamp.strftime('%Y%m%d_%H%M%S')}.log"
            log_file_path = log_dir / filename
            try:
                handler = logging.FileHandler(log_file_path, encoding="utf-8")
            except OSError as e:
                sys.stderr.write(f"Warning: Cannot create log file {log_file_path}: {e}\n")
                return None, None

        handler.setLevel(_level(config.get("file_level", "DEBUG"), logging.DEBUG))
        handler.setFormatter(logging.Formatter(config["file_format"]))
        return handler, log_file_path

    def set_component_level(self, component: str, level: str | int) -> None:
        """Change a specific component's log level at runtime."""
        logging.getLogger(component).setLevel(_level(level, logging.INFO))


_manager = LoggingManager()


# ---------------------------------------------------------------------------
# Public module-level functions
# ---------------------------------------------------------------------------


def configure_logging(
    app_name: str = "voxelmind",
    config: dict[str, Any] | None = None,
    force_reconfigure: bool = False,
) -> Path | None:
    """Configure process-wide logging. See :meth:`LoggingManager.configure`."""
    return _manager.configure(app_name=app_name, config=config, force_reconfigure=force_reconfigure)


def log_display(
    logger: logging.Logger,
    level: int,
    msg: str,
    *args: Any,
    **kwargs: Any,
) -> None:
    """Log a record that also reaches the console while it is in quiet mode.

    The caller's own ``extra`` mapping is merged, not replaced.
    """
    extra = kwargs.pop("extra", None) or {}
    extra["display"] = True
    kwargs["extra"] = extra
    logger.log(level, msg, *args, **kwargs)


def get_log_file_path() -> Path | None:
    """Get the current log file path."""
    return _manager.log_file_path


def set_component_level(component: str, level: str | int) -> None:
    """Change a specific component's log level at runtime."""
    _manager.set_component_level(component, level)
