"""
Logging support for stickctl.

Every module logs through a component logger under the ``stickctl`` root,
obtained with ``get_logger(LogComponent.X)``. ``configure_logging`` decides
where records go: the console (colored when attached to a terminal), a
rotating text file, and a rotating JSON-lines file that the field team can
grep or load after a flight.

Example:
    >>> from stickctl.logging import LogComponent, LogLevel, configure_logging, get_logger
    >>> configure_logging(level=LogLevel.DEBUG, file="logs/stickctl.log")
    >>> get_logger(LogComponent.DISPATCH).info("plan started")
"""
from __future__ import annotations

import datetime
import inspect
import json
import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

F = TypeVar("F", bound=Callable[..., Any])


class LogLevel(Enum):
    """Log levels, valued as the stdlib ``logging`` constants."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_string(cls, level: str) -> "LogLevel":
        name = level.strip().upper()
        return cls[{"WARN": "WARNING", "FATAL": "CRITICAL"}.get(name, name)]


class LogComponent(Enum):
    """Logger names, one per stickctl module family."""
    ROOT = "stickctl"
    CONTROLLER = "stickctl.controller"
    PROFILE = "stickctl.profile"
    DISPATCH = "stickctl.dispatch"
    SESSION = "stickctl.session"
    ACTUATION = "stickctl.actuation"
    TELEMETRY = "stickctl.telemetry"
    SERVER = "stickctl.server"
    CONFIG = "stickctl.config"


class ColoredFormatter(logging.Formatter):
    """Console formatter that tints the level name, and the whole message from WARNING up."""

    LEVEL_COLORS = {
        logging.DEBUG: "36",     # cyan
        logging.INFO: "32",      # green
        logging.WARNING: "33",   # yellow
        logging.ERROR: "31",     # red
        logging.CRITICAL: "35",  # magenta
    }

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and sys.stdout.isatty()

    @staticmethod
    def _paint(text: str, color: str, bold: bool = False) -> str:
        prefix = f"\033[1;{color}m" if bold else f"\033[{color}m"
        return f"{prefix}{text}\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_colors or color is None:
            return super().format(record)

        # copy so file and JSON handlers see the plain record
        painted = logging.makeLogRecord(record.__dict__)
        painted.levelname = self._paint(record.levelname, color, bold=True)
        if record.levelno >= logging.WARNING:
            painted.msg = self._paint(str(record.msg), color)
        return super().format(painted)


# LogRecord attributes that are not user-supplied ``extra`` fields
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields collected under ``"extra"``."""

    def __init__(self, include_extra: bool = True, pretty: bool = False):
        super().__init__()
        self.include_extra = include_extra
        self.indent = 2 if pretty else None

    def _extra(self, record: logging.LogRecord) -> Dict[str, Any]:
        extra = {}
        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = repr(value)
            extra[key] = value
        return extra

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.filename}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if self.include_extra:
            extra = self._extra(record)
            if extra:
                entry["extra"] = extra
        return json.dumps(entry, indent=self.indent, default=str)


@dataclass
class LoggingConfig:
    """Where stickctl log records go and at which level."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%H:%M:%S"

    console_enabled: bool = True
    console_colored: bool = True

    file_path: Optional[str] = None
    json_path: Optional[str] = None
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 3

    component_levels: Dict[str, LogLevel] = field(default_factory=dict)


class LoggingManager:
    """
    Owns the handlers attached to the ``stickctl`` root logger.

    There is one manager per process; ``LoggingManager()`` always returns it.
    Reconfiguring replaces every handler it installed earlier.
    """

    _instance: Optional["LoggingManager"] = None

    def __new__(cls) -> "LoggingManager":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._config = LoggingConfig()
            instance._handlers = {}
            instance._root = logging.getLogger(LogComponent.ROOT.value)
            cls._instance = instance
        return cls._instance

    @property
    def config(self) -> LoggingConfig:
        return self._config

    def configure(self, config: Optional[LoggingConfig] = None, **changes: Any) -> None:
        """Install ``config``, or apply ``changes`` to the current one, and rebuild handlers."""
        if config is not None:
            self._config = config
        for key, value in changes.items():
            if not hasattr(self._config, key):
                raise TypeError(f"Unknown logging option: {key}")
            setattr(self._config, key, value)
        self._install_handlers()

    def _rotating_handler(self, path: str, formatter: logging.Formatter) -> logging.Handler:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=self._config.max_bytes, backupCount=self._config.backup_count
        )
        handler.setFormatter(formatter)
        return handler

    def _install_handlers(self) -> None:
        cfg = self._config
        for handler in self._handlers.values():
            self._root.removeHandler(handler)
            handler.close()
        self._handlers = {}

        if cfg.console_enabled:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(
                ColoredFormatter(cfg.format, cfg.date_format, use_colors=cfg.console_colored)
            )
            self._handlers["console"] = console
        if cfg.file_path:
            self._handlers["file"] = self._rotating_handler(
                cfg.file_path, logging.Formatter(cfg.format, cfg.date_format)
            )
        if cfg.json_path:
            self._handlers["json"] = self._rotating_handler(cfg.json_path, JSONFormatter())

        self._root.setLevel(cfg.level.value)
        for handler in self._handlers.values():
            handler.setLevel(cfg.level.value)
            self._root.addHandler(handler)
        for name, level in cfg.component_levels.items():
            logging.getLogger(name).setLevel(level.value)

    def get_logger(
        self,
        component: Union[LogComponent, str],
        extra: Optional[Dict[str, Any]] = None,
    ) -> Union[logging.Logger, logging.LoggerAdapter]:
        """Return the component logger, wrapped in an adapter when ``extra`` context is given."""
        name = component.value if isinstance(component, LogComponent) else component
        logger = logging.getLogger(name)
        return logging.LoggerAdapter(logger, extra) if extra else logger

    def set_level(
        self,
        level: Union[LogLevel, str, int],
        component: Optional[Union[LogComponent, str]] = None,
    ) -> None:
        """Change the level of one component, or of the root logger and every handler."""
        if isinstance(level, str):
            level = LogLevel.from_string(level)
        elif isinstance(level, int):
            level = LogLevel(level)

        if component is not None:
            name = component.value if isinstance(component, LogComponent) else component
            self._config.component_levels[name] = level
            logging.getLogger(name).setLevel(level.value)
            return

        self._config.level = level
        self._root.setLevel(level.value)
        for handler in self._handlers.values():
            handler.setLevel(level.value)


def get_manager() -> LoggingManager:
    return LoggingManager()


def configure_logging(
    level: Union[LogLevel, str] = LogLevel.INFO,
    console: bool = True,
    colored: bool = True,
    file: Optional[str] = None,
    json_file: Optional[str] = None,
    **kwargs: Any,
) -> LoggingManager:
    """
    Configure stickctl logging in one call.

    Args:
        level: Level for the root logger and every handler
        console: Log to stdout
        colored: Color console output when stdout is a terminal
        file: Rotating plain-text log file
        json_file: Rotating JSON-lines log file
        **kwargs: Any other LoggingConfig field
    """
    if isinstance(level, str):
        level = LogLevel.from_string(level)
    manager = get_manager()
    manager.configure(
        LoggingConfig(
            level=level,
            console_enabled=console,
            console_colored=colored,
            file_path=file,
            json_path=json_file,
            **kwargs,
        )
    )
    return manager


def get_logger(
    component: Union[LogComponent, str] = LogComponent.ROOT,
    **extra: Any,
) -> Union[logging.Logger, logging.LoggerAdapter]:
    """
    Get a component logger.

    Keyword arguments become ``extra`` fields on every record, e.g.
    ``get_logger(LogComponent.ACTUATION, channel="mock")``.
    """
    return get_manager().get_logger(component, extra or None)


def set_level(
    level: Union[LogLevel, str, int],
    component: Optional[Union[LogComponent, str]] = None,
) -> None:
    get_manager().set_level(level, component)


def _describe_call(func: Callable[..., Any], args: Any, kwargs: Any, include_args: bool) -> str:
    if not include_args:
        return func.__name__
    # args[0] is self
    rendered = [repr(a) for a in args[1:]] + [f"{k}={v!r}" for k, v in kwargs.items()]
    return f"{func.__name__}({', '.join(rendered)})"


def _wrap(func: F, scope: Callable[[tuple, dict], Any]) -> F:
    """
    Wrap a sync or async function so every call runs inside ``scope(args, kwargs)``.

    ``scope`` is a context manager factory yielding a callback that receives
    the return value.
    """
    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with scope(args, kwargs) as on_result:
                result = await func(*args, **kwargs)
                on_result(result)
                return result
        return async_wrapper  # type: ignore[return-value]

    @wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        with scope(args, kwargs) as on_result:
            result = func(*args, **kwargs)
            on_result(result)
            return result
    return sync_wrapper  # type: ignore[return-value]


def log_call(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    include_args: bool = True,
    include_result: bool = False,
) -> Callable[[F], F]:
    """
    Log each call of a method, and any exception it raises (which is re-raised).

    Example:
        >>> @log_call(logger=logger, level=logging.INFO)
        ... async def takeoff(self):
        ...     ...
    """
    def decorator(func: F) -> F:
        _logger = logger or logging.getLogger(func.__module__)

        def on_result(result: Any) -> None:
            if include_result:
                _logger.log(level, f"{func.__name__} returned {result!r}")

        @contextmanager
        def scope(args: tuple, kwargs: dict) -> Iterator[Callable[[Any], None]]:
            _logger.log(level, f"Calling {_describe_call(func, args, kwargs, include_args)}")
            try:
                yield on_result
            except Exception as e:
                _logger.log(level, f"{func.__name__} raised {type(e).__name__}: {e}")
                raise

        return _wrap(func, scope)

    return decorator


def log_timing(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    threshold_ms: Optional[float] = None,
) -> Callable[[F], F]:
    """Log how long each call takes, optionally only when it exceeds ``threshold_ms``."""
    def decorator(func: F) -> F:
        _logger = logger or logging.getLogger(func.__module__)

        @contextmanager
        def scope(args: tuple, kwargs: dict) -> Iterator[Callable[[Any], None]]:
            start = time.perf_counter()
            try:
                yield lambda result: None
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                if threshold_ms is None or elapsed_ms >= threshold_ms:
                    _logger.log(level, f"{func.__name__} took {elapsed_ms:.2f}ms")

        return _wrap(func, scope)

    return decorator


__all__ = [
    "LogLevel",
    "LogComponent",
    "LoggingConfig",
    "LoggingManager",
    "ColoredFormatter",
    "JSONFormatter",
    "get_manager",
    "configure_logging",
    "get_logger",
    "set_level",
    "log_call",
    "log_timing",
]
