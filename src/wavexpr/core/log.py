from __future__ import annotations

"""
wavexpr.core.log
================

Structured logging for the engine, silent unless the host application opts in.

Call sites pass fields as keywords:
    log.debug("expr.compiled", event="expr.compiled", expr=src, mode="single_frame")

Per-call fields (expression source, mode, grid shape) are bound once with
`log_context(...)` and attached to every record emitted inside the block by
the JSON and human formatters. The engine logs per call (compile, apply),
never per sample.

Env switches (see configure_from_env): WAVEXPR_LOG_STDOUT, WAVEXPR_LOG_LEVEL,
WAVEXPR_LOG_PRETTY, WAVEXPR_LOG_STACK.
"""

import contextvars
import json
import logging
import os
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import IO, Any, ClassVar, Final

__all__ = [
    "HumanFormatter",
    "JsonFormatter",
    "bind_context",
    "configure_from_env",
    "disable_stdout_logging",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
    "set_level",
    "warn_once",
]

ROOT_LOGGER_NAME: Final[str] = "wavexpr"

# ---- bound context -----------------------------------------------------------

_fields: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar("wavexpr_log_fields", default={})


def _merged(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Current context plus `fields`; None values are dropped."""
    return {**_fields.get(), **{k: v for k, v in fields.items() if v is not None}}


def bind_context(**fields: Any) -> None:
    """Add fields to the context of the current task/thread until it ends."""
    _fields.set(_merged(fields))


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Add fields for the duration of the block (e.g. one apply call)."""
    token = _fields.set(_merged(fields))
    try:
        yield
    finally:
        _fields.reset(token)


# ---- formatters --------------------------------------------------------------

# Attributes every LogRecord carries; extra fields must not shadow them.
_RESERVED: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

# Context keys shown inline by the human formatter.
_HUMAN_KEYS: Final[tuple[str, ...]] = ("expr", "mode", "frames", "samples")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED}


def _utc_timestamp(created: float) -> str:
    stamp = datetime.fromtimestamp(created, tz=UTC).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record: ts, level, logger, message, the bound context,
    the record's own fields (which win over context on a clash) and an `error`
    object when exception info is attached.
    """

    def __init__(self, *, include_stack: bool = False) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        doc: dict[str, Any] = {
            "ts": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
        }
        message = record.getMessage()
        if message:
            doc["message"] = message
        doc.update(_fields.get())
        doc.update(_extra_fields(record))
        if record.exc_info:
            doc["error"] = self._error(record)
        return json.dumps(doc, ensure_ascii=False, separators=(",", ":"), default=str)

    def _error(self, record: logging.LogRecord) -> dict[str, Any]:
        exc_type, exc, _ = record.exc_info  # type: ignore[misc]
        error: dict[str, Any] = {
            "type": exc_type.__name__ if exc_type else "Exception",
            "message": str(exc) if exc else None,
        }
        if self.include_stack:
            error["stack"] = self.formatException(record.exc_info)  # type: ignore[arg-type]
        return error


class HumanFormatter(logging.Formatter):
    """`time LEVEL logger: message  [expr=..., mode=..., frames=..., samples=...]`"""

    default_time_format = "%H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        line = f"{self.formatTime(record)} {record.levelname:<5} {record.name}: {record.getMessage()}"
        ctx = _fields.get()
        shown = [f"{k}={ctx[k]}" for k in _HUMAN_KEYS if ctx.get(k) is not None]
        if shown:
            line += "  [" + ", ".join(shown) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _KwExtraAdapter(logging.LoggerAdapter):
    """
    Moves keyword fields into `extra`. A field named like a LogRecord
    attribute is stored as `field_<name>`.
    """

    _logging_kwargs: ClassVar[frozenset[str]] = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        for key in [k for k in kwargs if k not in self._logging_kwargs]:
            value = kwargs.pop(key)
            extra.setdefault(f"field_{key}" if key in _RESERVED else key, value)
        kwargs["extra"] = extra
        return msg, kwargs


# ---- one-shot warnings -------------------------------------------------------

_warned: set[str] = set()
_warned_lock = threading.Lock()


def warn_once(
    logger: logging.Logger | logging.LoggerAdapter,
    code: str,
    msg: str,
    *,
    level: int = logging.WARNING,
    **fields: Any,
) -> None:
    """Log `msg` the first time `code` is seen in this process; later calls are dropped."""
    with _warned_lock:
        first = code not in _warned
        _warned.add(code)
    if not first:
        return
    adapter = logger if isinstance(logger, _KwExtraAdapter) else _KwExtraAdapter(logger, {})
    adapter.log(level, msg, code=code, **fields)


# ---- configuration -----------------------------------------------------------

_STDOUT_HANDLER: Final[str] = "wavexpr.stdout"
_STDERR_HANDLER: Final[str] = "wavexpr.stderr"


def _root() -> logging.Logger:
    lg = logging.getLogger(ROOT_LOGGER_NAME)
    if not any(isinstance(h, logging.NullHandler) for h in lg.handlers):
        # library default: no output and WARNING threshold until configured
        lg.addHandler(logging.NullHandler())
        if lg.level == logging.NOTSET:
            lg.setLevel(logging.WARNING)
    return lg


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def _level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Invalid level name: {level!r}")
    return value


def _stream_handler(stream: IO[str], name: str, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.set_name(name)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    """Adapter for `wavexpr` or `wavexpr.<name>` that accepts keyword fields."""
    root = _root()
    return _KwExtraAdapter(root.getChild(name) if name else root, {})


def set_level(level: int | str) -> None:
    """Threshold for the whole `wavexpr` logger tree."""
    _root().setLevel(_level(level))


def enable_stdout_logging(
    *,
    level: int | str = logging.DEBUG,
    json_output: bool = True,
    include_stack: bool = False,
    pretty: bool = False,
    route_errors_to_stderr: bool = False,
) -> None:
    """
    Replace any handlers installed by a previous call with fresh stream handlers.

    pretty picks HumanFormatter, otherwise json_output picks JSON or plain text.
    With route_errors_to_stderr, ERROR and above go to stderr and the rest to stdout.
    """
    lvl = _level(level)
    root = _root()
    root.setLevel(min(root.level or lvl, lvl))
    disable_stdout_logging()

    if pretty:
        formatter: logging.Formatter = HumanFormatter()
    elif json_output:
        formatter = JsonFormatter(include_stack=include_stack)
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    out = _stream_handler(sys.stdout, _STDOUT_HANDLER, lvl, formatter)
    if route_errors_to_stderr:
        out.addFilter(lambda record: record.levelno < logging.ERROR)
        root.addHandler(_stream_handler(sys.stderr, _STDERR_HANDLER, max(lvl, logging.ERROR), formatter))
    root.addHandler(out)


def disable_stdout_logging() -> None:
    root = _root()
    for handler in [h for h in root.handlers if h.get_name() in (_STDOUT_HANDLER, _STDERR_HANDLER)]:
        root.removeHandler(handler)


def configure_from_env() -> None:
    """
    Apply the WAVEXPR_LOG_* environment:
      WAVEXPR_LOG_LEVEL   level name, default WARNING
      WAVEXPR_LOG_STDOUT  1/true: attach a stdout handler (otherwise detach it)
      WAVEXPR_LOG_PRETTY  1/true: human formatter instead of JSON
      WAVEXPR_LOG_STACK   1/true: include stack traces in JSON errors
    """
    level = os.getenv("WAVEXPR_LOG_LEVEL", "WARNING")
    set_level(level)
    if not _env_flag("WAVEXPR_LOG_STDOUT"):
        disable_stdout_logging()
        return
    pretty = _env_flag("WAVEXPR_LOG_PRETTY")
    enable_stdout_logging(
        level=level,
        json_output=not pretty,
        include_stack=_env_flag("WAVEXPR_LOG_STACK"),
        pretty=pretty,
    )


_root()
