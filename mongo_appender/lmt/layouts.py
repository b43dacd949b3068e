import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Type, Union, runtime_checkable

from mongo_appender.core.errors import ConfigurationError

_MISSING = object()


@runtime_checkable
class FieldLayout(Protocol):
    """Converts a log record into the value stored under one document field"""

    def format(self, record: logging.LogRecord) -> Any:
        ...


class RawTimestampLayout:
    """Event time as a UTC datetime, stored as a BSON date"""

    def format(self, record: logging.LogRecord) -> datetime:
        return datetime.fromtimestamp(record.created, tz=timezone.utc)


class LevelLayout:
    def format(self, record: logging.LogRecord) -> str:
        return record.levelname


class MessageLayout:
    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


class ThreadLayout:
    def format(self, record: logging.LogRecord) -> str:
        return record.threadName


class ExceptionLayout:
    """Rendered traceback of the attached exception, empty when there is none"""

    def __init__(self):
        self._formatter = logging.Formatter()

    def format(self, record: logging.LogRecord) -> str:
        if not record.exc_info:
            return record.exc_text or ""
        return self._formatter.formatException(record.exc_info)


class PropertyLayout:
    """Reads one attribute of the record, e.g. values passed with ``extra=``"""

    def __init__(self, attribute: str, default: Any = _MISSING):
        self.attribute = attribute
        self.default = default

    def format(self, record: logging.LogRecord) -> Any:
        if self.default is _MISSING:
            return getattr(record, self.attribute)
        return getattr(record, self.attribute, self.default)


class PatternLayout:
    """Renders the record through a ``logging.Formatter`` pattern"""

    def __init__(self, fmt: str, datefmt: Optional[str] = None, style: str = "%"):
        self._formatter = logging.Formatter(fmt=fmt, datefmt=datefmt, style=style)

    def format(self, record: logging.LogRecord) -> str:
        # Works on a copy: Formatter.format caches message and exc_text on the record
        # and appends the traceback, which belongs to the exception field
        rec = logging.makeLogRecord(record.__dict__)
        rec.message = rec.getMessage()
        if self._formatter.usesTime():
            rec.asctime = self._formatter.formatTime(rec, self._formatter.datefmt)
        return self._formatter.formatMessage(rec)


class CallableLayout:
    def __init__(self, func: Callable[[logging.LogRecord], Any]):
        self.func = func

    def format(self, record: logging.LogRecord) -> Any:
        return self.func(record)


LAYOUT_TYPES: Dict[str, Type] = {
    "timestamp": RawTimestampLayout,
    "level": LevelLayout,
    "message": MessageLayout,
    "thread": ThreadLayout,
    "exception": ExceptionLayout,
    "property": PropertyLayout,
    "pattern": PatternLayout,
}


def create_layout(declaration: Union[str, Mapping[str, Any], FieldLayout, None]) -> Optional[FieldLayout]:
    """
    Build a layout from its declarative form.

    Accepts a type name ("level"), a mapping with a "type" key plus constructor
    options ({"type": "pattern", "fmt": "%(name)s"}), a ready layout object,
    a plain callable, or None (field is skipped at build time).
    """
    if declaration is None:
        return None

    # str has a format() method too, so declarative forms are checked first
    if isinstance(declaration, str):
        layout_type, options = declaration, {}
    elif isinstance(declaration, Mapping):
        options = dict(declaration)
        layout_type = options.pop("type", None)
    elif isinstance(declaration, FieldLayout):
        return declaration
    elif callable(declaration):
        return CallableLayout(declaration)
    else:
        raise ConfigurationError(f"Unsupported layout declaration: {declaration!r}")

    layout_cls = LAYOUT_TYPES.get(str(layout_type).lower()) if layout_type else None
    if layout_cls is None:
        raise ConfigurationError(
            f"Unknown layout type '{layout_type}', expected one of: {', '.join(LAYOUT_TYPES)}"
        )

    try:
        return layout_cls(**options)
    except TypeError as e:
        raise ConfigurationError(f"Invalid options for layout '{layout_type}': {e}") from e
