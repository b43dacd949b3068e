import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

import bson
from bson import SON, Binary, Code, Decimal128, Int64, MaxKey, MinKey, ObjectId, Regex, Timestamp

from mongo_appender.core.errors import FieldFormatError
from mongo_appender.lmt.diagnostics import DiagnosticsSink, stderr_diagnostics
from mongo_appender.lmt.fields import MongoAppenderField

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_BSON_NATIVE = (str, float, bytes, datetime, ObjectId, Int64, Decimal128, Binary, Timestamp, Regex, Code, MinKey, MaxKey)


def to_bson_value(value: Any) -> Any:
    """Coerce a layout result to the nearest BSON-native value.

    Values the driver already encodes natively are returned unchanged.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, Enum):
        return to_bson_value(value.value)
    if isinstance(value, int):
        if INT64_MIN <= value <= INT64_MAX:
            return value
        return str(value)
    if isinstance(value, SON):
        return SON((str(k), to_bson_value(v)) for k, v in value.items())
    if isinstance(value, _BSON_NATIVE):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, Mapping):
        return {str(k): to_bson_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_bson_value(item) for item in value]
    return str(value)


def build_document(
    record: logging.LogRecord,
    fields: Iterable[MongoAppenderField],
    diagnostics: Optional[DiagnosticsSink] = None,
) -> Dict[str, Any]:
    """
    Build the document persisted for one log record.

    Fields are added in registration order. A field without a layout is
    skipped. A failing layout only loses its own field: the failure goes to
    the diagnostics sink and building continues with the next field.
    """
    sink = diagnostics or stderr_diagnostics
    document: Dict[str, Any] = {}

    for field in fields:
        if field.layout is None:
            continue
        try:
            value = to_bson_value(field.layout.format(record))
            # e.g. a str holding a lone surrogate only fails once encoded
            bson.encode({field.name: value})
            document[field.name] = value
        except Exception as e:
            _report(sink, FieldFormatError(field.name, e))

    return document


def _report(sink: DiagnosticsSink, error: FieldFormatError) -> None:
    try:
        sink(error)
    except Exception:
        # the sink must not break the pipeline either
        stderr_diagnostics(error)
