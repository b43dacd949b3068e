import logging
from typing import Optional, Tuple

from opentelemetry.trace import get_current_span


def get_trace_context() -> Tuple[Optional[str], Optional[str]]:
    ctx = get_current_span().get_span_context()
    if not ctx or not ctx.is_valid:
        return None, None
    return f"{ctx.trace_id:032x}", f"{ctx.span_id:016x}"


class TraceContextFilter(logging.Filter):
    """
    Stamps the active span's ids on the record when it is logged.

    Records are formatted later, on flush, so the ids have to be captured
    here. Store them with PropertyLayout("TraceId") / PropertyLayout("SpanId").
    """

    def filter(self, record: logging.LogRecord) -> bool:
        trace_id, span_id = get_trace_context()
        record.TraceId = trace_id
        record.SpanId = span_id
        return True
