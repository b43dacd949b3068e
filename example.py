"""
Example showing how to store application logs in MongoDB.
Expects MONGOAPPENDER__CONNECTIONSTRING (or a .env file), e.g. mongodb://localhost:27017/app
"""

import logging

import structlog
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider

from mongo_appender.core.appender_settings import AppenderSettings, DEFAULT_FIELDS, FieldSetting
from mongo_appender.lmt.log_config import configure_logger, configure_structlog

# ============================================================================
# STEP 1: Configure the appender
# ============================================================================

settings = AppenderSettings.from_env()
settings.buffer_size = 10
settings.fields = DEFAULT_FIELDS + [
    FieldSetting(name="traceId", layout={"type": "property", "attribute": "TraceId"}),
    FieldSetting(name="userId", layout={"type": "property", "attribute": "user_id", "default": None}),
]

appender = configure_logger(settings)
configure_structlog()

trace.set_tracer_provider(TracerProvider())
tracer = trace.get_tracer("example")

logger = logging.getLogger(__name__)

# ============================================================================
# STEP 2: Log
# ============================================================================

if __name__ == "__main__":
    logger.info("Example started")

    with tracer.start_as_current_span("handle_request"):
        logger.info("Handling request", extra={"user_id": 42})
        structlog.get_logger("example").info("structlog event", user_id=7)

    try:
        raise ValueError("BOOM")
    except ValueError:
        # ERROR and above flush the buffer straight away
        logger.exception("Something failed")

    logging.shutdown()
