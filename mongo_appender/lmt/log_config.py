import logging
from logging import StreamHandler
from typing import Any, Optional

import structlog
from pymongo import MongoClient

from mongo_appender.core.appender_settings import AppenderSettings
from mongo_appender.lmt.connection import ConnectionStringLookup
from mongo_appender.lmt.diagnostics import DiagnosticsSink
from mongo_appender.lmt.mongo_appender import MongoDbAppender
from mongo_appender.lmt.trace_context import TraceContextFilter


def create_appender(
    settings: Optional[AppenderSettings] = None,
    connection_strings: Optional[ConnectionStringLookup] = None,
    diagnostics: Optional[DiagnosticsSink] = None,
    client_factory=MongoClient,
    **options: Any,
) -> MongoDbAppender:
    """
    Build and activate an appender.

    Also usable as a logging.config.dictConfig handler factory:

        "mongo": {"()": "mongo_appender.lmt.log_config.create_appender",
                  "ConnectionString": "mongodb://localhost/app", "BufferSize": 10}
    """
    if settings is None:
        settings = AppenderSettings.from_mapping(options)

    appender = MongoDbAppender(
        connection_string=settings.connection_string,
        connection_string_name=settings.connection_string_name,
        collection_name=settings.collection_name,
        fields=settings.build_fields(),
        buffer_size=settings.buffer_size,
        flush_level=settings.flush_level,
        connection_strings=connection_strings,
        diagnostics=diagnostics,
        client_factory=client_factory,
        strict_connection_string_name=settings.strict_connection_string_name,
        bulk_insert=settings.bulk_insert,
    )
    appender.activate_options()
    appender.addFilter(TraceContextFilter())
    return appender


def configure_logger(
    settings: Optional[AppenderSettings] = None,
    level: int = logging.INFO,
    console: bool = True,
    **kwargs: Any,
) -> MongoDbAppender:
    """Replace the root logger's handlers with a MongoDB appender (and a console handler)"""
    if settings is None:
        settings = AppenderSettings.from_env()

    appender = create_appender(settings, **kwargs)

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    root.addHandler(appender)
    if console:
        console_handler = StreamHandler()
        console_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(console_handler)
    root.setLevel(level)

    return appender


def configure_structlog() -> None:
    """
    Send structlog events through stdlib logging.

    Bound key/values end up as attributes on the LogRecord, so they can be
    stored with PropertyLayout. exc_info is passed through untouched for
    ExceptionLayout.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.render_to_log_kwargs,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
