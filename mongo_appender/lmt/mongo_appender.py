import logging
import threading
from contextlib import contextmanager
from logging.handlers import BufferingHandler
from typing import Any, Callable, Iterable, List, Optional

from pymongo import MongoClient

from mongo_appender.core.env_config import EnvConnectionStrings
from mongo_appender.core.errors import AppenderNotActivatedError, ConfigurationError
from mongo_appender.lmt.connection import (
    ConnectionStringLookup,
    ConnectionTarget,
    resolve_connection_string,
    resolve_target,
)
from mongo_appender.lmt.diagnostics import DiagnosticsSink, stderr_diagnostics
from mongo_appender.lmt.document_builder import build_document
from mongo_appender.lmt.fields import FieldRegistry, MongoAppenderField

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 512
DRIVER_LOGGER = "pymongo"


class DriverLogFilter(logging.Filter):
    """Drops the driver's own records; storing them would log from inside a write"""

    def filter(self, record: logging.LogRecord) -> bool:
        return not (record.name == DRIVER_LOGGER or record.name.startswith(DRIVER_LOGGER + "."))


class MongoDbAppender(BufferingHandler):
    """
    Logging handler that saves each log record to MongoDB as one document.

    Records are buffered by the standard BufferingHandler machinery. When the
    buffer is flushed every record is turned into a document according to the
    configured fields and inserted on its own, in order.

    The appender must be activated with activate_options() once its options
    and fields are set, and again if they change.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        connection_string_name: Optional[str] = None,
        collection_name: Optional[str] = None,
        fields: Optional[Iterable[MongoAppenderField]] = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        flush_level: int = logging.ERROR,
        connection_strings: Optional[ConnectionStringLookup] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
        client_factory: Callable[[str], Any] = MongoClient,
        strict_connection_string_name: bool = False,
        bulk_insert: bool = False,
        level: int = logging.NOTSET,
    ):
        super().__init__(capacity=max(buffer_size, 1))
        self.setLevel(level)
        self.connection_string = connection_string
        self.connection_string_name = connection_string_name
        self.collection_name = collection_name
        self.flush_level = flush_level
        self.connection_strings = connection_strings or EnvConnectionStrings().lookup
        self.diagnostics = diagnostics or stderr_diagnostics
        self.client_factory = client_factory
        self.strict_connection_string_name = strict_connection_string_name
        self.bulk_insert = bulk_insert

        self._fields = FieldRegistry()
        for field in fields or ():
            self._fields.register(field)

        self._target: Optional[ConnectionTarget] = None
        self._client = None
        self._collection = None
        self._sending = threading.local()
        self.addFilter(DriverLogFilter())

    @property
    def fields(self) -> List[MongoAppenderField]:
        return self._fields.list()

    @property
    def target(self) -> Optional[ConnectionTarget]:
        return self._target

    @property
    def is_active(self) -> bool:
        return self._collection is not None

    def add_field(self, field: MongoAppenderField) -> None:
        self._fields.register(field)

    def activate_options(self) -> None:
        """Resolve the target collection. Leaves the appender untouched on failure."""
        connection_string = resolve_connection_string(
            self.connection_string,
            self.connection_string_name,
            self.connection_strings,
            strict=self.strict_connection_string_name,
        )
        target = resolve_target(connection_string, self.collection_name)

        try:
            client = self.client_factory(connection_string)
            collection = client[target.database][target.collection]
        except Exception as e:
            raise ConfigurationError(f"Could not open collection {target.database}.{target.collection}: {e}") from e

        previous_client = self._client
        self._client = client
        self._collection = collection
        self._target = target

        if previous_client is not None and previous_client is not client:
            previous_client.close()

        logger.info(f"MongoDbAppender writing to {target.endpoint}/{target.database}.{target.collection}")

    def append(self, record: logging.LogRecord) -> None:
        """Build the document for one record and insert it immediately"""
        collection = self._get_collection()
        document = build_document(record, self._fields, self.diagnostics)
        with self._send_guard():
            collection.insert_one(document)

    def send_buffer(self, records: Iterable[logging.LogRecord]) -> None:
        """Persist a batch of records, one document per record, in order"""
        if not self.bulk_insert:
            for record in records:
                self.append(record)
            return

        records = list(records)
        if not records:
            return
        collection = self._get_collection()
        # ordered: the first failed insert stops the rest of the batch
        documents = [build_document(record, self._fields, self.diagnostics) for record in records]
        with self._send_guard():
            collection.insert_many(documents, ordered=True)

    def _get_collection(self):
        if self._collection is None:
            raise AppenderNotActivatedError("MongoDbAppender used before activate_options() was called")
        return self._collection

    @contextmanager
    def _send_guard(self):
        self._sending.depth = getattr(self._sending, "depth", 0) + 1
        try:
            yield
        finally:
            self._sending.depth -= 1

    def _is_sending(self) -> bool:
        return getattr(self._sending, "depth", 0) > 0

    # logging.Handler interface

    def shouldFlush(self, record: logging.LogRecord) -> bool:
        return len(self.buffer) >= self.capacity or record.levelno >= self.flush_level

    def emit(self, record: logging.LogRecord) -> None:
        try:
            super().emit(record)
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        # Records logged on this thread while a write is in progress stay buffered
        if self._is_sending():
            return
        with self.lock:
            # Taken out of the buffer before sending; a failed batch is not retried
            records, self.buffer = self.buffer, []
            self.send_buffer(records)

    def close(self) -> None:
        try:
            super().close()
        finally:
            if self._client is not None:
                self._client.close()
            self._client = None
            self._collection = None
