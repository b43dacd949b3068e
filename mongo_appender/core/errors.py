from pymongo.errors import PyMongoError


class MongoAppenderError(Exception):
    """Base class for appender errors"""


class ConfigurationError(MongoAppenderError):
    """Raised when the appender cannot be configured or activated"""


class AppenderNotActivatedError(MongoAppenderError, RuntimeError):
    """Raised when events are appended before activate_options() succeeded"""


class FieldFormatError(MongoAppenderError):
    """A single field layout failed while building a document.

    Never raised out of the document builder, only handed to the diagnostics sink.
    """

    def __init__(self, field_name: str, cause: BaseException):
        super().__init__(f"Failed to format field '{field_name}': {cause!r}")
        self.field_name = field_name
        self.cause = cause


# Write failures are the driver's own errors and propagate unchanged
PersistenceError = PyMongoError
