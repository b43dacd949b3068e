import sys
import traceback
from typing import Callable

from mongo_appender.core.errors import FieldFormatError

DiagnosticsSink = Callable[[FieldFormatError], None]


def stderr_diagnostics(error: FieldFormatError) -> None:
    """Default sink: write the failure and its traceback to stderr and carry on"""
    stream = sys.stderr
    print(f"[MongoDbAppender] {error}", file=stream)
    traceback.print_exception(type(error.cause), error.cause, error.cause.__traceback__, file=stream)
