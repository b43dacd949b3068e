import sys
from pathlib import Path

# Add project root to Python path - must be done VERY early, before any imports
project_root = Path(__file__).parent.parent.resolve()
project_root_str = str(project_root)

if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

import logging
import pytest
from unittest.mock import MagicMock


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test."""
    root_logger = logging.getLogger()
    original_level = root_logger.level
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    yield
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def mock_mongo():
    """Mock pymongo client factory; client[db][collection] always returns the same collection."""
    collection = MagicMock(name="collection")
    database = MagicMock(name="database")
    database.__getitem__.return_value = collection
    client = MagicMock(name="client")
    client.__getitem__.return_value = database
    factory = MagicMock(name="client_factory", return_value=client)
    return {
        "factory": factory,
        "client": client,
        "database": database,
        "collection": collection,
    }


@pytest.fixture
def sample_connection_string():
    return "mongodb://localhost/mydb"


@pytest.fixture
def diagnostics():
    """Collected FieldFormatErrors; pass ``diagnostics.append`` as the sink."""
    return []


@pytest.fixture
def make_record():
    def _make(msg="a log", level=logging.INFO, exc_info=None, name="tests", **extra):
        record = logging.LogRecord(
            name=name,
            level=level,
            pathname=__file__,
            lineno=1,
            msg=msg,
            args=(),
            exc_info=exc_info,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    return _make
