import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from pymongo.errors import PyMongoError
from pymongo.uri_parser import parse_uri

from mongo_appender.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "log4net"
DEFAULT_COLLECTION_NAME = "logs"
DEFAULT_PORT = 27017

ConnectionStringLookup = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class ConnectionTarget:
    endpoint: str
    database: str
    collection: str


def resolve_connection_string(
    connection_string: Optional[str],
    connection_string_name: Optional[str] = None,
    lookup: Optional[ConnectionStringLookup] = None,
    strict: bool = False,
) -> str:
    """
    Pick the connection string the appender should use.

    A configured name that resolves through ``lookup`` wins and the explicit
    string is ignored. A name that does not resolve falls back to the explicit
    string, unless ``strict`` is set, in which case it is a configuration error.
    """
    if connection_string_name:
        named = lookup(connection_string_name) if lookup else None
        if named:
            return named
        if strict:
            raise ConfigurationError(f"Connection string name '{connection_string_name}' could not be resolved")
        logger.warning(
            f"Connection string name '{connection_string_name}' not found, using the configured connection string"
        )

    if not connection_string:
        raise ConfigurationError("No connection string configured")
    return connection_string


def resolve_target(connection_string: str, collection_name: Optional[str] = None) -> ConnectionTarget:
    """Derive the database and collection to write to from a MongoDB URI"""
    try:
        parsed = parse_uri(connection_string)
    except (PyMongoError, ValueError) as e:
        raise ConfigurationError(f"Invalid MongoDB connection string: {e}") from e

    return ConnectionTarget(
        endpoint=_format_endpoint(parsed["nodelist"]),
        database=parsed.get("database") or DEFAULT_DATABASE_NAME,
        collection=collection_name or DEFAULT_COLLECTION_NAME,
    )


def _format_endpoint(nodelist: Iterable[Tuple[str, int]]) -> str:
    return ",".join(host if port == DEFAULT_PORT else f"{host}:{port}" for host, port in nodelist)
