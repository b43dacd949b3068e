import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mongo_appender.core.env_config import read_env
from mongo_appender.core.errors import ConfigurationError
from mongo_appender.lmt.fields import MongoAppenderField
from mongo_appender.lmt.layouts import create_layout

ENV_PREFIX = "MONGOAPPENDER__"


class FieldSetting(BaseModel):
    name: str
    layout: Union[str, Dict[str, Any], None] = None


DEFAULT_FIELDS: List[FieldSetting] = [
    FieldSetting(name="timestamp", layout="timestamp"),
    FieldSetting(name="level", layout="level"),
    FieldSetting(name="thread", layout="thread"),
    FieldSetting(name="logger", layout={"type": "property", "attribute": "name"}),
    FieldSetting(name="message", layout="message"),
    FieldSetting(name="exception", layout="exception"),
]


class AppenderSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    connection_string: Optional[str] = Field(default=None, alias="ConnectionString")
    connection_string_name: Optional[str] = Field(default=None, alias="ConnectionStringName")
    collection_name: Optional[str] = Field(default=None, alias="CollectionName")
    buffer_size: int = Field(default=512, alias="BufferSize")
    flush_level: int = Field(default=logging.ERROR, alias="FlushLevel")
    strict_connection_string_name: bool = Field(default=False, alias="StrictConnectionStringName")
    bulk_insert: bool = Field(default=False, alias="BulkInsert")
    fields: List[FieldSetting] = Field(default_factory=lambda: [f.model_copy() for f in DEFAULT_FIELDS], alias="Fields")

    @field_validator("flush_level", mode="before")
    @classmethod
    def _parse_level(cls, value):
        if isinstance(value, str) and not value.isdigit():
            level = logging.getLevelName(value.upper())
            if not isinstance(level, int):
                raise ValueError(f"Unknown log level '{value}'")
            return level
        return value

    @classmethod
    def from_mapping(cls, values: Dict[str, Any]) -> "AppenderSettings":
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid appender settings: {e}") from e

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "AppenderSettings":
        """Read scalar options from the environment, e.g. MONGOAPPENDER__CONNECTIONSTRING"""
        keys = {alias.upper(): alias for alias in (f.alias for f in cls.model_fields.values()) if alias != "Fields"}
        raw = read_env(keys.keys(), prefix=prefix)
        return cls.from_mapping({keys[k]: v for k, v in raw.items()})

    def build_fields(self) -> List[MongoAppenderField]:
        return [MongoAppenderField(name=f.name, layout=create_layout(f.layout)) for f in self.fields]
