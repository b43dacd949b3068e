import logging

import pytest

from mongo_appender.core.appender_settings import DEFAULT_FIELDS, AppenderSettings, FieldSetting
from mongo_appender.core.env_config import EnvConnectionStrings, read_env
from mongo_appender.core.errors import ConfigurationError
from mongo_appender.lmt.layouts import LevelLayout, PatternLayout, PropertyLayout


class TestAppenderSettings:
    """Test cases for appender settings."""

    def test_defaults(self):
        settings = AppenderSettings()

        assert settings.connection_string is None
        assert settings.collection_name is None
        assert settings.buffer_size == 512
        assert settings.flush_level == logging.ERROR
        assert settings.bulk_insert is False
        assert [f.name for f in settings.fields] == [f.name for f in DEFAULT_FIELDS]

    def test_aliases(self):
        settings = AppenderSettings.from_mapping({
            "ConnectionString": "mongodb://localhost",
            "ConnectionStringName": "Logs",
            "CollectionName": "events",
            "BufferSize": "10",
            "StrictConnectionStringName": "true",
        })

        assert settings.connection_string == "mongodb://localhost"
        assert settings.connection_string_name == "Logs"
        assert settings.collection_name == "events"
        assert settings.buffer_size == 10
        assert settings.strict_connection_string_name is True

    @pytest.mark.parametrize("value, expected", [("warning", logging.WARNING), ("50", 50), (10, 10)])
    def test_flush_level(self, value, expected):
        assert AppenderSettings(flush_level=value).flush_level == expected

    def test_invalid_flush_level(self):
        with pytest.raises(ConfigurationError):
            AppenderSettings.from_mapping({"FlushLevel": "LOUD"})

    def test_invalid_buffer_size(self):
        with pytest.raises(ConfigurationError):
            AppenderSettings.from_mapping({"BufferSize": "many"})

    def test_build_fields(self):
        settings = AppenderSettings(fields=[
            FieldSetting(name="level", layout="level"),
            FieldSetting(name="logger", layout={"type": "pattern", "fmt": "%(name)s"}),
            FieldSetting(name="user", layout={"type": "property", "attribute": "user_id", "default": None}),
            FieldSetting(name="disabled"),
        ])

        fields = settings.build_fields()

        assert [f.name for f in fields] == ["level", "logger", "user", "disabled"]
        assert isinstance(fields[0].layout, LevelLayout)
        assert isinstance(fields[1].layout, PatternLayout)
        assert isinstance(fields[2].layout, PropertyLayout)
        assert fields[3].layout is None

    def test_build_fields_unknown_layout(self):
        settings = AppenderSettings(fields=[FieldSetting(name="x", layout="bogus")])

        with pytest.raises(ConfigurationError):
            settings.build_fields()

    def test_default_fields_not_shared(self):
        first = AppenderSettings()
        first.fields.append(FieldSetting(name="extra"))

        assert len(AppenderSettings().fields) == len(DEFAULT_FIELDS)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MONGOAPPENDER__CONNECTIONSTRING", "mongodb://envhost/envdb")
        monkeypatch.setenv("MONGOAPPENDER__BUFFERSIZE", "25")
        monkeypatch.setenv("MONGOAPPENDER__FLUSHLEVEL", "CRITICAL")

        settings = AppenderSettings.from_env()

        assert settings.connection_string == "mongodb://envhost/envdb"
        assert settings.buffer_size == 25
        assert settings.flush_level == logging.CRITICAL


class TestEnvConfig:
    """Test cases for environment backed configuration."""

    def test_read_env_skips_unset(self, monkeypatch):
        monkeypatch.setenv("TEST__PRESENT", "yes")
        monkeypatch.delenv("TEST__ABSENT", raising=False)

        assert read_env(["PRESENT", "ABSENT"], prefix="TEST__") == {"PRESENT": "yes"}

    def test_named_connection_string(self, monkeypatch):
        monkeypatch.setenv("CONNECTIONSTRINGS__MONGOLOGS", "mongodb://named/db")

        assert EnvConnectionStrings().lookup("MongoLogs") == "mongodb://named/db"

    def test_missing_named_connection_string(self, monkeypatch):
        monkeypatch.delenv("CONNECTIONSTRINGS__NOPE", raising=False)

        assert EnvConnectionStrings().lookup("nope") is None
