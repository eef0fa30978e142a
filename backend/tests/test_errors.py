"""
Test Suite for Structured Errors and Settings.

Tests:
- Error serialization and codes
- ErrorHandler bookkeeping
- Settings defaults
"""


class TestConverterErrors:
    """Tests for the exception hierarchy."""

    def test_unmapped_type_error(self):
        from flowbridge.core.errors import UnmappedTypeError

        error = UnmappedTypeError("No mapping", node_type="x:y")

        data = error.to_dict()
        assert str(error) == "[E2001] No mapping"
        assert data["recoverable"] is True
        assert data["context"] == {"node_type": "x:y"}
        assert data["suggestion"]

    def test_file_error_context(self):
        from flowbridge.core.errors import ErrorCode, FileError

        error = FileError("Missing", file_path="a.json")

        assert error.code == ErrorCode.FILE_NOT_FOUND
        assert error.context.to_dict() == {"file_path": "a.json"}


class TestErrorHandler:
    """Tests for ErrorHandler."""

    def test_handle_and_summary(self):
        from flowbridge.core.errors import AmbiguousExpressionError, ErrorHandler

        handler = ErrorHandler()
        handler.handle(AmbiguousExpressionError("Ambiguous", expression="$items()"))
        wrapped = handler.handle(ValueError("bad value"))
        handler.add_warning("careful")

        assert wrapped.code.value == "E9999"
        assert wrapped.cause.args == ("bad value",)
        assert handler.has_errors()
        assert handler.summary() == {
            "error_count": 2,
            "warning_count": 1,
            "recoverable_count": 1,
            "error_codes": ["E3001", "E9999"],
        }

    def test_clear(self):
        from flowbridge.core.errors import ErrorHandler

        handler = ErrorHandler()
        handler.add_warning("one")
        handler.clear()

        assert handler.get_warnings() == []
        assert not handler.has_errors()


class TestSettings:
    """Tests for configuration defaults."""

    def test_defaults(self, monkeypatch):
        from flowbridge.core.config import Settings

        monkeypatch.delenv("DEFAULT_MAPPING_ACCURACY", raising=False)

        config = Settings(_env_file=None)

        assert config.default_mapping_accuracy == 0
        assert config.default_module_ref == 1
        assert "weather-integration" in config.enabled_plugins

    def test_environment_override(self, monkeypatch):
        from flowbridge.core.config import Settings

        monkeypatch.setenv("DEFAULT_MAPPING_ACCURACY", "80")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = Settings(_env_file=None)

        assert config.default_mapping_accuracy == 80
        assert config.log_level_name == "DEBUG"
