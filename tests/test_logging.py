"""Tests for structured logging setup."""
import argparse
import json
import logging

import pytest

from termreel.utils.logging import (
    JSONFormatter,
    LogConfig,
    TextFormatter,
    configure_from_cli,
    configure_logging,
    get_cli_args_parser,
    get_logger,
    parse_component_level,
)


def make_record(message="Frame queued", extra_fields=None) -> logging.LogRecord:
    record = logging.LogRecord(
        name="termreel.reader",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    if extra_fields is not None:
        record.extra_fields = extra_fields
    return record


class TestLogConfig:
    """Tests for LogConfig validation."""

    def test_defaults(self):
        config = LogConfig()
        assert config.log_level == "WARNING"
        assert config.log_format == "text"
        assert config.log_file is None

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            LogConfig(log_level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            LogConfig(log_format="xml")

    def test_invalid_component_level(self):
        with pytest.raises(ValueError):
            LogConfig(component_levels={"reader": "LOUD"})

    def test_levels_normalized(self):
        config = LogConfig(log_level="info", component_levels={"supervisor": "debug"})
        assert config.log_level == "INFO"
        assert config.component_levels == {"supervisor": "DEBUG"}

    def test_lowest_level(self):
        assert LogConfig().lowest_level == logging.WARNING
        assert LogConfig(component_levels={"supervisor": "DEBUG"}).lowest_level == logging.DEBUG


class TestFormatters:
    """Tests for the text and JSON formatters."""

    def test_json_formatter(self):
        output = JSONFormatter().format(make_record(extra_fields={"index": 12}))
        data = json.loads(output)
        assert data["level"] == "INFO"
        assert data["component"] == "reader"
        assert data["message"] == "Frame queued"
        assert data["index"] == 12
        assert data["timestamp"].endswith("Z")

    def test_json_formatter_source(self):
        data = json.loads(JSONFormatter(include_source=True).format(make_record()))
        assert data["source"]["line"] == 10

    def test_text_formatter_extra_fields(self):
        output = TextFormatter(include_timestamp=False).format(make_record(extra_fields={"pid": 42}))
        assert output.startswith("INFO")
        assert output.endswith("Frame queued [pid=42]")

    def test_text_formatter_without_extras(self):
        output = TextFormatter(include_timestamp=False).format(make_record())
        assert output.endswith("Frame queued")

    def test_text_formatter_source(self):
        output = TextFormatter(include_timestamp=False, include_source=True).format(make_record())
        assert output.endswith("(test_logging.py:10)")


class TestConfigureLogging:
    """Tests for handler installation."""

    def test_console_only(self):
        configure_logging(LogConfig(log_level="INFO"))
        root = logging.getLogger("termreel")
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert root.propagate is False

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "termreel.log"
        configure_logging(LogConfig(log_level="DEBUG", log_file=str(log_file)))
        root = logging.getLogger("termreel")
        assert len(root.handlers) == 2
        console = root.handlers[0]
        assert console.level == logging.ERROR

        get_logger("test_file").debug("Written to file", pid=7)
        for handler in root.handlers:
            handler.flush()
        content = log_file.read_text(encoding="utf-8")
        assert "Written to file [pid=7]" in content

    def test_reconfigure_replaces_handlers(self):
        configure_logging(LogConfig())
        configure_logging(LogConfig())
        assert len(logging.getLogger("termreel").handlers) == 1

    def test_component_override_reaches_file(self, tmp_path):
        log_file = tmp_path / "termreel.log"
        configure_logging(LogConfig(log_file=str(log_file), component_levels={"chatty": "DEBUG"}))

        get_logger("chatty").debug("Visible detail")
        get_logger("quiet").debug("Hidden detail")
        for handler in logging.getLogger("termreel").handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "Visible detail" in content
        assert "Hidden detail" not in content

    def test_reconfigure_clears_component_levels(self):
        configure_logging(LogConfig(component_levels={"scheduler": "DEBUG"}))
        assert logging.getLogger("termreel.scheduler").level == logging.DEBUG
        configure_logging(LogConfig())
        assert logging.getLogger("termreel.scheduler").level == logging.NOTSET


class TestGetLogger:
    """Tests for the logger adapter."""

    def test_cached(self):
        assert get_logger("cached") is get_logger("cached")

    def test_name(self):
        assert get_logger("launcher").logger.name == "termreel.launcher"

    def test_kwargs_become_extra_fields(self):
        adapter = get_logger("kwargs")
        msg, kwargs = adapter.process("hello", {"pid": 1, "exc_info": False})
        assert msg == "hello"
        assert kwargs["extra"]["extra_fields"] == {"pid": 1}
        assert kwargs["exc_info"] is False


class TestCli:
    """Tests for command line helpers."""

    def test_configure_from_cli_defaults(self):
        config = configure_from_cli()
        assert config.log_level == "WARNING"
        assert config.log_format == "text"
        assert config.component_levels == {}

    def test_configure_from_cli_lowercase(self):
        assert configure_from_cli("debug", "json").log_level == "DEBUG"

    def test_configure_from_cli_components(self):
        config = configure_from_cli(log_components=[("playback.reader", "DEBUG")])
        assert config.component_levels == {"playback.reader": "DEBUG"}
        assert logging.getLogger("termreel.playback.reader").level == logging.DEBUG

    def test_cli_args(self):
        flags = [args[0] for args, _ in get_cli_args_parser()]
        assert flags == ["--log-level", "--log-format", "--log-file", "--log-component"]

    def test_parse_component_level(self):
        assert parse_component_level("supervisor=debug") == ("supervisor", "DEBUG")

    @pytest.mark.parametrize("value", ["supervisor", "=DEBUG", "supervisor=LOUD"])
    def test_parse_component_level_rejects(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_component_level(value)
