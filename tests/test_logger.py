"""Tests for logger.py — setup_logging() and JsonFormatter.

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from scad_library_sync.logger import JsonFormatter, setup_logging


def _close(handlers):
    for h in handlers:
        if isinstance(h, logging.FileHandler):
            h.close()


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        mock_basic.assert_called_once()
        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_file_mode_logs_only_to_file(self, mock_basic, tmp_path):
        log_file = tmp_path / "sync.log"
        setup_logging(mode="file", log_file=str(log_file))

        handlers = mock_basic.call_args[1]["handlers"]
        assert [type(h) for h in handlers] == [logging.FileHandler]
        assert handlers[0].baseFilename == str(log_file)
        _close(handlers)

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_file_mode_default_log_file(self, mock_basic, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_FILE", str(tmp_path / "env.log"))
        setup_logging(mode="file")

        handlers = mock_basic.call_args[1]["handlers"]
        assert handlers[0].baseFilename == str(tmp_path / "env.log")
        _close(handlers)

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        setup_logging(mode="cli", log_file=str(tmp_path / "cli.log"))

        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 2
        assert isinstance(handlers[1], logging.FileHandler)
        _close(handlers)

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_default_levels(self, mock_basic, monkeypatch, tmp_path):
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.INFO

        setup_logging(mode="file", log_file=str(tmp_path / "x.log"))
        assert mock_basic.call_args[1]["level"] == logging.WARNING
        _close(mock_basic.call_args[1]["handlers"])

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_config_level_used_without_env(self, mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli", level="ERROR")

        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_env_beats_config_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        setup_logging(mode="cli", level="ERROR")

        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)

        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_json_format_uses_json_formatter(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")

        handlers = mock_basic.call_args[1]["handlers"]
        assert isinstance(handlers[0].formatter, JsonFormatter)

    @patch("scad_library_sync.logger.logging.basicConfig")
    def test_third_party_silenced(self, _mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")

        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("charset_normalizer").level == logging.WARNING


class TestJsonFormatter:
    def test_basic_output(self):
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        record = logging.LogRecord(
            name="scad_library_sync.sync.engine",
            level=logging.WARNING,
            pathname="engine.py",
            lineno=1,
            msg="Failed to fetch %s",
            args=("lib/a.scad",),
            exc_info=None,
        )

        data = json.loads(formatter.format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "scad_library_sync.sync.engine"
        assert data["msg"] == "Failed to fetch lib/a.scad"
        assert "exc" not in data

    def test_includes_exception(self):
        formatter = JsonFormatter()
        try:
            raise OSError("disk full")
        except OSError:
            exc_info = sys.exc_info()

        record = logging.LogRecord(
            name="t",
            level=logging.ERROR,
            pathname="t.py",
            lineno=1,
            msg="write failed",
            args=(),
            exc_info=exc_info,
        )

        data = json.loads(formatter.format(record))
        assert "OSError: disk full" in data["exc"]
