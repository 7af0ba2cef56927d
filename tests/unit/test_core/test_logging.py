"""Unit tests for logging configuration."""

import json
from pathlib import Path

import pytest
from loguru import logger

from geo_resolver.core.logging import setup_logging


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger.remove()


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")

    def test_json_output_records_serialized(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Records bound with json_output are also emitted as JSON."""
        setup_logging("INFO")
        logger.bind(json_output=True).info("Batch geocoding completed: 3 total")
        logger.info("plain record")

        err_lines = [line for line in capsys.readouterr().err.splitlines() if line.startswith("{")]
        assert len(err_lines) == 1
        payload = json.loads(err_lines[0])
        assert payload["record"]["message"] == "Batch geocoding completed: 3 total"

    def test_json_logs_serializes_everything(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO", json_logs=True)
        logger.info("plain record")

        err = capsys.readouterr().err.strip()
        assert json.loads(err)["record"]["message"] == "plain record"

    def test_file_sink_created(self, tmp_path: Path) -> None:
        """A log file is written when log_dir is provided."""
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))
        logger.info("written to file")
        logger.complete()

        log_file = log_dir / "geo-resolver.log"
        assert log_file.exists()
        assert "written to file" in log_file.read_text()
