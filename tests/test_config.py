"""
Tests for settings loading and structured logging.
"""

import json
import logging

import pytest

from trip_planner.config import Settings
from trip_planner.logging_config import StructuredFormatter, setup_logging
from trip_planner.utils.country import display_location, iso2_to_country_name


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AMADEUS_CLIENT_ID", "id")
        monkeypatch.setenv("AMADEUS_CLIENT_SECRET", "secret")
        monkeypatch.setenv("AMADEUS_HOSTNAME", "production")
        monkeypatch.setenv("DISABLE_TRAVEL_MOCKS", "true")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
        monkeypatch.setenv("GATEWAY_BASE_URL", "  ")

        settings = Settings.from_env()

        assert settings.has_amadeus_credentials
        assert settings.amadeus_base_url == "https://api.amadeus.com"
        assert settings.disable_travel_mocks is True
        assert settings.has_openai_key
        assert settings.gateway_base_url is None

    def test_blank_credentials(self, monkeypatch):
        monkeypatch.setenv("AMADEUS_CLIENT_ID", "")
        monkeypatch.delenv("AMADEUS_CLIENT_SECRET", raising=False)
        monkeypatch.delenv("DISABLE_TRAVEL_MOCKS", raising=False)

        settings = Settings.from_env()
        assert not settings.has_amadeus_credentials
        assert settings.disable_travel_mocks is False

    @pytest.mark.parametrize("host,url", [
        ("test", "https://test.api.amadeus.com"),
        ("PRODUCTION", "https://api.amadeus.com"),
        ("http://localhost:8080/", "http://localhost:8080"),
    ])
    def test_amadeus_base_url(self, host, url):
        assert Settings(amadeus_hostname=host).amadeus_base_url == url


class TestLogging:
    def test_json_lines_with_extra(self):
        record = logging.LogRecord("trip_planner.x", logging.INFO, __file__, 1, "Tool %s", ("ran",), None)
        record.extra = {"call_id": "call_1"}

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "trip_planner.x"
        assert entry["message"] == "Tool ran"
        assert entry["extra"] == {"call_id": "call_1"}
        assert entry["timestamp"].endswith("Z")

    def test_setup_replaces_handlers(self, tmp_path):
        log_file = tmp_path / "app.log"
        setup_logging("DEBUG", str(log_file), logger_name="trip_planner.test")
        logger = setup_logging("debug", str(log_file), logger_name="trip_planner.test")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2

        logger.info("written", extra={"extra": {"k": 1}})
        for h in logger.handlers:
            h.flush()
        assert json.loads(log_file.read_text().splitlines()[-1])["extra"] == {"k": 1}

    def test_unknown_level_name(self):
        logger = setup_logging("LOUD", logger_name="trip_planner.test2")
        assert logger.level == logging.INFO


class TestCountry:
    def test_iso2(self):
        assert iso2_to_country_name("pt") == "Portugal"
        assert iso2_to_country_name("XX") is None
        assert iso2_to_country_name("PRT") is None

    def test_display_location(self):
        assert display_location("LISBON", "PT") == "Lisbon, Portugal"
        assert display_location(None, None, fallback="LIS") == "LIS"
