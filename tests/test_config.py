"""
Tests for configuration and .env loading.
"""

import dataclasses
import os

import pytest

from mutualaid.config import Config
from mutualaid.env import load_env


class TestConfig:
    def test_defaults(self):
        config = Config.from_env({})
        assert config.requests_table_name == "Requests"
        assert config.volunteers_table_name == "Volunteers"
        assert config.errors_table_name == "Errors"
        assert config.airtable_api_key is None
        assert config.log_level == "INFO"

    def test_reads_environment(self):
        config = Config.from_env({
            "VOLUNTEER_DISPATCH_CITY": "Springfield",
            "VOLUNTEER_DISPATCH_STATE": "IL",
            "AIRTABLE_REQUESTS_VIEW_NAME": "Open requests",
        })
        assert config.address_suffix() == "Springfield, IL"
        assert config.requests_view_name == "Open requests"

    def test_read_only(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Config().dispatch_city = "Elsewhere"


class TestLoadEnv:
    def test_missing_file(self, tmp_path):
        assert load_env(tmp_path / ".env") is False

    def test_existing_values_win(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("VOLUNTEER_DISPATCH_CITY=Shelbyville\nMUTUALAID_TEST_ONLY=1\n")
        monkeypatch.setenv("VOLUNTEER_DISPATCH_CITY", "Springfield")
        monkeypatch.delenv("MUTUALAID_TEST_ONLY", raising=False)

        assert load_env(env_file)

        assert Config.from_env().dispatch_city == "Springfield"
        assert os.environ["MUTUALAID_TEST_ONLY"] == "1"
        monkeypatch.delenv("MUTUALAID_TEST_ONLY")
