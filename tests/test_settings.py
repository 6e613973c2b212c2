from __future__ import annotations

import importlib
from unittest.mock import patch

import pytest

from turfease import log, settings


@pytest.fixture()
def reload_settings(monkeypatch):
    yield lambda: importlib.reload(settings)
    monkeypatch.undo()
    importlib.reload(settings)


class TestSettings:
    def test_defaults(self, monkeypatch, reload_settings):
        for name in ("TURFEASE_API_URL", "REACT_APP_API_URL", "TURFEASE_DEBUG", "REACT_APP_DEBUG"):
            monkeypatch.delenv(name, raising=False)
        reloaded = reload_settings()
        assert reloaded.API_BASE_URL == "http://localhost:5001/api"
        assert reloaded.DEBUG is False
        assert reloaded.ALLOCATION_WINDOW_DAYS == 5

    def test_first_env_name_wins(self, monkeypatch, reload_settings):
        monkeypatch.setenv("TURFEASE_API_URL", "https://api.turfease.in/api")
        monkeypatch.setenv("REACT_APP_API_URL", "https://legacy/api")
        assert reload_settings().API_BASE_URL == "https://api.turfease.in/api"

    def test_legacy_env_name_still_read(self, monkeypatch, reload_settings):
        monkeypatch.delenv("TURFEASE_API_URL", raising=False)
        monkeypatch.setenv("REACT_APP_API_URL", "https://legacy/api")
        monkeypatch.setenv("REACT_APP_DEBUG", "TRUE")
        reloaded = reload_settings()
        assert reloaded.API_BASE_URL == "https://legacy/api"
        assert reloaded.DEBUG is True


class TestConfigureLogging:
    def test_debug_level(self):
        with patch.object(log, "logger") as mock_logger:
            log.configure_logging(debug=True)
        mock_logger.remove.assert_called_once_with()
        assert mock_logger.add.call_args.kwargs["level"] == "DEBUG"

    def test_level_follows_settings(self):
        with patch.object(log, "logger") as mock_logger, patch.object(
            log.settings, "DEBUG", False
        ):
            log.configure_logging()
        assert mock_logger.add.call_args.kwargs["level"] == "INFO"
