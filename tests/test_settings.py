"""
Unit Tests for piquediff.config
"""

import pytest

from piquediff.config import Settings
from piquediff.core.report_model import VULN_PILLAR_PATTERN


class TestSettings:
    """Settings loaded from the environment."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("PIQUEDIFF_LOG_LEVEL", "PIQUEDIFF_JSON_INDENT", "PIQUEDIFF_PILLAR_PATTERN"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        settings = Settings.from_env()
        assert settings.log_level == "INFO"
        assert settings.json_indent == 2
        assert settings.pillar_pattern == VULN_PILLAR_PATTERN.pattern

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("PIQUEDIFF_LOG_LEVEL", "debug")
        monkeypatch.setenv("PIQUEDIFF_JSON_INDENT", "4")
        monkeypatch.setenv("PIQUEDIFF_PILLAR_PATTERN", "Pillar$")

        settings = Settings.from_env()

        assert settings.log_level == "DEBUG"
        assert settings.json_indent == 4
        assert settings.pillar_pattern == "Pillar$"

    @pytest.mark.parametrize("raw", ["none", "", "-1"])
    def test_compact_json(self, monkeypatch, raw):
        monkeypatch.setenv("PIQUEDIFF_JSON_INDENT", raw)
        assert Settings.from_env().json_indent is None

    def test_invalid_indent(self, monkeypatch):
        monkeypatch.setenv("PIQUEDIFF_JSON_INDENT", "wide")
        with pytest.raises(ValueError, match="PIQUEDIFF_JSON_INDENT"):
            Settings.from_env()

    def test_empty_pattern_falls_back(self, monkeypatch):
        monkeypatch.setenv("PIQUEDIFF_PILLAR_PATTERN", "")
        assert Settings.from_env().pillar_pattern == VULN_PILLAR_PATTERN.pattern
