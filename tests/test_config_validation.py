"""Tests for validate_config(): startup misconfiguration warnings."""

import pytest
from unittest.mock import patch


def _messages(issues, needle):
    return [i for i in issues if needle in i["message"]]


class TestGeminiKey:
    def test_missing_key_warns(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_GENERATIVE_AI_API_KEY", raising=False)
        from smack_builders.config import validate_config

        found = _messages(validate_config(), "GOOGLE_GENERATIVE_AI_API_KEY")
        assert len(found) == 1
        assert found[0]["level"] == "WARNING"

    def test_key_present_no_warning(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_GENERATIVE_AI_API_KEY", "k")
        from smack_builders.config import validate_config

        assert not _messages(validate_config(), "GOOGLE_GENERATIVE_AI_API_KEY")


class TestBuildTools:
    def test_missing_tools_reported(self):
        from smack_builders.config import BUILD_COMMANDS, validate_config

        with patch("shutil.which", return_value=None):
            issues = validate_config()
        for executable, *_ in BUILD_COMMANDS.values():
            assert _messages(issues, f"'{executable}' not found on PATH")

    def test_tools_present_no_warning(self):
        from smack_builders.config import validate_config

        with patch("shutil.which", return_value="/usr/bin/tool"):
            issues = validate_config()
        assert not _messages(issues, "not found on PATH")


class TestArtifactBaseUrl:
    def test_placeholder_warns(self, monkeypatch):
        monkeypatch.delenv("SMACK_API_ARTIFACT_BASE_URL", raising=False)
        from smack_builders.config import validate_config

        assert _messages(validate_config(), "placeholder host")

    def test_configured_url_no_warning(self, monkeypatch):
        monkeypatch.setenv("SMACK_API_ARTIFACT_BASE_URL", "https://cdn.example.com/builds")
        from smack_builders.config import validate_config

        assert not _messages(validate_config(), "placeholder host")


class TestLogFormat:
    def test_invalid_log_format_is_error(self):
        with patch("smack_builders.config.LOG_FORMAT", "xml"):
            from smack_builders.config import validate_config

            issues = validate_config()
        errors = [i for i in issues if i["level"] == "ERROR"]
        assert len(errors) == 1
        assert "LOG_FORMAT" in errors[0]["message"]

    @pytest.mark.parametrize("fmt", ["structured", "json"])
    def test_valid_formats(self, fmt):
        with patch("smack_builders.config.LOG_FORMAT", fmt):
            from smack_builders.config import validate_config

            assert not [i for i in validate_config() if i["level"] == "ERROR"]
