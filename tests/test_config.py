"""Tests for environment-driven configuration."""

from __future__ import annotations

import os

import pytest

from runwatch.config import DEFAULT_HTTP_TIMEOUT, get_http_timeout, get_server_url, get_token, load_dotenv
from runwatch.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "RUNWATCH_SERVER_URL",
        "TEAMCITY_URL",
        "RUNWATCH_TOKEN",
        "TEAMCITY_TOKEN",
        "RUNWATCH_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_server_url_override_wins(monkeypatch):
    monkeypatch.setenv("RUNWATCH_SERVER_URL", "http://env.example")
    assert get_server_url("https://flag.example/") == "https://flag.example"


def test_server_url_falls_back_to_teamcity_env(monkeypatch):
    monkeypatch.setenv("TEAMCITY_URL", "http://tc.example/")
    assert get_server_url() == "http://tc.example"


def test_server_url_required_and_validated():
    with pytest.raises(ConfigError, match="No server configured"):
        get_server_url()
    with pytest.raises(ConfigError, match="http://"):
        get_server_url("ci.example")


def test_token_from_env(monkeypatch):
    assert get_token() is None
    monkeypatch.setenv("TEAMCITY_TOKEN", "abc")
    assert get_token() == "abc"
    assert get_token("flag") == "flag"


def test_http_timeout(monkeypatch):
    assert get_http_timeout() == DEFAULT_HTTP_TIMEOUT
    monkeypatch.setenv("RUNWATCH_HTTP_TIMEOUT", "3.5")
    assert get_http_timeout() == 3.5
    monkeypatch.setenv("RUNWATCH_HTTP_TIMEOUT", "fast")
    with pytest.raises(ConfigError):
        get_http_timeout()
    monkeypatch.setenv("RUNWATCH_HTTP_TIMEOUT", "0")
    with pytest.raises(ConfigError):
        get_http_timeout()


def test_load_dotenv_does_not_override(monkeypatch, tmp_path):
    monkeypatch.setenv("RUNWATCH_TOKEN", "from-env")
    (tmp_path / ".env").write_text(
        "# comment\nRUNWATCH_TOKEN=from-file\nRUNWATCH_SERVER_URL='http://file.example'\n",
        encoding="utf-8",
    )

    load_dotenv(tmp_path)

    assert os.environ["RUNWATCH_TOKEN"] == "from-env"
    assert os.environ["RUNWATCH_SERVER_URL"] == "http://file.example"


def test_load_dotenv_missing_file_is_ignored(tmp_path):
    load_dotenv(tmp_path)
