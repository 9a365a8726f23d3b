"""Tests for configuration helpers."""

from nutrition_sync.config import Settings, parse_server_tokens


def test_parse_server_tokens() -> None:
    tokens = parse_server_tokens(" alice:token-a , bob:token-b,broken, :x ,carol:")

    assert tokens == {"token-a": "alice", "token-b": "bob"}
    assert parse_server_tokens(None) == {}


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("SYNC_MAX_ATTEMPTS", "7")
    monkeypatch.setenv("STORAGE_BACKEND", "file")

    settings = Settings()

    assert settings.sync_max_attempts == 7
    assert settings.sync_window_seconds == 180
