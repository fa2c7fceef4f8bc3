"""Tests for settings loading."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from blobgate.config import DEFAULT_MAX_FILE_SIZE, Settings, load_settings, parse_allowed_users


class TestParseAllowedUsers:
    @pytest.mark.parametrize("value", [None, "", " , ,"])
    def test_empty(self, value):
        assert parse_allowed_users(value) == frozenset()

    def test_strips_whitespace(self):
        assert parse_allowed_users(" pk1, pk2 ,,pk3") == {"pk1", "pk2", "pk3"}


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.allowed_users == frozenset()
        assert settings.max_file_size == DEFAULT_MAX_FILE_SIZE == 10485760
        assert settings.blob_directory == Path("blobs")
        assert settings.relay.name == "my relay"

    def test_from_env(self):
        settings = Settings.from_env(
            {
                "ALLOWED_USERS": "pk1,pk2",
                "MAX_FILE_SIZE": "2048",
                "BLOB_DIRECTORY": "/srv/blobs",
                "RELAY_NAME": "family",
            }
        )

        assert settings.allowed_users == {"pk1", "pk2"}
        assert settings.max_file_size == 2048
        assert settings.blob_directory == Path("/srv/blobs")
        assert settings.relay.name == "family"

    def test_bad_integer_falls_back(self, caplog):
        settings = Settings.from_env({"MAX_FILE_SIZE": "lots"})
        assert settings.max_file_size == DEFAULT_MAX_FILE_SIZE
        assert "MAX_FILE_SIZE" in caplog.text

    def test_is_allowed(self):
        settings = Settings(allowed_users=frozenset({"pk1"}))
        assert settings.is_allowed("pk1")
        assert not settings.is_allowed("pk2")
        assert not settings.is_allowed("")
        assert not settings.is_allowed(None)

    def test_allow_list_is_immutable(self):
        settings = Settings(allowed_users={"pk1"})
        assert isinstance(settings.allowed_users, frozenset)
        with pytest.raises(AttributeError):
            settings.allowed_users = frozenset({"pk2"})

    def test_to_dict(self):
        data = Settings(allowed_users=frozenset({"pk2", "pk1"})).to_dict()
        assert data["allowed_users"] == ["pk1", "pk2"]
        assert data["relay"]["name"] == "my relay"


class TestLoadSettings:
    def test_env_file_seeds_environment(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(os, "environ", os.environ.copy())
        monkeypatch.delenv("ALLOWED_USERS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("ALLOWED_USERS=pk7\nMAX_FILE_SIZE=99\n", encoding="utf-8")

        settings = load_settings(env_file)

        assert settings.allowed_users == {"pk7"}
        assert settings.max_file_size == 99

    def test_environment_wins_over_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(os, "environ", os.environ.copy())
        monkeypatch.setenv("ALLOWED_USERS", "pk1")
        env_file = tmp_path / ".env"
        env_file.write_text("ALLOWED_USERS=pk7\n", encoding="utf-8")

        assert load_settings(env_file).allowed_users == {"pk1"}
