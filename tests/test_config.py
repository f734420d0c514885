"""Tests for environment-driven configuration."""

import os
from pathlib import Path

import pytest

from pinvault.config import MIN_PBKDF2_ITERATIONS, VaultConfig, load_config

_VARS = (
    "PINVAULT_DATA_DIR", "PINVAULT_NAMESPACE", "PINVAULT_PBKDF2_ITERATIONS",
    "PINVAULT_AUDIT_DIR", "PINVAULT_FREE_ATTEMPTS", "PINVAULT_HOST", "PINVAULT_PORT",
    "PINVAULT_SESSION_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    # keep a developer's .env out of the picture
    monkeypatch.chdir(tmp_path)
    yield
    # load_dotenv writes straight into os.environ
    for name in _VARS:
        os.environ.pop(name, None)


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()
        assert config == VaultConfig()
        assert config.db_path == Path("data") / "vault.db"
        assert config.host == "127.0.0.1"

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PINVAULT_DATA_DIR", str(tmp_path / "d"))
        monkeypatch.setenv("PINVAULT_NAMESPACE", "demo")
        monkeypatch.setenv("PINVAULT_PBKDF2_ITERATIONS", "250000")
        monkeypatch.setenv("PINVAULT_FREE_ATTEMPTS", "5")
        monkeypatch.setenv("PINVAULT_PORT", "9001")

        config = load_config()
        assert config.db_path == tmp_path / "d" / "vault.db"
        assert config.namespace == "demo"
        assert config.pbkdf2_iterations == 250_000
        assert config.free_attempts == 5
        assert config.port == 9001

    def test_iterations_never_below_floor(self, monkeypatch):
        monkeypatch.setenv("PINVAULT_PBKDF2_ITERATIONS", "1000")
        assert load_config().pbkdf2_iterations == MIN_PBKDF2_ITERATIONS

    def test_bad_integer_falls_back(self, monkeypatch):
        monkeypatch.setenv("PINVAULT_PORT", "eighty")
        assert load_config().port == 8000

    def test_dotenv_file(self, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("PINVAULT_NAMESPACE=fromfile\n")
        assert load_config(str(env_file)).namespace == "fromfile"

    def test_process_env_beats_dotenv(self, monkeypatch, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("PINVAULT_NAMESPACE=fromfile\n")
        monkeypatch.setenv("PINVAULT_NAMESPACE", "fromenv")
        assert load_config(str(env_file)).namespace == "fromenv"

    def test_session_token(self, monkeypatch):
        assert load_config().session_token is None
        monkeypatch.setenv("PINVAULT_SESSION_TOKEN", "t" * 40)
        assert load_config().session_token == "t" * 40

    def test_empty_session_token_is_unset(self, monkeypatch):
        monkeypatch.setenv("PINVAULT_SESSION_TOKEN", "")
        assert load_config().session_token is None
