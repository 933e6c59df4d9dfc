from __future__ import annotations

import pytest

from bingebook.config import load_settings

ENV_KEYS = (
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "TMDB_API_KEY",
    "PORT",
    "HOST",
    "ALLOWED_ORIGINS",
    "APP_ENV",
    "NODE_ENV",
    "TIMEZONE",
    "LOG_LEVEL",
    "TOKEN_CACHE_TTL_SECONDS",
    "REQUEST_TIMEOUT_SECONDS",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # skips .env loading
    monkeypatch.setenv("RUNNING_IN_DOCKER", "true")
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "config.toml"))
    return tmp_path / "config.toml"


def test_env_values_override_config_file(clean_env, monkeypatch) -> None:
    clean_env.write_text(
        """
[supabase]
url = "https://from-file.supabase.co/"
anon_key = "file-anon"

[server]
port = 4000
allowed_origins = ["https://a.example", "https://b.example"]
env = "production"

[runtime]
token_cache_ttl_seconds = 60
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("SUPABASE_ANON_KEY", "env-anon")
    monkeypatch.setenv("PORT", "5000")

    settings = load_settings()

    assert settings.supabase_url == "https://from-file.supabase.co"
    assert settings.supabase_anon_key == "env-anon"
    assert settings.supabase_data_key == "env-anon"
    assert settings.port == 5000
    assert settings.allowed_origins == ("https://a.example", "https://b.example")
    assert settings.is_production is True
    assert settings.token_cache_ttl_seconds == 60.0
    assert settings.tmdb_api_key is None
    assert settings.running_in_docker is True


def test_defaults_and_node_env_fallback(clean_env, monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")
    monkeypatch.setenv("NODE_ENV", "production")

    settings = load_settings()

    assert settings.port == 3001
    assert settings.allowed_origins == ("*",)
    assert settings.is_production is True
    assert settings.supabase_data_key == "service"
    assert settings.timezone == "UTC"
    assert settings.request_timeout_seconds == 9.5


def test_missing_supabase_values_fail_fast(clean_env) -> None:
    with pytest.raises(RuntimeError, match="SUPABASE_URL, SUPABASE_ANON_KEY"):
        load_settings()


def test_origins_accept_array_and_comma_string(clean_env, monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    clean_env.write_text('[server]\nallowed_origins = ["https://a.example"]\nsite_url = ""\n', encoding="utf-8")

    assert load_settings().allowed_origins == ("https://a.example",)

    clean_env.write_text('[server]\nallowed_origins = "https://a.example, https://b.example"\n', encoding="utf-8")

    assert load_settings().allowed_origins == ("https://a.example", "https://b.example")


def test_empty_array_falls_back_to_wildcard(clean_env, monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    clean_env.write_text("[server]\nallowed_origins = []\n", encoding="utf-8")

    assert load_settings().allowed_origins == ("*",)
