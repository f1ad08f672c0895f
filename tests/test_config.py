"""Tests for Settings."""

from manifest_index.config import PRODUCTION_BASE_URL, Settings

ENV_VARS = (
    "MANIFEST_INDEX_ENV", "APP_ENV", "MANIFEST_INDEX_HOST", "HOST", "MANIFEST_INDEX_PORT",
    "PORT", "MANIFEST_INDEX_BASE_URL", "GH_TOKEN", "PERSIST_DELAY_SECONDS", "CORS_ORIGINS",
)


class TestSettings:

    def _clear(self, monkeypatch) -> None:
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self, monkeypatch) -> None:
        self._clear(monkeypatch)
        settings = Settings.from_env()
        assert settings.port == 3000
        assert settings.gh_token is None
        assert settings.resolved_base_url == "http://0.0.0.0:3000"
        assert settings.api_version == 1

    def test_fallback_names_and_parsing(self, monkeypatch) -> None:
        self._clear(monkeypatch)
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PERSIST_DELAY_SECONDS", "0.5")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        settings = Settings.from_env()
        assert settings.resolved_base_url == "http://127.0.0.1:8080"
        assert settings.persist_delay_seconds == 0.5
        assert settings.cors_origins == ["https://a.example", "https://b.example"]

    def test_production_base_url(self, monkeypatch) -> None:
        self._clear(monkeypatch)
        monkeypatch.setenv("MANIFEST_INDEX_ENV", "production")
        assert Settings.from_env().resolved_base_url == PRODUCTION_BASE_URL

    def test_explicit_base_url_wins(self, monkeypatch) -> None:
        self._clear(monkeypatch)
        monkeypatch.setenv("MANIFEST_INDEX_ENV", "production")
        monkeypatch.setenv("MANIFEST_INDEX_BASE_URL", "https://api.example/")
        assert Settings.from_env().resolved_base_url == "https://api.example"
