import pytest
from flash_query import FlashQuerySettings


class TestFlashQuerySettings:
    def test_defaults(self, monkeypatch):
        """Verify the out-of-the-box settings."""
        monkeypatch.delenv("STRICT_COUNT", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = FlashQuerySettings(_env_file=None)
        assert settings.STRICT_COUNT is False
        assert settings.LOG_SQL is False
        assert settings.JSON_WRAP_ALIAS == "alias"
        assert settings.DEFAULT_PAGE_SIZE <= settings.MAX_PAGE_SIZE

    def test_env_variable_overrides(self, monkeypatch):
        """Verify that actual environment variables override the defaults."""
        monkeypatch.setenv("STRICT_COUNT", "true")
        monkeypatch.setenv("MAX_PAGE_SIZE", "1000")
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///env.db")

        settings = FlashQuerySettings()
        assert settings.STRICT_COUNT is True
        assert settings.MAX_PAGE_SIZE == 1000
        assert settings.DATABASE_URL == "sqlite+aiosqlite:///env.db"

    def test_default_page_size_above_max_is_rejected(self):
        """Ensures ValueError is raised when the default exceeds the maximum."""
        with pytest.raises(
            ValueError,
            match="DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE",
        ):
            FlashQuerySettings(DEFAULT_PAGE_SIZE=600, MAX_PAGE_SIZE=500)

    def test_singleton_instance(self):
        """Ensure the exported query_settings is an instance of FlashQuerySettings."""
        from flash_query.config import query_settings

        assert isinstance(query_settings, FlashQuerySettings)
