"""
Runtime settings for Flash Query.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlashQuerySettings(BaseSettings):
    """
    Settings shared by the query builder, the paginator and the session helpers.

    Values are read from the environment (or a local ``.env`` file), so a
    deployment can flip e.g. ``STRICT_COUNT=true`` without code changes.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    # --- Database Core ---
    DATABASE_URL: str | None = None
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # --- Pagination ---
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 500

    # When True a failing count query aborts paginate() instead of
    # returning an envelope flagged as partial.
    STRICT_COUNT: bool = False

    # --- Diagnostics ---
    LOG_SQL: bool = False

    # Name of the CTE and of the single column produced by JSON wrapping
    JSON_WRAP_ALIAS: str = "alias"

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "FlashQuerySettings":
        """Ensures the default page size fits under the hard maximum."""
        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE.")
        return self


# Singleton instance for core use
query_settings = FlashQuerySettings()
