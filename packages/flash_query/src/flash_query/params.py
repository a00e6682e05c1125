from typing import TYPE_CHECKING, Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flash_query.config import query_settings

if TYPE_CHECKING:
    from flash_query.builder import QueryBuilder


class PageParams(BaseModel):
    """
    Page request parameters, e.g. parsed from a query string.

    Examples
    --------
    Defaults::

        >>> PageParams().limit == query_settings.DEFAULT_PAGE_SIZE
        True

    Applying to a builder::

        >>> params = PageParams(page=3, limit=10)
        >>> qb = params.apply(users.builder())
        >>> qb.current_page, qb.current_limit
        (3, 10)
    """

    model_config = ConfigDict(
        populate_by_name=True,
        # Set to 'ignore' so extra query params don't cause validation errors
        extra="ignore",
    )

    page: Annotated[int, Field(default=1, description="1-indexed page number")]

    limit: Annotated[
        int,
        Field(
            default_factory=lambda: query_settings.DEFAULT_PAGE_SIZE,
            description="Items per page",
        ),
    ]

    @model_validator(mode="after")
    def _validate_bounds(self) -> Self:
        """
        Clamps values to system limits.

        >>> PageParams(limit=9999).limit  # if max is 500
        500
        """
        self.limit = max(1, min(self.limit, query_settings.MAX_PAGE_SIZE))
        self.page = max(1, self.page)
        return self

    def apply(self, builder: "QueryBuilder") -> "QueryBuilder":
        """Return ``builder`` with this page and limit applied."""
        return builder.limit(self.limit).page(self.page)
