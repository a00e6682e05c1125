"""
Pagination envelope and the concurrent count + fetch orchestration.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from .config import query_settings
from .db import engine_of, holds_transaction
from .exceptions import CountQueryError
from .logging import get_logger, scoped_query_name
from .result import project_many
from .sql import compute_offset

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from .builder import QueryBuilder
    from .result import ExecutionHandler
    from .sql import ComposedQuery

logger = get_logger(__name__)

T = TypeVar("T")


class Pagination(BaseModel, Generic[T]):
    """
    One page of records plus the metadata needed to navigate the others.

    Example:
        >>> page = await users.builder().limit(5).page(2).paginate(db)
        >>> page.total_record, page.total_page, page.offset
        (12, 3, 5)
        >>> page.model_dump(by_alias=True, exclude={"records"})
        {
            'has_next': True,
            'has_prev': True,
            'per_page': 5,
            'next_page': 3,
            'current_page': 2,
            'prev_page': 1,
            'offset': 5,
            'total_record': 12,
            'total_page': 3,
            'metadata': None,
            'is_partial': False
        }
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    has_next: bool = Field(..., description="A page exists after this one")
    has_prev: bool = Field(..., description="A page exists before this one")
    per_page: int = Field(..., description="Page size; total count when unlimited")
    next_page: int = Field(..., description="Next page number, or current page")
    page: int = Field(..., alias="current_page", description="1-indexed page")
    prev_page: int = Field(..., description="Previous page number, or current page")
    offset: int = Field(..., description="Number of rows skipped")
    records: list[T] = Field(default_factory=list, description="Rows of this page")
    total_record: int = Field(..., description="Rows across all pages")
    total_page: int = Field(..., description="Number of pages")
    metadata: Any = Field(default=None, description="Caller supplied extras")
    is_partial: bool = Field(
        default=False,
        description="The count query failed; totals are not reliable",
    )


def compute_page_meta(count: int, limit: int, page: int) -> dict[str, Any]:
    """
    Derive the navigation fields of a page.

    Args:
        count: Total number of matching rows.
        limit: Page size. Zero or negative means a single unbounded page.
        page: Current 1-based page (already normalized).

    Example:
        >>> compute_page_meta(12, 5, 2)["total_page"]
        3
    """
    if limit > 0:
        per_page = limit
        total_page = (count + limit - 1) // limit
    else:
        per_page = count
        total_page = 1

    has_next = total_page > page
    has_prev = page > 1

    return {
        "total_record": count,
        "total_page": total_page,
        "per_page": per_page,
        "page": page,
        "offset": compute_offset(page, limit),
        "has_next": has_next,
        "has_prev": has_prev,
        "next_page": page + 1 if has_next else page,
        "prev_page": page - 1 if has_prev else page,
    }


class Paginator:
    """
    Runs the count query and the data query of one builder.

    The data query goes through the execution handler. When the session has
    no open transaction, the count query runs concurrently on its own
    connection of the session's engine. Otherwise it runs on the session
    right after the data query, so both see the same uncommitted rows.

    Args:
        strict_count: Raise ``CountQueryError`` when the count query fails.
            Defaults to the ``STRICT_COUNT`` setting. When off, a failed count
            is logged, reported as 0 and the envelope is flagged partial.
    """

    def __init__(self, *, strict_count: bool | None = None):
        self.strict_count = (
            query_settings.STRICT_COUNT if strict_count is None else strict_count
        )

    async def paginate(
        self,
        builder: QueryBuilder,
        db: AsyncSession,
        handler: ExecutionHandler | None = None,
        *,
        metadata: Any = None,
    ) -> Pagination[Any]:
        """
        Fetch one page of ``builder`` together with its page metadata.

        Raises:
            HandlerNotConfiguredError: No handler was given or declared. No
                query is issued in that case.
            CountQueryError: The count failed and strict count mode is on.
        """
        fn = builder._resolve_handler(handler)

        if builder.current_page < 1:
            builder = builder.page(1)

        # Both queries are immutable snapshots taken before the fork.
        query = builder.compose()
        count_query = builder.compose_count()
        limit, page = builder.current_limit, builder.current_page

        with scoped_query_name(builder.name):
            if query_settings.LOG_SQL:
                logger.debug("Paginating: %s %r", query.text, query.values)

            if holds_transaction(db):
                # A second connection would not see the session's transaction.
                result = await fn(db, query)
                count = await self._count(db, count_query, on_session=True)
            else:
                count_task = asyncio.create_task(self._count(db, count_query))
                try:
                    result = await fn(db, query)
                except BaseException:
                    count_task.cancel()
                    await asyncio.gather(count_task, return_exceptions=True)
                    raise
                count = await count_task

            records = project_many(result)
            meta = compute_page_meta(count or 0, limit, page)
            logger.debug(
                "Fetched %s record(s), page %s of %s",
                len(records),
                page,
                meta["total_page"],
            )

        return Pagination(
            **meta,
            records=records,
            metadata=metadata,
            is_partial=count is None,
        )

    async def _count(
        self, db: AsyncSession, query: ComposedQuery, *, on_session: bool = False
    ) -> int | None:
        """Scan the single integer produced by the wrapped count query."""
        try:
            if on_session:
                result = await db.execute(query.statement())
                return int(result.scalar_one())
            async with engine_of(db).connect() as conn:
                result = await conn.execute(query.statement())
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            if self.strict_count:
                msg = f"Count query failed: {e}"
                raise CountQueryError(msg) from e
            logger.warning("Count query failed, reporting 0 records: %s", e)
            return None
