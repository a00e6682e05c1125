from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .builder import QueryBuilder
    from .result import ExecutionHandler


@dataclass(frozen=True)
class QuerySpec:
    """
    Declaration of a named raw query.

    A QuerySpec is created once, usually at module level, and shared by every
    QueryBuilder created from it. It never changes; each ``with_*`` method
    returns a new spec.

    Args:
        raw_sql: Base SELECT text. Predicates are appended to it.
        count_sql: Optional lighter SELECT used for counting. When empty, the
            data SQL is reused as the count base.
        order_by: Default ORDER BY fragment (without the keywords).
        group_by: Default GROUP BY fragment.
        having: Default HAVING fragment.
        wrap_json: Project each row as a single JSON value.
        handler: Execution handler turning composed SQL into a QueryResult.
        name: Label used in log records.

    Example:
        >>> users = QuerySpec(
        ...     "SELECT u.* FROM users u",
        ...     "SELECT 1 FROM users u",
        ...     handler=model_handler(User),
        ...     name="users.list",
        ... )
        >>> page = await users.builder().where("u.active = ?", True).paginate(db)
    """

    raw_sql: str
    count_sql: str = ""
    order_by: str = ""
    group_by: str = ""
    having: str = ""
    wrap_json: bool = False
    handler: ExecutionHandler | None = None
    name: str | None = None

    def with_raw_sql(self, sql: str) -> QuerySpec:
        return replace(self, raw_sql=sql)

    def with_count_sql(self, sql: str) -> QuerySpec:
        return replace(self, count_sql=sql)

    def with_order_by(self, sql: str) -> QuerySpec:
        return replace(self, order_by=sql)

    def with_group_by(self, sql: str) -> QuerySpec:
        return replace(self, group_by=sql)

    def with_having(self, sql: str) -> QuerySpec:
        return replace(self, having=sql)

    def with_wrap_json(self, wrap: bool) -> QuerySpec:
        return replace(self, wrap_json=wrap)

    def with_handler(self, handler: ExecutionHandler) -> QuerySpec:
        return replace(self, handler=handler)

    def with_name(self, name: str) -> QuerySpec:
        return replace(self, name=name)

    def builder(self) -> QueryBuilder:
        """
        Return a fresh QueryBuilder seeded from this spec.
        """
        from .builder import QueryBuilder

        return QueryBuilder.from_spec(self)
