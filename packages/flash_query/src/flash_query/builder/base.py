from __future__ import annotations

from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Mapping,
    Self,
    Sequence,
)

from flash_query.config import query_settings
from flash_query.exceptions import HandlerNotConfiguredError
from flash_query.sql import ComposedQuery, assemble, merge_values, wrap_count

if TYPE_CHECKING:
    from flash_query.result import ExecutionHandler
    from flash_query.spec import QuerySpec


class QueryBuilderBase:
    """
    Fundamental state of a QueryBuilder.

    Holds the SQL text accumulated so far, the bound values and the clause
    overrides. Instances are never mutated: every layer above builds a new
    instance through ``_clone``.
    """

    def __init__(
        self,
        raw_sql: str,
        count_sql: str = "",
        *,
        order_by: str = "",
        group_by: str = "",
        having: str = "",
        wrap_json: bool = False,
        limit: int = 0,
        page: int = 0,
        has_where: bool = False,
        where_values: Sequence[Any] = (),
        named_values: Mapping[str, Any] | None = None,
        spec: QuerySpec | None = None,
    ):
        self._raw_sql = raw_sql
        self._count_sql = count_sql
        self._order_by = order_by
        self._group_by = group_by
        self._having = having
        self._wrap_json = wrap_json
        self._limit = limit
        self._page = page
        self._has_where = has_where
        self._where_values: tuple[Any, ...] = tuple(where_values)
        self._named_values: Mapping[str, Any] = MappingProxyType(
            dict(named_values or {})
        )
        self._spec = spec

    @classmethod
    def from_spec(cls, spec: QuerySpec) -> Self:
        """Seed a builder with the SQL and defaults declared on ``spec``."""
        return cls(
            spec.raw_sql,
            spec.count_sql,
            order_by=spec.order_by,
            group_by=spec.group_by,
            having=spec.having,
            wrap_json=spec.wrap_json,
            spec=spec,
        )

    def _clone(self, **changes: Any) -> Self:
        """
        Return a new instance of the current class with ``changes`` applied.

        Using self.__class__ keeps the top-most class in the inheritance
        chain, so the clone still has the execution methods.
        """
        state: dict[str, Any] = {
            "count_sql": self._count_sql,
            "order_by": self._order_by,
            "group_by": self._group_by,
            "having": self._having,
            "wrap_json": self._wrap_json,
            "limit": self._limit,
            "page": self._page,
            "has_where": self._has_where,
            "where_values": self._where_values,
            "named_values": self._named_values,
            "spec": self._spec,
        }
        raw_sql = changes.pop("raw_sql", self._raw_sql)
        state.update(changes)
        return self.__class__(raw_sql, **state)

    # --- Read-only views ---

    @property
    def name(self) -> str | None:
        return self._spec.name if self._spec is not None else None

    @property
    def sql(self) -> str:
        """Data SQL with predicates but before any trailing clause."""
        return self._raw_sql

    @property
    def count_sql(self) -> str:
        return self._count_sql

    @property
    def current_limit(self) -> int:
        return self._limit

    @property
    def current_page(self) -> int:
        return self._page

    @property
    def where_values(self) -> tuple[Any, ...]:
        return self._where_values

    @property
    def named_values(self) -> Mapping[str, Any]:
        return self._named_values

    # --- Assembly ---

    def build(self) -> tuple[str, str]:
        """
        Assemble the data SQL and the count SQL.

        The page is used exactly as set; only ``paginate()`` normalizes it.

        Example:
            >>> QueryBuilder("SELECT * FROM t").order_by("id").limit(5).page(2).build()
            ('SELECT * FROM t ORDER BY id LIMIT 5 OFFSET 5', 'SELECT * FROM t')
        """
        return assemble(
            self._raw_sql,
            self._count_sql,
            group_by=self._group_by,
            having=self._having,
            order_by=self._order_by,
            limit=self._limit,
            page=self._page,
            wrap_json=self._wrap_json,
            json_alias=query_settings.JSON_WRAP_ALIAS,
        )

    def merge_values(self) -> tuple[Any, ...]:
        """Positional values, then the named mapping if any was attached."""
        return merge_values(self._where_values, self._named_values)

    def compose(self) -> ComposedQuery:
        """Return the data query with its bound values."""
        sql, _ = self.build()
        return ComposedQuery(sql, self.merge_values())

    def compose_count(self) -> ComposedQuery:
        """Return the row-count query with its bound values."""
        _, count_sql = self.build()
        return ComposedQuery(wrap_count(count_sql), self.merge_values())

    def _resolve_handler(
        self, handler: ExecutionHandler | None = None
    ) -> ExecutionHandler:
        """
        Pick the handler given at call time, else the one on the QuerySpec.

        Raises:
            HandlerNotConfiguredError: If neither is available. This is a
                wiring bug, not a data condition.
        """
        if handler is not None:
            return handler
        if self._spec is not None and self._spec.handler is not None:
            return self._spec.handler
        msg = (
            f"No execution handler configured for query {self.name or '<unnamed>'}. "
            "Pass handler= or declare it on the QuerySpec."
        )
        raise HandlerNotConfiguredError(msg)
