from __future__ import annotations

from typing import (
    Any,
    Callable,
    Mapping,
    Self,
)

from flash_query.sql import NamedArg, join_predicate

from .base import QueryBuilderBase


class QueryBuilderConstruction(QueryBuilderBase):
    """
    Fluent API for composing a raw query.

    Each method returns a new builder, so a partially configured builder can
    be shared and extended without leaking state between call sites.
    """

    def where(self, query: Any, *args: Any) -> Self:
        """
        Attach a predicate or named values.

        Args:
            query: One of
                - a mapping of name to value, merged into the named values;
                - a ``NamedArg``, merged the same way;
                - a SQL fragment, joined with ``WHERE`` the first time and
                  ``AND`` afterwards, to both the data and the count SQL.
            *args: Positional values for the '?' placeholders of a fragment.

        Notes:
            - Named values never change the SQL text. The base SQL must
              already reference them as ``:name``.
            - Assigning the same name twice keeps the last value.

        Examples:
            >>> users.builder().where("u.age > ?", 18).where("u.city = ?", "Hanoi")
            # SELECT ... WHERE u.age > ? AND u.city = ?

            >>> users.builder().where({"tenant": 7})
            # SQL unchanged, binds :tenant
        """
        if isinstance(query, Mapping):
            return self._clone(named_values={**self._named_values, **query})

        if isinstance(query, NamedArg):
            return self._clone(
                named_values={**self._named_values, query.name: query.value}
            )

        raw_sql = join_predicate(self._raw_sql, query, has_where=self._has_where)
        count_sql = self._count_sql
        if count_sql:
            count_sql = join_predicate(count_sql, query, has_where=self._has_where)

        return self._clone(
            raw_sql=raw_sql,
            count_sql=count_sql,
            has_where=True,
            where_values=(*self._where_values, *args),
        )

    def where_func(self, func: Callable[[Self], Self]) -> Self:
        """
        Apply a reusable filter set.

        Example:
            >>> def active(b):
            ...     return b.where("u.deleted_at IS NULL")
            >>> users.builder().where_func(active)
        """
        return func(self)

    def order_by(self, *fragments: str) -> Self:
        """
        Replace the ORDER BY fragment. Several fragments are joined with ','.

        Example:
            >>> users.builder().order_by("u.name", "u.id DESC")
            # ... ORDER BY u.name,u.id DESC
        """
        if not fragments:
            return self
        return self._clone(order_by=",".join(fragments))

    def group_by(self, fragment: str) -> Self:
        return self._clone(group_by=fragment)

    def having(self, fragment: str) -> Self:
        return self._clone(having=fragment)

    def limit(self, count: int) -> Self:
        """Rows per page. Zero or negative means no LIMIT at all."""
        return self._clone(limit=count)

    def page(self, number: int) -> Self:
        """1-based page number. ``paginate()`` treats values below 1 as 1."""
        return self._clone(page=number)

    def with_wrap_json(self, wrap: bool = True) -> Self:
        return self._clone(wrap_json=wrap)
