"""
Textual SQL assembly.

Everything here is pure string work: no SQL is parsed and nothing touches a
database. Keeping clause ordering in one function lets it be tested without
a backend.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from sqlalchemy import text

from .exceptions import QueryCompositionError

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import TextClause

# Spans a '?' is never rewritten in: single-quoted literals ('' escapes a
# quote), double-quoted identifiers, line and block comments, and the
# PostgreSQL jsonb operators ?| and ?&. Anything else matched is a bare '?'.
_PLACEHOLDER_RE = re.compile(
    r"""
    '(?:[^']|'')*'
    | "(?:[^"]|"")*"
    | --[^\n]*
    | /\*.*?\*/
    | \?[|&](?![|&])
    | \?
    """,
    re.VERBOSE | re.DOTALL,
)

# Prefix of the bind names generated for positional placeholders
POSITIONAL_PREFIX = "_p"


@dataclass(frozen=True)
class NamedArg:
    """
    A single named value for ``QueryBuilder.where``.

    Example:
        >>> users.builder().where(named("tenant", 7))
    """

    name: str
    value: Any


def named(name: str, value: Any) -> NamedArg:
    return NamedArg(name, value)


@dataclass(frozen=True)
class ComposedQuery:
    """
    SQL text plus the values bound to it.

    ``values`` holds the positional values in placeholder order, optionally
    followed by a single mapping of named values.

    A bare '?' is always a positional placeholder, so the PostgreSQL jsonb
    key-exists operator has to be written as ``jsonb_exists(col, 'key')``.
    The ``?|`` and ``?&`` operators, quoted text and comments are left as is.

    Example:
        >>> q = ComposedQuery("SELECT * FROM users WHERE id = ?", (1,))
        >>> q.params()
        {'_p1': 1}
    """

    text: str
    values: tuple[Any, ...] = field(default_factory=tuple)

    @property
    def positional(self) -> tuple[Any, ...]:
        if self.values and isinstance(self.values[-1], Mapping):
            return self.values[:-1]
        return self.values

    @property
    def named(self) -> dict[str, Any]:
        if self.values and isinstance(self.values[-1], Mapping):
            return dict(self.values[-1])
        return {}

    def bound_text(self) -> str:
        """Return the SQL with every '?' replaced by a generated bind name."""
        counter = 0

        def _replace(match: re.Match[str]) -> str:
            nonlocal counter
            if match.group(0) != "?":
                return match.group(0)
            counter += 1
            return f":{POSITIONAL_PREFIX}{counter}"

        rendered = _PLACEHOLDER_RE.sub(_replace, self.text)
        if counter != len(self.positional):
            msg = (
                f"Query has {counter} positional placeholder(s) but "
                f"{len(self.positional)} positional value(s) were bound"
            )
            raise QueryCompositionError(msg)
        return rendered

    def params(self) -> dict[str, Any]:
        """Return the bind parameters keyed by their bind names."""
        params = {
            f"{POSITIONAL_PREFIX}{i}": value
            for i, value in enumerate(self.positional, start=1)
        }
        params.update(self.named)
        return params

    def statement(self) -> TextClause:
        """
        Build an executable ``TextClause`` with all values bound.

        Raises:
            QueryCompositionError: If '?' placeholders and positional values
                do not line up.
        """
        clause = text(self.bound_text())
        # Named values the text never references are left unbound.
        referenced = clause.compile().params
        params = {
            key: value for key, value in self.params().items() if key in referenced
        }
        return clause.bindparams(**params)


def join_predicate(sql: str, predicate: Any, *, has_where: bool) -> str:
    """Attach a predicate with WHERE for the first one, AND afterwards."""
    keyword = "AND" if has_where else "WHERE"
    return f"{sql} {keyword} {predicate}"


def compute_offset(page: int, limit: int) -> int:
    """
    Zero-based row offset of a 1-based page.

    >>> compute_offset(3, 10)
    20
    >>> compute_offset(0, 10)
    0
    """
    if page > 1:
        return (page - 1) * limit
    return 0


def assemble(
    raw_sql: str,
    count_sql: str = "",
    *,
    group_by: str = "",
    having: str = "",
    order_by: str = "",
    limit: int = 0,
    page: int = 0,
    wrap_json: bool = False,
    json_alias: str = "alias",
) -> tuple[str, str]:
    """
    Assemble the data query and the count query.

    The data query receives GROUP BY, HAVING, ORDER BY, LIMIT, OFFSET and the
    optional JSON wrap, in that order. The count query receives GROUP BY and
    HAVING only. When ``count_sql`` is empty the data SQL is reused as the
    count base.

    Example:
        >>> assemble("SELECT * FROM t", order_by="id", limit=5, page=2)
        ('SELECT * FROM t ORDER BY id LIMIT 5 OFFSET 5', 'SELECT * FROM t')
    """
    query = raw_sql
    count = count_sql or raw_sql

    if group_by:
        query = f"{query} GROUP BY {group_by}"
        count = f"{count} GROUP BY {group_by}"

    if having:
        query = f"{query} HAVING {having}"
        count = f"{count} HAVING {having}"

    if order_by:
        query = f"{query} ORDER BY {order_by}"

    if limit > 0:
        query = f"{query} LIMIT {limit}"

    # Without a LIMIT the offset is always 0; SQLite rejects a bare OFFSET.
    if page > 0 and limit > 0:
        query = f"{query} OFFSET {compute_offset(page, limit)}"

    if wrap_json:
        query = wrap_as_json(query, alias=json_alias)

    return query, count


def wrap_as_json(query: str, *, alias: str = "alias") -> str:
    """Project every row of ``query`` as one JSONB value (PostgreSQL)."""
    return (
        f"WITH {alias} AS (\n{query}\n)\n"
        f"SELECT to_jsonb(row_to_json({alias})) AS {alias}\n"
        f"FROM {alias}"
    )


def wrap_count(count_sql: str) -> str:
    """Count the rows produced by ``count_sql`` whatever its projection."""
    return f"SELECT COUNT(1)\nFROM (\n{count_sql}\n) t"


def merge_values(
    positional: Sequence[Any], named: Mapping[str, Any]
) -> tuple[Any, ...]:
    """
    Positional values in order, then the named mapping as one trailing value.

    >>> merge_values([1, 2], {"name": "a"})
    (1, 2, {'name': 'a'})
    >>> merge_values([1], {})
    (1,)
    """
    values: list[Any] = list(positional)
    if named:
        values.append(dict(named))
    return tuple(values)
