from __future__ import annotations

from .execution import QueryBuilderExecution


class QueryBuilder(QueryBuilderExecution):
    """
    Persistent builder for a raw SQL query.

    A QueryBuilder starts from a base SELECT (usually through
    ``QuerySpec.builder()``) and accumulates predicates, ordering, grouping,
    limit and page. Each configuration method returns a new builder; the
    SQL text is assembled again on every execution.

    Execution happens only through terminal methods such as:
        - paginate()
        - fetch_one()
        - fetch_many()
        - find()
        - scan() / scan_row()

    Examples:
        >>> qb = users.builder().where("u.company_id = ?", 2).order_by("u.id")
        >>> page = await qb.limit(10).page(1).paginate(db)

        >>> QueryBuilder("SELECT * FROM devices d").where("d.platform = ?", "iOS").build()
        ('SELECT * FROM devices d WHERE d.platform = ?', 'SELECT * FROM devices d WHERE d.platform = ?')
    """


__all__ = ["QueryBuilder"]
