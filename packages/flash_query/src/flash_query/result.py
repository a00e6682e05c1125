from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Generic,
    Sequence,
    TypeAlias,
    TypeVar,
)

from sqlalchemy import select

from .exceptions import NoRowsError, QueryContractError, ResultTypeError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from .sql import ComposedQuery

T = TypeVar("T")


@dataclass(frozen=True)
class SingleResult(Generic[T]):
    """A handler result holding exactly one record (or ``None``)."""

    record: T | None


@dataclass(frozen=True)
class ManyResult(Generic[T]):
    """A handler result holding zero or more records."""

    records: Sequence[T] = field(default_factory=tuple)


QueryResult: TypeAlias = SingleResult[Any] | ManyResult[Any]

ExecutionHandler: TypeAlias = Callable[
    ["AsyncSession", "ComposedQuery"], Awaitable[QueryResult]
]


def validate_destination(into: Any) -> None:
    """
    Ensure a projection destination is a class (or ``None`` for "anything").

    Raises:
        QueryContractError: If ``into`` is an instance or any other non-class.
    """
    if into is not None and not isinstance(into, type):
        msg = f"destination must be a class, got {type(into).__name__}"
        raise QueryContractError(msg)


def _check_record(record: Any, into: type[T] | None) -> T:
    if into is not None and not isinstance(record, into):
        raise ResultTypeError(type(record), into)
    return record


def project_one(result: QueryResult, into: type[T] | None = None) -> T:
    """
    Extract a single record out of a handler result.

    Args:
        result: The value returned by an execution handler.
        into: Expected record class; ``None`` accepts any record.

    Returns:
        The record itself for a ``SingleResult``, the first element for a
        ``ManyResult``.

    Raises:
        NoRowsError: If the result carries no record.
        ResultTypeError: If the record is not an ``into`` instance or the
            handler returned something other than a ``QueryResult``.

    Example:
        >>> project_one(ManyResult([user]), User) is user
        True
    """
    validate_destination(into)

    if isinstance(result, SingleResult):
        if result.record is None:
            raise NoRowsError("query returned no rows")
        return _check_record(result.record, into)

    if isinstance(result, ManyResult):
        if not result.records:
            raise NoRowsError("query returned no rows")
        return _check_record(result.records[0], into)

    raise ResultTypeError(type(result), "SingleResult | ManyResult")


def project_many(result: QueryResult, into: type[T] | None = None) -> list[T]:
    """
    Extract every record out of a handler result as a list.

    A ``SingleResult`` becomes a one-element list (or an empty one for a
    ``None`` record).
    """
    validate_destination(into)

    if isinstance(result, SingleResult):
        records: Sequence[Any] = () if result.record is None else (result.record,)
    elif isinstance(result, ManyResult):
        records = result.records
    else:
        raise ResultTypeError(type(result), "SingleResult | ManyResult")

    return [_check_record(record, into) for record in records]


# --- Built-in handlers ---


def model_handler(model: type[T]) -> ExecutionHandler:
    """
    Build a handler that maps every row onto ORM instances of ``model``.

    The composed SQL must select the model's columns.

    Example:
        >>> users = QuerySpec("SELECT u.* FROM users u",
        ...                   handler=model_handler(User))
    """

    async def handler(db: AsyncSession, query: ComposedQuery) -> QueryResult:
        stmt = select(model).from_statement(query.statement())
        result = await db.execute(stmt)
        return ManyResult(tuple(result.scalars().unique().all()))

    return handler


async def mappings_handler(db: AsyncSession, query: ComposedQuery) -> QueryResult:
    """Return every row as a read-only mapping of column name to value."""
    result = await db.execute(query.statement())
    return ManyResult(tuple(result.mappings().all()))


async def scalars_handler(db: AsyncSession, query: ComposedQuery) -> QueryResult:
    """Return the first column of every row, e.g. JSON-wrapped records."""
    result = await db.execute(query.statement())
    return ManyResult(tuple(result.scalars().all()))
