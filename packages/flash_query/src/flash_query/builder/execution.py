from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Sequence,
    TypeVar,
)

from sqlalchemy import select

from flash_query.config import query_settings
from flash_query.db import engine_of
from flash_query.exceptions import NoRowsError
from flash_query.logging import get_logger, scoped_query_name
from flash_query.pagination import Pagination, Paginator
from flash_query.result import project_many, project_one, validate_destination

from .construction import QueryBuilderConstruction

if TYPE_CHECKING:
    from sqlalchemy.engine import Row, RowMapping
    from sqlalchemy.ext.asyncio import AsyncSession

    from flash_query.result import ExecutionHandler
    from flash_query.sql import ComposedQuery

logger = get_logger(__name__)

T = TypeVar("T")


class QueryBuilderExecution(QueryBuilderConstruction):
    """
    Terminal methods that send the composed SQL to the database.

    ``paginate``, ``fetch_one`` and ``fetch_many`` go through the execution
    handler; ``find``, ``scan`` and ``scan_row`` run the SQL directly on the
    session.
    """

    def _log(self, action: str, query: ComposedQuery) -> None:
        if query_settings.LOG_SQL:
            logger.debug("%s: %s %r", action, query.text, query.values)

    async def paginate(
        self,
        db: AsyncSession,
        handler: ExecutionHandler | None = None,
        *,
        metadata: Any = None,
    ) -> Pagination[Any]:
        """
        Return one page of records with navigation metadata.

        The count query runs concurrently with the data query unless the
        session holds an open transaction, in which case it runs on the
        session afterwards. A page below 1 is treated as page 1.

        Raises:
            HandlerNotConfiguredError: If no handler is configured.

        Example:
            >>> page = await users.builder().limit(10).page(2).paginate(db)
            >>> page.has_next
            True
        """
        return await Paginator().paginate(self, db, handler, metadata=metadata)

    async def fetch_one(
        self,
        db: AsyncSession,
        into: type[T] | None = None,
        handler: ExecutionHandler | None = None,
    ) -> T:
        """
        Return the first record of the query, with LIMIT 1 applied.

        Args:
            db: The asynchronous SQLAlchemy session.
            into: Expected record class; ``None`` accepts any record.
            handler: Overrides the handler declared on the QuerySpec.

        Raises:
            QueryContractError: If ``into`` is not a class. Checked before
                the handler runs.
            NoRowsError: If the query matched nothing.
            ResultTypeError: If the record is not an instance of ``into``.

        Example:
            >>> user = await users.builder().where("u.id = ?", 1).fetch_one(db, User)
        """
        validate_destination(into)
        fn = self._resolve_handler(handler)
        query = self.limit(1).compose()

        with scoped_query_name(self.name):
            self._log("Fetching one", query)
            result = await fn(db, query)
            return project_one(result, into)

    async def fetch_many(
        self,
        db: AsyncSession,
        into: type[T] | None = None,
        handler: ExecutionHandler | None = None,
    ) -> list[T]:
        """
        Return every record of the query through the execution handler.

        Raises:
            QueryContractError: If ``into`` is not a class.
            ResultTypeError: If a record is not an instance of ``into``.
        """
        fn = self._resolve_handler(handler)
        query = self.compose()

        with scoped_query_name(self.name):
            self._log("Fetching many", query)
            result = await fn(db, query)
            return project_many(result, into)

    async def find(self, db: AsyncSession, model: type[T]) -> Sequence[T]:
        """
        Map the rows straight onto ORM instances of ``model``, bypassing the
        handler.

        Example:
            >>> devices = await devices_spec.builder().find(db, Device)
        """
        validate_destination(model)
        query = self.compose()

        with scoped_query_name(self.name):
            self._log("Finding", query)
            stmt = select(model).from_statement(query.statement())
            result = await db.execute(stmt)
            return result.scalars().unique().all()

    async def scan(self, db: AsyncSession) -> Sequence[RowMapping]:
        """
        Execute the data query and return the raw rows as mappings.
        """
        query = self.compose()

        with scoped_query_name(self.name):
            self._log("Scanning", query)
            result = await db.execute(query.statement())
            return result.mappings().all()

    async def scan_row(self, db: AsyncSession) -> Row[Any]:
        """
        Execute the data query and return its first row.

        Raises:
            NoRowsError: If the query returned nothing.
        """
        query = self.compose()

        with scoped_query_name(self.name):
            self._log("Scanning row", query)
            result = await db.execute(query.statement())
            row = result.first()

        if row is None:
            raise NoRowsError("query returned no rows")
        return row

    def explain_sql(self, db: AsyncSession | None = None) -> str:
        """
        Render the data query with its values inlined, for debugging.

        The SQL is compiled for the session's dialect when ``db`` is given.
        Nothing is executed.

        Example:
            >>> users.builder().where("u.id = ?", 7).explain_sql()
            'SELECT u.* FROM users u WHERE u.id = 7'
        """
        stmt = self.compose().statement()
        dialect = engine_of(db).dialect if db is not None else None
        compiled = stmt.compile(dialect=dialect, compile_kwargs={"literal_binds": True})
        return str(compiled)
