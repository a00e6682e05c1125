from .builder import QueryBuilder
from .config import FlashQuerySettings, query_settings
from .db import close_db, get_db, init_db
from .exceptions import (
    CountQueryError,
    FlashQueryError,
    HandlerNotConfiguredError,
    NoRowsError,
    QueryCompositionError,
    QueryContractError,
    ResultTypeError,
)
from .pagination import Pagination, Paginator, compute_page_meta
from .params import PageParams
from .result import (
    ExecutionHandler,
    ManyResult,
    QueryResult,
    SingleResult,
    mappings_handler,
    model_handler,
    project_many,
    project_one,
    scalars_handler,
)
from .spec import QuerySpec
from .sql import ComposedQuery, NamedArg, named

__all__ = [
    "ComposedQuery",
    "CountQueryError",
    "ExecutionHandler",
    "FlashQueryError",
    "FlashQuerySettings",
    "HandlerNotConfiguredError",
    "ManyResult",
    "NamedArg",
    "NoRowsError",
    "PageParams",
    "Pagination",
    "Paginator",
    "QueryBuilder",
    "QueryCompositionError",
    "QueryContractError",
    "QueryResult",
    "QuerySpec",
    "ResultTypeError",
    "SingleResult",
    "close_db",
    "compute_page_meta",
    "get_db",
    "init_db",
    "mappings_handler",
    "model_handler",
    "named",
    "project_many",
    "project_one",
    "query_settings",
    "scalars_handler",
]
