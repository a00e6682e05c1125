class FlashQueryError(Exception):
    """Base class for all Flash Query exceptions."""


class HandlerNotConfiguredError(FlashQueryError, RuntimeError):
    """Raised when a query is executed without any execution handler wired in."""


class NoRowsError(FlashQueryError, LookupError):
    """Raised when a single record was expected but none was returned."""


class ResultTypeError(FlashQueryError, TypeError):
    """Raised when a handler result does not fit the requested destination type."""

    def __init__(self, actual: object, expected: object):
        self.actual = actual
        self.expected = expected
        super().__init__(f"{_type_name(actual)} is not {_type_name(expected)}")


class QueryContractError(FlashQueryError, TypeError):
    """Raised when a caller passes an unusable destination."""


class QueryCompositionError(FlashQueryError, ValueError):
    """Raised when bound values do not line up with the SQL placeholders."""


class CountQueryError(FlashQueryError, RuntimeError):
    """Raised when the pagination count query fails in strict count mode."""


def _type_name(obj: object) -> str:
    if isinstance(obj, type):
        return f"{obj.__module__}.{obj.__qualname__}"
    return str(obj)
