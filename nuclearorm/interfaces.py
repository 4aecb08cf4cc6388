"""
    The interfaces used by the package. `CursorProtocol` and
    `DBContextProtocol` describe what the execution layer expects from a
    DB-API driver, and `ConnectionProtocol` must be implemented to bind
    the library to a new driver or to a fake connection for testing.
    `SchemaInspectorProtocol` can be implemented to supply model columns
    without a catalog lookup.
"""


from __future__ import annotations
from types import TracebackType
from typing import (
    Any,
    Iterable,
    Optional,
    Protocol,
    Type,
    runtime_checkable,
)


@runtime_checkable
class CursorProtocol(Protocol):
    """Interface showing how a DB cursor should function."""
    def execute(self, sql: str, parameters: list[Any] = []) -> CursorProtocol:
        """Execute a single query with the given parameters."""
        ...

    def executemany(self, sql: str,
                    seq_of_parameters: Iterable[list[Any]] = []) -> CursorProtocol:
        """Execute a query once for each list of parameters."""
        ...

    def fetchone(self) -> Any:
        """Get one record returned by the previous query."""
        ...

    def fetchall(self) -> Any:
        """Get all records returned by the previous query."""
        ...


@runtime_checkable
class DBContextProtocol(Protocol):
    """Interface showing how a context manager for running statements
        against a connection should behave.
    """
    def __enter__(self) -> CursorProtocol:
        """Enter the `with` block. Should return a cursor useful for
            making db calls.
        """
        ...

    def __exit__(self, exc_type: Optional[Type[BaseException]],
                exc_value: Optional[BaseException],
                traceback: Optional[TracebackType]) -> None:
        """Exit the `with` block. Should commit or rollback as
            appropriate, then release the handle.
        """
        ...


@runtime_checkable
class ConnectionProtocol(Protocol):
    """Interface showing how a shared connection should function."""
    def connect(self) -> Any:
        """Return a live DB-API connection handle."""
        ...

    def status(self) -> str:
        """Return a human-readable connection status."""
        ...

    def context(self) -> DBContextProtocol:
        """Return a context manager that yields a cursor."""
        ...

    def prepare(self, sql: str) -> str:
        """Translate `?` placeholders to the driver's paramstyle."""
        ...

    @property
    def columns_sql(self) -> str:
        """Parameterized catalog query returning the column names of
            one table.
        """
        ...

    def driver_errors(self) -> tuple[Type[BaseException], ...]:
        """Exception classes raised by the underlying driver."""
        ...


@runtime_checkable
class SchemaInspectorProtocol(Protocol):
    """Interface for discovering the columns of a table."""
    def columns(self, table: str) -> tuple[str, ...]:
        """Return the column names of the table."""
        ...


@runtime_checkable
class ResultProtocol(Protocol):
    """Interface for the outcome of one executed statement."""
    @property
    def rowcount(self) -> int:
        """Number of rows affected, or -1 if unknown."""
        ...

    @property
    def rows(self) -> list[tuple]:
        """Fetched rows."""
        ...

    def fetch_all(self, mode: str = 'assoc') -> list[dict]|list[tuple]:
        """Return the rows in the requested fetch mode."""
        ...


@runtime_checkable
class QueryBuilderProtocol(Protocol):
    """Interface showing how a query builder should function."""
    @property
    def kind(self) -> Optional[str]:
        """The statement kind set by the last shaping call, or None."""
        ...

    def table(self, name: str) -> QueryBuilderProtocol:
        """Set the target table, then return self."""
        ...

    def select(self, columns: list[str] = ['*']) -> QueryBuilderProtocol:
        """Start a select statement, then return self."""
        ...

    def where(self, column: str, operator: str, value: Any) -> QueryBuilderProtocol:
        """Add a predicate, then return self."""
        ...

    def and_(self, column: str, operator: str, value: Any) -> QueryBuilderProtocol:
        """Add an AND predicate, then return self."""
        ...

    def limit(self, limit: int) -> QueryBuilderProtocol:
        """Add a LIMIT, then return self."""
        ...

    def offset(self, offset: int) -> QueryBuilderProtocol:
        """Add an OFFSET, then return self."""
        ...

    def insert(self, data: dict) -> ResultProtocol:
        """Insert a record immediately and return the result."""
        ...

    def update(self, data: dict) -> QueryBuilderProtocol:
        """Start an update statement, then return self."""
        ...

    def delete(self) -> QueryBuilderProtocol:
        """Start a delete statement, then return self."""
        ...

    def qualify_columns(self, table: str) -> list[str]:
        """Return the column names of the table from the catalog."""
        ...

    def statement(self) -> str:
        """Return the SQL with values interpolated, for display only."""
        ...

    def query(self) -> str:
        """Return the parameterized SQL."""
        ...

    def prepare_and_execute(self) -> ResultProtocol:
        """Execute the statement and return the result."""
        ...

    def run(self) -> ResultProtocol:
        """Alias of prepare_and_execute."""
        ...

    def get(self, fetch_mode: str = 'assoc') -> list[dict]|list[tuple]:
        """Execute the statement and return all rows."""
        ...

    def reset(self) -> QueryBuilderProtocol:
        """Return a fresh instance using the same connection and table."""
        ...


@runtime_checkable
class ModelProtocol(Protocol):
    """Interface showing how a model should function."""
    @property
    def attributes(self) -> dict:
        """Dict for storing model data."""
        ...

    @property
    def columns(self) -> tuple[str, ...]:
        """Tuple of str column names discovered at boot."""
        ...

    @property
    def exists(self) -> bool:
        """True once the instance is bound to a stored row."""
        ...

    @classmethod
    def table_name(cls) -> str:
        """Str with the name of the table."""
        ...

    def get_attribute(self, name: str) -> Any:
        """Return the value of a visible attribute."""
        ...

    def set_attribute(self, name: str, value: Any) -> None:
        """Set the value of a fillable attribute."""
        ...

    def select(self, columns: list[str] = None) -> ModelProtocol:
        """Start a select projected per the hidden attributes."""
        ...

    def where(self, column: str, operator: str, value: Any) -> ModelProtocol:
        """Add a predicate to the pending query."""
        ...

    def all(self) -> list[dict]:
        """Return every row of the table."""
        ...

    def create(self, data: dict) -> ResultProtocol:
        """Insert a new row from mass-assignable data."""
        ...

    def update(self, data: dict) -> ResultProtocol:
        """Update the row this instance is bound to."""
        ...

    def find(self, key_value: Any, columns: list[str] = None) -> dict|list:
        """Look up a row by primary key and bind to it."""
        ...

    def save(self) -> ResultProtocol:
        """Persist the attributes via insert or update."""
        ...
