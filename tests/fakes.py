from types import TracebackType
from typing import Any, Optional, Type


class FakeCursor:
    """Records statements; answers catalog queries with the fake's
        catalog and every other query with the fake's rows.
    """
    def __init__(self, connection: 'FakeConnection') -> None:
        self.connection = connection
        self.description = None
        self.rowcount = -1
        self.lastrowid = None
        self._rows = []

    def execute(self, sql: str, parameters: list = []) -> 'FakeCursor':
        self.connection.statements.append((sql, list(parameters)))
        if sql == self.connection.columns_sql:
            self.description = [('name',)]
            self._rows = [(c,) for c in self.connection.catalog]
        elif sql.startswith('SELECT'):
            self.description = [(c,) for c in self.connection.result_columns]
            self._rows = list(self.connection.rows)
        else:
            self.description = None
            self._rows = []
            self.rowcount = 1
            self.lastrowid = self.connection.lastrowid
        return self

    def executemany(self, sql: str, seq_of_parameters: list = []) -> 'FakeCursor':
        for parameters in seq_of_parameters:
            self.execute(sql, parameters)
        return self

    def fetchone(self) -> Any:
        return self._rows[0] if self._rows else None

    def fetchall(self) -> Any:
        return self._rows


class FakeContext:
    def __init__(self, connection: 'FakeConnection') -> None:
        self.connection = connection

    def __enter__(self) -> FakeCursor:
        return FakeCursor(self.connection)

    def __exit__(self, __exc_type: Optional[Type[BaseException]],
                __exc_value: Optional[BaseException],
                __traceback: Optional[TracebackType]) -> None:
        ...


class FakeError(Exception):
    ...


class FakeConnection:
    """In-memory stand-in implementing ConnectionProtocol."""
    columns_sql: str = 'CATALOG ?'

    def __init__(self, catalog: tuple = (), rows: list = [],
                 result_columns: tuple = (), lastrowid: Any = None) -> None:
        self.catalog = catalog
        self.rows = rows
        self.result_columns = result_columns
        self.lastrowid = lastrowid
        self.statements = []

    def connect(self) -> Any:
        return self

    def status(self) -> str:
        return 'fake'

    def context(self) -> FakeContext:
        return FakeContext(self)

    def prepare(self, sql: str) -> str:
        return sql

    def driver_errors(self) -> tuple:
        return (FakeError,)


class FixedInspector:
    """Supplies columns without touching a database."""
    def __init__(self, *columns: str) -> None:
        self._columns = columns

    def columns(self, table: str) -> tuple[str, ...]:
        return self._columns
