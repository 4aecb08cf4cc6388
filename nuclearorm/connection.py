from __future__ import annotations
from .errors import ExecutionFailure, tert, vert
from .interfaces import CursorProtocol
from dataclasses import dataclass, field
from threading import RLock
from types import TracebackType
from typing import Any, Callable, Mapping, Optional, Type
import sqlite3


_TRUTHY = ('1', 'true', 'yes', 'on')


@dataclass
class ConnectionConfig:
    """Parameters for opening a database connection."""
    driver: str
    host: str
    database: str
    user: str
    password: str
    port: int = field(default=3306)
    persistent: bool = field(default=True)
    timeout: Optional[float] = field(default=None)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> ConnectionConfig:
        """Build a config from a mapping with the keys connection, host,
            database, user, password, persistent, and optionally port
            and timeout. Raises TypeError or ValueError for invalid
            params.
        """
        tert(isinstance(params, Mapping), 'params must be a mapping')
        for key in ('connection', 'host', 'database', 'user', 'password', 'persistent'):
            vert(key in params, f'missing connection param {key}')
        port = params.get('port', 3306)
        tert(type(port) is int, 'port must be int')
        timeout = params.get('timeout')
        tert(timeout is None or type(timeout) in (int, float),
             'timeout must be int, float, or None')

        return cls(
            driver=params['connection'],
            host=params['host'],
            database=params['database'],
            user=params['user'],
            password=params['password'],
            port=port,
            persistent=bool(params['persistent']),
            timeout=timeout,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> ConnectionConfig:
        """Build a config from DB_* environment variables. Raises
            ValueError if DB_CONNECTION or DB_DATABASE is missing or if
            DB_PORT or DB_TIMEOUT is not numeric.
        """
        vert(bool(environ.get('DB_CONNECTION')), 'DB_CONNECTION must be set')
        vert(bool(environ.get('DB_DATABASE')), 'DB_DATABASE must be set')
        port = environ.get('DB_PORT') or '3306'
        vert(port.isdigit(), 'DB_PORT must be an integer')
        timeout = environ.get('DB_TIMEOUT') or None
        if timeout is not None:
            try:
                timeout = float(timeout)
            except ValueError:
                raise ValueError('DB_TIMEOUT must be a number') from None

        return cls(
            driver=environ['DB_CONNECTION'],
            host=environ.get('DB_HOST', ''),
            database=environ['DB_DATABASE'],
            user=environ.get('DB_USERNAME', ''),
            password=environ.get('DB_PASSWORD', ''),
            port=int(port),
            persistent=environ.get('DB_PERSISTENT_CONNECTION', '').lower() in _TRUTHY,
            timeout=timeout,
        )


@dataclass
class Driver:
    """Binding of one DB-API driver: how to open a handle, which
        placeholder style it takes, and how to read the column catalog.
    """
    name: str
    open: Callable[[ConnectionConfig], Any]
    errors: Callable[[], tuple[Type[BaseException], ...]]
    status: Callable[[ConnectionConfig, Any], str]
    columns_sql: str
    paramstyle: str = field(default='qmark')


def _open_sqlite(config: ConnectionConfig) -> sqlite3.Connection:
    kwargs = {'check_same_thread': not config.persistent}
    if config.timeout is not None:
        kwargs['timeout'] = config.timeout
    return sqlite3.connect(config.database, **kwargs)

def _sqlite_status(config: ConnectionConfig, handle: sqlite3.Connection) -> str:
    return f"sqlite3 {sqlite3.sqlite_version} via {config.database}"

def _open_mysql(config: ConnectionConfig) -> Any:
    import mysql.connector
    kwargs = {
        'host': config.host,
        'port': config.port,
        'database': config.database,
        'user': config.user,
        'password': config.password,
    }
    if config.timeout is not None:
        kwargs['connection_timeout'] = int(config.timeout)
    return mysql.connector.connect(**kwargs)

def _mysql_errors() -> tuple[Type[BaseException], ...]:
    import mysql.connector
    return (mysql.connector.Error,)

def _mysql_status(config: ConnectionConfig, handle: Any) -> str:
    return f"{config.host} via TCP/IP"


DRIVERS: dict[str, Driver] = {
    'sqlite': Driver(
        name='sqlite',
        open=_open_sqlite,
        errors=lambda: (sqlite3.Error,),
        status=_sqlite_status,
        columns_sql='SELECT name FROM pragma_table_info(?)',
    ),
    'mysql': Driver(
        name='mysql',
        open=_open_mysql,
        errors=_mysql_errors,
        status=_mysql_status,
        columns_sql='SELECT COLUMN_NAME FROM information_schema.columns '
            'WHERE table_name = ? ORDER BY ORDINAL_POSITION',
        paramstyle='format',
    ),
}


class Connection:
    """Shared connection configuration. A persistent config reuses one
        cached handle guarded by a lock; otherwise every call to
        connect opens a fresh handle.
    """
    config: ConnectionConfig
    driver: Driver
    lock: RLock

    def __init__(self, config: ConnectionConfig|Mapping[str, Any]) -> None:
        """Initialize the instance. Raises TypeError or ValueError for
            an invalid config or an unsupported driver.
        """
        if isinstance(config, Mapping):
            config = ConnectionConfig.from_params(config)
        tert(isinstance(config, ConnectionConfig),
             'config must be ConnectionConfig or mapping of params')
        vert(config.driver in DRIVERS, f'unsupported driver {config.driver}')
        self.config = config
        self.driver = DRIVERS[config.driver]
        self.lock = RLock()
        self._handle = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(driver='{self.config.driver}', " + \
            f"host='{self.config.host}', database='{self.config.database}', " + \
            f"persistent={self.config.persistent})"

    @property
    def persistent(self) -> bool:
        return self.config.persistent

    @property
    def columns_sql(self) -> str:
        return self.driver.columns_sql

    def driver_errors(self) -> tuple[Type[BaseException], ...]:
        """Exception classes raised by the driver."""
        return self.driver.errors()

    def _open(self) -> Any:
        try:
            return self.driver.open(self.config)
        except self.driver_errors() as e:
            raise ExecutionFailure(f'could not connect: {e}') from e

    def connect(self) -> Any:
        """Return a live DB-API connection handle. Raises
            ExecutionFailure if the driver cannot connect.
        """
        if not self.persistent:
            return self._open()

        with self.lock:
            if self._handle is None:
                self._handle = self._open()
            return self._handle

    def close(self) -> None:
        """Close the cached persistent handle, if any."""
        with self.lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def status(self) -> str:
        """Connect and return a human-readable connection status."""
        handle = self.connect()
        try:
            return self.driver.status(self.config, handle)
        finally:
            if not self.persistent:
                handle.close()

    def context(self) -> DBContext:
        """Return a context manager yielding a cursor."""
        return DBContext(self)

    def prepare(self, sql: str) -> str:
        """Translate `?` placeholders to the driver's paramstyle."""
        if self.driver.paramstyle == 'format':
            return sql.replace('%', '%%').replace('?', '%s')
        return sql


class DBContext:
    """Context manager for running statements on one handle."""
    connection: Connection
    handle: Any
    cursor: Any

    def __init__(self, connection: Connection) -> None:
        """Initialize the instance. Raises TypeError for a non-Connection."""
        tert(isinstance(connection, Connection), 'connection must be Connection')
        self.connection = connection
        self.handle = None
        self.cursor = None

    def __enter__(self) -> CursorProtocol:
        """Enter the context block and return the cursor. A persistent
            handle is locked until the block exits.
        """
        if self.connection.persistent:
            self.connection.lock.acquire()
        try:
            self.handle = self.connection.connect()
            self.cursor = self.handle.cursor()
        except BaseException:
            if self.connection.persistent:
                self.connection.lock.release()
            elif self.handle is not None:
                self.handle.close()
            raise
        return self.cursor

    def __exit__(self, __exc_type: Optional[Type[BaseException]],
                __exc_value: Optional[BaseException],
                __traceback: Optional[TracebackType]) -> None:
        """Exit the context block. Commit or rollback as appropriate,
            then close a non-persistent handle.
        """
        try:
            if __exc_type is not None:
                self.handle.rollback()
            else:
                self.handle.commit()
            self.cursor.close()
        finally:
            if self.connection.persistent:
                self.connection.lock.release()
            else:
                self.handle.close()
