from __future__ import annotations
from .classes import Model, QueryBuilder
from .connection import Connection, ConnectionConfig
from .errors import tert
from os import environ
from sys import argv
from typing import Any, Mapping, Optional


class Nuclear:
    """Bootstrap registry: builds one shared Connection and registers it
        as the default for every QueryBuilder and Model.
    """
    connection: Connection

    def __init__(self, params: Mapping[str, Any]|ConnectionConfig) -> None:
        """Initialize the instance. Raises TypeError or ValueError for
            invalid params.
        """
        self.connection = Connection(params)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Nuclear:
        """Build from the DB_* environment variables."""
        return cls(ConnectionConfig.from_env(environ if env is None else env))

    def get_connection(self) -> Connection:
        return self.connection

    def boot(self) -> Nuclear:
        """Register the connection as the process default. Return self
            in monad pattern.
        """
        QueryBuilder.connection = self.connection
        Model.connection = self.connection
        return self


def status(connection: Connection) -> str:
    """Return the connection status string."""
    tert(isinstance(connection, Connection), 'connection must be Connection')
    return connection.status()

def columns(connection: Connection, table: str) -> list[str]:
    """Return the column names the catalog reports for the table."""
    tert(isinstance(connection, Connection), 'connection must be Connection')
    return QueryBuilder(connection=connection).qualify_columns(table)

def help_cli(name: str) -> str:
    return f"Usage: {name} status\n" + \
    f"       {name} columns [table]\n\n" + \
    "Set DB_CONNECTION (sqlite or mysql), DB_DATABASE, and as needed\n" + \
    "DB_HOST, DB_PORT, DB_USERNAME, DB_PASSWORD, DB_PERSISTENT_CONNECTION,\n" + \
    "and DB_TIMEOUT in the environment to configure the connection.\n" + \
    "status prints the connection status. columns prints the column\n" + \
    "names of the table, one per line."

def run_cli() -> None:
    """Entry point for the CLI tool."""
    if len(argv) < 2 or argv[1] not in ('status', 'columns'):
        print(help_cli(argv[0]))
        return

    if argv[1] == 'columns' and len(argv) < 3:
        print(help_cli(argv[0]))
        return

    nuclear = Nuclear.from_env()

    if argv[1] == 'status':
        print(status(nuclear.get_connection()))
        return

    for name in columns(nuclear.get_connection(), argv[2]):
        print(name)


if __name__ == '__main__':
    run_cli()
