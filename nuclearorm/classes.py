from __future__ import annotations
from .errors import (
    AttributeNotFound,
    ExecutionFailure,
    HiddenAttribute,
    InvalidArgument,
    MassAssignment,
    tert,
    tressa,
    vert,
)
from .interfaces import (
    ConnectionProtocol,
    QueryBuilderProtocol,
    SchemaInspectorProtocol,
)
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Type
import packify


FETCH_ASSOC = 'assoc'
FETCH_NUM = 'num'


@dataclass
class Result:
    """Outcome of one executed statement. Rows are fetched before the
        handle is released, so the result outlives the cursor.
    """
    rowcount: int = field(default=-1)
    lastrowid: Any = field(default=None)
    columns: list[str] = field(default_factory=list)
    rows: list[tuple] = field(default_factory=list)

    def __bool__(self) -> bool:
        """A Result only exists for a statement that executed."""
        return True

    def fetch_all(self, mode: str = FETCH_ASSOC) -> list[dict]|list[tuple]:
        """Return the rows as dicts keyed by column name (FETCH_ASSOC)
            or as tuples (FETCH_NUM). Raises ValueError for an unknown
            mode.
        """
        vert(mode in (FETCH_ASSOC, FETCH_NUM), 'mode must be FETCH_ASSOC or FETCH_NUM')
        if mode == FETCH_NUM:
            return [tuple(row) for row in self.rows]
        return [
            {
                key: value
                for key, value in zip(self.columns, row)
            }
            for row in self.rows
        ]


@dataclass
class Clause:
    """One rendered fragment following the statement head: a predicate
        bound to a placeholder, or a literal LIMIT/OFFSET.
    """
    keyword: str = field()
    column: Optional[str] = field(default=None)
    operator: Optional[str] = field(default=None)
    value: Any = field(default=None)

    @property
    def bound(self) -> bool:
        return self.column is not None

    def render(self) -> str:
        if not self.bound:
            return f' {self.keyword} {self.value}'
        return f' {self.keyword} {self.column} {self.operator} ?'


class QueryBuilder:
    """Accumulates one SQL statement and its bound values across
        chained calls. The shaping calls (select, insert, update,
        delete) start a new statement; where, and_, limit, and offset
        append clauses to it. Nothing touches the database until a
        terminal call (insert, run, prepare_and_execute, get).
    """
    connection: Optional[ConnectionProtocol] = None
    kind: Optional[str]
    columns: list[str]
    data: dict
    clauses: list[Clause]

    def __init__(self, table: str = '',
                 connection: Optional[ConnectionProtocol] = None) -> None:
        """Initialize the instance. If connection is not injected, the
            class attribute registered by the bootstrap is used at
            execution time. Raises TypeError for invalid table.
        """
        tert(type(table) is str, 'table must be str')
        if connection is not None:
            tert(isinstance(connection, ConnectionProtocol),
                 'connection must implement ConnectionProtocol')
            self.connection = connection
        self._table = table
        self.kind = None
        self.columns = []
        self.data = {}
        self.clauses = []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(table='{self._table}', " + \
            f"query='{self.query()}', values={self.values})"

    @property
    def table_name(self) -> str:
        """The name of the target table."""
        return self._table

    @property
    def values(self) -> list[Any]:
        """The bound values in placeholder order."""
        values = list(self.data.values())
        values.extend([c.value for c in self.clauses if c.bound])
        return values

    def _start(self, kind: str) -> None:
        tressa(len(self._table) > 0, 'table must be set before building a statement')
        self.kind = kind
        self.columns = []
        self.data = {}
        self.clauses = []

    def table(self, name: str) -> QueryBuilder:
        """Set the target table, then return self. Raises TypeError for
            non-str name.
        """
        tert(type(name) is str, 'name must be str')
        self._table = name
        return self

    def select(self, columns: list[str] = ['*']) -> QueryBuilder:
        """Start a 'SELECT columns FROM table' statement, then return
            self. Raises TypeError or ValueError for invalid columns.
        """
        tert(type(columns) in (list, tuple), 'columns must be list[str]')
        tert(all([type(c) is str for c in columns]), 'columns must be list[str]')
        vert(len(columns) > 0, 'columns cannot be empty')
        self._start('select')
        self.columns = list(columns)
        return self

    def where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        """Save the 'column operator ?' predicate and its value, then
            return self. The first predicate opens the WHERE clause and
            each later one extends it with AND. Raises TypeError or
            ValueError for invalid column or operator.
        """
        keyword = 'AND' if any([c.keyword == 'WHERE' for c in self.clauses]) else 'WHERE'
        return self._predicate(keyword, column, operator, value)

    def and_(self, column: str, operator: str, value: Any) -> QueryBuilder:
        """Save the 'AND column operator ?' predicate and its value,
            then return self. Raises TypeError or ValueError for invalid
            column or operator.
        """
        return self._predicate('AND', column, operator, value)

    def _predicate(self, keyword: str, column: str, operator: str,
                   value: Any) -> QueryBuilder:
        tert(type(column) is str, 'column must be str')
        tert(type(operator) is str, 'operator must be str')
        vert(len(column) > 0, 'column cannot be empty')
        vert(len(operator) > 0, 'operator cannot be empty')
        tressa(len(self._table) > 0, 'table must be set before adding clauses')
        self.clauses.append(Clause(keyword, column, operator, value))
        return self

    def limit(self, limit: int) -> QueryBuilder:
        """Append ' LIMIT limit', then return self. Raises TypeError or
            ValueError for invalid limit.
        """
        tert(type(limit) is int, 'limit must be non-negative int')
        vert(limit >= 0, 'limit must be non-negative int')
        self.clauses.append(Clause('LIMIT', value=limit))
        return self

    def offset(self, offset: int) -> QueryBuilder:
        """Append ' OFFSET offset', then return self. Raises TypeError
            or ValueError for invalid offset.
        """
        tert(type(offset) is int, 'offset must be non-negative int')
        vert(offset >= 0, 'offset must be non-negative int')
        self.clauses.append(Clause('OFFSET', value=offset))
        return self

    def insert(self, data: dict) -> Result:
        """Insert a record immediately and return the Result. Raises
            InvalidArgument for empty data, TypeError for non-dict data,
            or ExecutionFailure if the statement fails.
        """
        if not data:
            raise InvalidArgument('data cannot be empty')
        tert(isinstance(data, dict), 'data must be dict')
        self._start('insert')
        self.data = dict(data)
        return self.prepare_and_execute()

    def update(self, data: dict) -> QueryBuilder:
        """Start an 'UPDATE table SET column = ?' statement, then return
            self so that predicates can be chained before running it.
            Raises InvalidArgument for empty data or TypeError for
            non-dict data.
        """
        if not data:
            raise InvalidArgument('data cannot be empty')
        tert(isinstance(data, dict), 'data must be dict')
        self._start('update')
        self.data = dict(data)
        return self

    def delete(self) -> QueryBuilder:
        """Start a 'DELETE FROM table' statement, then return self."""
        self._start('delete')
        return self

    def reset(self) -> QueryBuilder:
        """Returns a fresh instance using the same table and connection."""
        return self.__class__(table=self._table, connection=self.connection)

    def query(self) -> str:
        """Return the parameterized SQL accumulated so far."""
        if self.kind == 'select':
            sql = f'SELECT {", ".join(self.columns)} FROM {self._table}'
        elif self.kind == 'insert':
            sql = f'INSERT INTO {self._table} ({", ".join(self.data.keys())})' + \
                f' VALUES ({", ".join(["?" for _ in self.data])})'
        elif self.kind == 'update':
            sql = f'UPDATE {self._table} SET ' + \
                ', '.join([f'{k} = ?' for k in self.data])
        elif self.kind == 'delete':
            sql = f'DELETE FROM {self._table}'
        else:
            sql = ''

        return sql + ''.join([c.render() for c in self.clauses])

    @staticmethod
    def literal(value: Any) -> str:
        """Render a value as an SQL literal for display."""
        if value is None:
            return 'NULL'
        if type(value) is bool:
            return '1' if value else '0'
        if type(value) in (int, float, Decimal):
            return str(value)
        if type(value) in (bytes, bytearray):
            return f"X'{bytes(value).hex()}'"
        return "'" + str(value).replace("'", "''") + "'"

    @staticmethod
    def _check_bindings(sql: str, values: list) -> None:
        if sql.count('?') != len(values):
            raise ExecutionFailure(
                f'statement has {sql.count("?")} placeholders but ' +
                f'{len(values)} bound values'
            )

    def statement(self) -> str:
        """Return the SQL with the bound values interpolated. For
            display only; never executed. Raises ExecutionFailure if
            the placeholders and values do not line up.
        """
        sql, values = self.query(), self.values
        self._check_bindings(sql, values)
        parts = sql.split('?')
        rendered = parts[0]
        for value, part in zip(values, parts[1:]):
            rendered += self.literal(value) + part
        return rendered

    def _connection(self) -> ConnectionProtocol:
        tressa(self.connection is not None,
               'no connection registered; boot Nuclear or inject a connection')
        return self.connection

    def _execute(self, sql: str, values: list) -> Result:
        """Run one statement and fetch its rows before the handle is
            released. Driver errors are raised as ExecutionFailure.
        """
        connection = self._connection()
        try:
            with connection.context() as cursor:
                cursor.execute(connection.prepare(sql), values)
                description = cursor.description
                rows = cursor.fetchall() if description else []
                return Result(
                    rowcount=cursor.rowcount,
                    lastrowid=cursor.lastrowid,
                    columns=[d[0] for d in description] if description else [],
                    rows=[tuple(row) for row in rows],
                )
        except connection.driver_errors() as e:
            raise ExecutionFailure(str(e)) from e

    def prepare_and_execute(self) -> Result:
        """Execute the accumulated statement with its bound values and
            return the Result. Raises ExecutionFailure on any driver or
            SQL failure.
        """
        sql, values = self.query(), self.values
        self._check_bindings(sql, values)
        return self._execute(sql, values)

    def run(self) -> Result:
        """Alias of prepare_and_execute."""
        return self.prepare_and_execute()

    def get(self, fetch_mode: str = FETCH_ASSOC) -> list[dict]|list[tuple]:
        """Execute the statement and return all rows in the fetch mode."""
        vert(fetch_mode in (FETCH_ASSOC, FETCH_NUM),
             'fetch_mode must be FETCH_ASSOC or FETCH_NUM')
        return self.prepare_and_execute().fetch_all(fetch_mode)

    def qualify_columns(self, table: str) -> list[str]:
        """Return the column names of the table from the database
            catalog. Leaves the statement being built untouched.
        """
        tert(type(table) is str, 'table must be str')
        vert(len(table) > 0, 'table cannot be empty')
        result = self._execute(self._connection().columns_sql, [table])
        return [row[0] for row in result.rows]


class CatalogInspector:
    """Discovers table columns via the database catalog. With cache set,
        each table is looked up only once per inspector.
    """
    connection: Optional[ConnectionProtocol]
    cache: bool
    query_builder_class: Type[QueryBuilderProtocol]

    def __init__(self, connection: Optional[ConnectionProtocol] = None,
                 cache: bool = False,
                 query_builder_class: Type[QueryBuilderProtocol] = QueryBuilder) -> None:
        self.connection = connection
        self.cache = cache
        self.query_builder_class = query_builder_class
        self._known: dict[str, tuple[str, ...]] = {}

    def columns(self, table: str) -> tuple[str, ...]:
        """Return the column names of the table."""
        if self.cache and table in self._known:
            return self._known[table]
        columns = tuple(
            self.query_builder_class(connection=self.connection).qualify_columns(table)
        )
        if self.cache:
            self._known[table] = columns
        return columns


class Model:
    """Active record mapping one row of a table to an in-memory object.
        Subclasses declare table, primary_key, fillable, guarded, and
        hidden; the columns are discovered from the catalog at boot.
    """
    table: str = ''
    primary_key: str = 'id'
    fillable: tuple[str, ...] = ()
    guarded: tuple[str, ...] = ()
    hidden: tuple[str, ...] = ()
    connection: Optional[ConnectionProtocol] = None
    inspector: Optional[SchemaInspectorProtocol] = None
    query_builder_class: Type[QueryBuilderProtocol] = QueryBuilder
    attributes: dict
    columns: tuple[str, ...]
    exists: bool
    primary_key_value: Any
    builder: QueryBuilderProtocol

    def __init__(self, data: dict = {}, /, *,
                 connection: Optional[ConnectionProtocol] = None,
                 inspector: Optional[SchemaInspectorProtocol] = None) -> None:
        """Initialize the instance, boot it, then mass-assign data.
            Raises MassAssignment if data contains a non-fillable key.
        """
        tert(isinstance(data, dict), 'data must be dict')
        if connection is not None:
            self.connection = connection
        if inspector is not None:
            tert(isinstance(inspector, SchemaInspectorProtocol),
                 'inspector must implement SchemaInspectorProtocol')
            self.inspector = inspector
        self.attributes = {}
        self.exists = False
        self.primary_key_value = None
        self.boot()
        self.fill(data)

    def __repr__(self) -> str:
        """Pretty str representation."""
        return f"{self.__class__.__name__}(table='{self.table_name()}', " + \
            f"primary_key='{self.primary_key}', exists={self.exists}, " + \
            f"attributes={self.to_dict()})"

    def __hash__(self) -> int:
        """Allow inclusion in sets. Raises TypeError for unencodable
            type within self.attributes (calls packify.pack).
        """
        return hash(packify.pack(self.attributes))

    def __eq__(self, other) -> bool:
        if type(other) != type(self):
            return False

        return hash(self) == hash(other)

    @classmethod
    def table_name(cls) -> str:
        """The declared table, or the class name with a lower-cased
            first letter and an 's' appended.
        """
        if cls.table:
            return cls.table
        name = cls.__name__
        return name[:1].lower() + name[1:] + 's'

    def boot(self) -> None:
        """Create the delegated query builder and discover the columns."""
        self.builder = self.new_query()
        inspector = self.inspector or CatalogInspector(self.connection)
        self.columns = tuple(inspector.columns(self.table_name()))

    def new_query(self) -> QueryBuilderProtocol:
        """Returns a fresh query builder scoped to this model's table."""
        return self.query_builder_class(
            table=self.table_name(), connection=self.connection
        )

    def get_fillable(self) -> tuple[str, ...]:
        return tuple(self.fillable)

    def is_fillable(self, name: str) -> bool:
        """Guarded attributes are never fillable, even when listed in
            fillable.
        """
        return name in self.fillable and name not in self.guarded

    def get_attribute(self, name: str) -> Any:
        """Return the value of the attribute. Raises AttributeNotFound
            if it is not set or HiddenAttribute if it is hidden.
        """
        if name not in self.attributes:
            raise AttributeNotFound(f'attribute {name} does not exist')
        if name in self.hidden:
            raise HiddenAttribute(f'attribute {name} is hidden')
        return self.attributes[name]

    def set_attribute(self, name: str, value: Any) -> None:
        """Set the attribute. Raises MassAssignment if not fillable."""
        if not self.is_fillable(name):
            raise MassAssignment(f'attribute {name} is not fillable')
        self.attributes[name] = value

    def fill(self, data: dict) -> Model:
        """Set each item of data as an attribute. Return self in monad
            pattern.
        """
        self._guard_mass_assignment(data)
        for key, value in data.items():
            self.attributes[key] = value
        return self

    def to_dict(self) -> dict:
        """The attributes without the hidden ones."""
        return {
            key: value
            for key, value in self.attributes.items()
            if key not in self.hidden
        }

    def _guard_mass_assignment(self, data: dict) -> None:
        tert(isinstance(data, dict), 'data must be dict')
        for key in data:
            if not self.is_fillable(key):
                raise MassAssignment(f'attribute {key} is not fillable')

    def select(self, columns: Optional[list[str]] = None) -> Model:
        """Start a select over the requested columns, or all discovered
            columns for None or ['*'], leaving out hidden ones. Return
            self in monad pattern. Raises ValueError if no visible
            column remains.
        """
        if columns is None or list(columns) == ['*']:
            columns = self.columns
        projection = [c for c in columns if c not in self.hidden]
        vert(len(projection) > 0, 'no visible columns to select')
        self.builder = self.new_query().select(projection)
        return self

    def where(self, column: str, operator: str, value: Any) -> Model:
        """Add a predicate to the pending select, starting a default
            select if none is pending. Return self in monad pattern.
        """
        if self.builder.kind is None:
            self.select()
        self.builder.where(column, operator, value)
        return self

    def and_(self, column: str, operator: str, value: Any) -> Model:
        if self.builder.kind is None:
            self.select()
        self.builder.and_(column, operator, value)
        return self

    def limit(self, limit: int) -> Model:
        if self.builder.kind is None:
            self.select()
        self.builder.limit(limit)
        return self

    def offset(self, offset: int) -> Model:
        if self.builder.kind is None:
            self.select()
        self.builder.offset(offset)
        return self

    def get(self, fetch_mode: str = FETCH_ASSOC) -> list[dict]|list[tuple]:
        """Run the pending select and return the rows. The builder is
            replaced afterwards so the next chain starts fresh.
        """
        if self.builder.kind is None:
            self.select()
        try:
            return self.builder.get(fetch_mode)
        finally:
            self.builder = self.new_query()

    def all(self) -> list[dict]:
        """Return every row, projected without hidden columns."""
        return self.select().get()

    def create(self, data: dict) -> Any:
        """Insert a new row and return the Result. Raises MassAssignment
            before any database call if a key is not fillable, or
            InvalidArgument for empty data.
        """
        self._guard_mass_assignment(data or {})
        return self.new_query().insert(data)

    def update(self, data: dict) -> Any:
        """Update the bound row and return the Result, then apply the
            changes to the attributes. Raises MassAssignment for a
            non-fillable key, InvalidArgument for empty data, or
            UsageError if the primary key value is not known yet.
        """
        self._guard_mass_assignment(data or {})
        builder = self.new_query().update(data)
        tressa(self.primary_key_value is not None,
               f'{self.primary_key} is unknown; find the record before updating')
        result = builder.where(self.primary_key, '=', self.primary_key_value).run()
        self.attributes.update(data)
        return result

    def find(self, key_value: Any, columns: Optional[list[str]] = None) -> dict|list:
        """Look up the row whose primary key equals key_value. When
            found, hydrate the attributes, mark the instance as existing,
            capture the primary key value, and return the row. Otherwise
            return the empty result and leave the identity untouched.
        """
        rows = self.select(columns).where(self.primary_key, '=', key_value).get()
        if not rows:
            return rows

        row = rows[0]
        self.attributes = dict(row)
        self.exists = True
        self.primary_key_value = row.get(self.primary_key, key_value)
        return row

    def save(self) -> Any:
        """Persist the fillable attributes: update the bound row if the
            instance exists, otherwise insert a new row and capture its
            generated key. Returns the Result.
        """
        data = {
            key: value
            for key, value in self.attributes.items()
            if self.is_fillable(key)
        }
        if self.exists:
            return self.update(data)

        result = self.create(data)
        key_value = self.attributes.get(self.primary_key)
        if key_value is None:
            key_value = result.lastrowid or None
        if key_value is not None:
            self.attributes[self.primary_key] = key_value
            self.primary_key_value = key_value
            self.exists = True
        return result

    def delete(self) -> Any:
        """Delete the bound row and return the Result. The instance
            goes back to being a new, unsaved record. Raises UsageError
            if the primary key value is not known.
        """
        tressa(self.primary_key_value is not None,
               f'{self.primary_key} is unknown; find the record before deleting')
        result = self.new_query().delete().where(
            self.primary_key, '=', self.primary_key_value
        ).run()
        self.exists = False
        self.primary_key_value = None
        self.attributes.pop(self.primary_key, None)
        return result
