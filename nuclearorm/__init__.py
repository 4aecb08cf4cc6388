"""
    Nuclearorm is a minimal object-relational mapping package: a fluent
    query builder that assembles one parameterized SQL statement at a
    time, and an active record Model that binds an object to a row with
    fillable, guarded, and hidden attribute rules. The majority of
    useful features are exposed from the root level of the package; the
    bootstrap and CLI live in nuclearorm.tools.
"""

from nuclearorm.classes import (
    QueryBuilder,
    Model,
    Result,
    Clause,
    CatalogInspector,
    FETCH_ASSOC,
    FETCH_NUM,
)
from nuclearorm.connection import (
    Connection,
    ConnectionConfig,
    DBContext,
    Driver,
    DRIVERS,
)
from nuclearorm.errors import (
    UsageError,
    InvalidArgument,
    AttributeNotFound,
    HiddenAttribute,
    MassAssignment,
    ExecutionFailure,
)
from nuclearorm.interfaces import (
    CursorProtocol,
    DBContextProtocol,
    ConnectionProtocol,
    SchemaInspectorProtocol,
    ResultProtocol,
    QueryBuilderProtocol,
    ModelProtocol,
)
from nuclearorm.tools import Nuclear
from nuclearorm.version import version
