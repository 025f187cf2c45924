"""SQL text rendering strategies for stored program calls.

Each dialect only knows how to quote a qualified name and how to shape the
three call forms: table-valued function, scalar function and stored procedure.
Quoted parts are never escaped; names are checked for injection characters by
:mod:`procspec.validation` before they reach a dialect.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Final, Optional

from sqlglot.dialects.dialect import Dialect as SQLGlotDialect

from procspec.exceptions import ImproperConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = (
    "Dialect",
    "MySqlDialect",
    "PostgresDialect",
    "QuotedDialect",
    "SqlServerDialect",
    "list_dialects",
    "register_dialect",
    "resolve_dialect",
)

DIALECT_ALIASES: Final[dict[str, str]] = {
    "mssql": "tsql",
    "sqlserver": "tsql",
    "postgresql": "postgres",
    "pg": "postgres",
    "mariadb": "mysql",
}


class Dialect(ABC):
    """Dialect-specific rendering of stored program SQL."""

    __slots__ = ()

    name: ClassVar[str]
    identifier_start: ClassVar[str] = '"'
    identifier_end: ClassVar[str] = '"'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dialect):
            return NotImplemented
        return type(self) is type(other) and self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash((type(self), self._identity()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._identity()[0]!r})"

    def _identity(self) -> "tuple[str, str, str]":
        return (self.name, self.identifier_start, self.identifier_end)

    def quote(self, identifier: str) -> str:
        return f"{self.identifier_start}{identifier}{self.identifier_end}"

    def format_full_name(self, schema: str, name: str) -> str:
        """Quote each part of a schema-qualified name and join them with ``.``.

        Args:
            schema: Schema name.
            name: Program name.

        Returns:
            The quoted, qualified name.
        """
        return f"{self.quote(schema)}.{self.quote(name)}"

    def create_table_function_query(
        self, full_name: str, placeholders: "Sequence[str]", order_by: Optional[str] = None
    ) -> str:
        """Render a ``SELECT *`` over a table-valued function.

        Args:
            full_name: Qualified function name, already quoted.
            placeholders: Positional placeholders, one per input parameter.
            order_by: Optional ``ORDER BY`` expression, omitted when ``None`` or blank.

        Returns:
            The SQL text.
        """
        sql = f"SELECT * FROM {full_name}({','.join(placeholders)})"
        if order_by is not None and order_by.strip():
            sql += f" ORDER BY {order_by}"
        return sql

    def create_scalar_function_query(self, full_name: str, placeholders: "Sequence[str]") -> str:
        return f"SELECT {full_name}({','.join(placeholders)})"

    @abstractmethod
    def create_stored_procedure_call(self, full_name: str, placeholders: "Sequence[str]") -> str:
        """Render the dialect's stored procedure invocation."""
        raise NotImplementedError


class SqlServerDialect(Dialect):
    """SQL Server: bracket quoting and ODBC escape call syntax."""

    __slots__ = ()

    name = "tsql"
    identifier_start = "["
    identifier_end = "]"

    def create_stored_procedure_call(self, full_name: str, placeholders: "Sequence[str]") -> str:
        return f"{{call {full_name}({','.join(placeholders)})}}"


class _CallStatementDialect(Dialect):
    __slots__ = ()

    def create_stored_procedure_call(self, full_name: str, placeholders: "Sequence[str]") -> str:
        return f"CALL {full_name}({','.join(placeholders)})"


class PostgresDialect(_CallStatementDialect):
    """PostgreSQL: double-quote identifiers and ``CALL`` statements."""

    __slots__ = ()

    name = "postgres"


class MySqlDialect(_CallStatementDialect):
    """MySQL: backtick identifiers and ``CALL`` statements."""

    __slots__ = ()

    name = "mysql"
    identifier_start = "`"
    identifier_end = "`"


class QuotedDialect(_CallStatementDialect):
    """``CALL``-style dialect whose identifier delimiters are taken from a sqlglot dialect."""

    __slots__ = ("_end", "_name", "_start")

    def __init__(self, name: str, identifier_start: str = '"', identifier_end: str = '"') -> None:
        self._name = name
        self._start = identifier_start
        self._end = identifier_end

    @property  # type: ignore[override]
    def name(self) -> str:  # pyright: ignore[reportIncompatibleVariableOverride]
        return self._name

    @property  # type: ignore[override]
    def identifier_start(self) -> str:  # pyright: ignore[reportIncompatibleVariableOverride]
        return self._start

    @property  # type: ignore[override]
    def identifier_end(self) -> str:  # pyright: ignore[reportIncompatibleVariableOverride]
        return self._end

    @classmethod
    def from_sqlglot(cls, name: str) -> "QuotedDialect":
        """Build a dialect from sqlglot's identifier delimiters for ``name``.

        Raises:
            ImproperConfigurationError: If sqlglot does not know the dialect.
        """
        try:
            sqlglot_dialect = SQLGlotDialect.get_or_raise(name)
        except ValueError as e:
            msg = f"Unknown dialect: {name}. Available: {', '.join(list_dialects())}"
            raise ImproperConfigurationError(msg) from e
        return cls(name, sqlglot_dialect.IDENTIFIER_START, sqlglot_dialect.IDENTIFIER_END)


_DIALECTS: dict[str, type[Dialect]] = {}


def register_dialect(dialect_class: "type[Dialect]") -> "type[Dialect]":
    """Register a dialect class under its ``name``.

    Usable as a class decorator.

    Args:
        dialect_class: Dialect class to register.

    Returns:
        The registered class, unchanged.
    """
    _DIALECTS[dialect_class.name] = dialect_class
    return dialect_class


def resolve_dialect(name: str) -> Dialect:
    """Resolve a dialect by its sqlglot name or a common alias.

    Registered dialects win; any other dialect sqlglot knows about renders with
    that dialect's identifier delimiters and a ``CALL`` statement.

    Args:
        name: Dialect name, e.g. ``"tsql"``, ``"postgres"`` or ``"mysql"``.

    Raises:
        ImproperConfigurationError: When the dialect is unknown.

    Returns:
        A dialect instance.
    """
    key = name.strip().lower()
    key = DIALECT_ALIASES.get(key, key)
    if not key:
        msg = "Dialect name cannot be empty."
        raise ImproperConfigurationError(msg)
    if key in _DIALECTS:
        return _DIALECTS[key]()
    return QuotedDialect.from_sqlglot(key)


def list_dialects() -> "list[str]":
    """Return registered dialect names."""
    return sorted(_DIALECTS)


for _dialect in (SqlServerDialect, PostgresDialect, MySqlDialect):
    register_dialect(_dialect)
