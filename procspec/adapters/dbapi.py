from typing import TYPE_CHECKING, Any, Optional, TypeVar

from mypy_extensions import mypyc_attr

from procspec.descriptors import ParameterDirection
from procspec.exceptions import ProcSpecError
from procspec.executor import CallResult

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from procspec.binder import DeclaredParameter
    from procspec.executor import RowMapper

__all__ = ("DBAPIExecutionLayer",)

T = TypeVar("T")


@mypyc_attr(allow_interpreted_subclasses=True)
class DBAPIExecutionLayer:
    """An execution layer over a DB-API 2.0 connection using ``qmark`` placeholders.

    Transactions are left to the caller; the layer never commits.
    """

    __slots__ = ("_connection",)

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    @property
    def connection(self) -> Any:
        return self._connection

    def _cursor(self) -> Any:
        return self._connection.cursor()

    def update(self, sql: str, args: "Sequence[Any]") -> int:
        """Execute a statement and return ``cursor.rowcount`` (-1 when the driver does not know)."""
        cur = self._cursor()
        try:
            cur.execute(sql, tuple(args))
            return cur.rowcount if hasattr(cur, "rowcount") else -1
        finally:
            cur.close()

    def query(self, sql: str, args: "Sequence[Any]", row_mapper: "RowMapper[T]") -> "list[T]":
        cur = self._cursor()
        try:
            cur.execute(sql, tuple(args))
            column_names = [c[0] for c in cur.description or ()]
            return [row_mapper(row, column_names) for row in cur.fetchall()]
        finally:
            cur.close()

    def query_for_scalar(self, sql: str, args: "Sequence[Any]", result_type: "Optional[type[T]]") -> "Optional[T]":
        """Return the first column of the first row, converted with ``result_type`` when given.

        Returns ``None`` for an empty result or a ``NULL`` value.
        """
        cur = self._cursor()
        try:
            cur.execute(sql, tuple(args))
            row = cur.fetchone()
        finally:
            cur.close()
        if not row:
            return None
        if isinstance(row, dict):
            value = next(iter(row.values()))
        else:
            value = row[0]
        if value is None or result_type is None or isinstance(value, result_type):
            return value
        return result_type(value)  # type: ignore[call-arg]

    def call_with_named_parameters(
        self,
        schema: str,
        procedure_name: str,
        declared_params: "Sequence[DeclaredParameter]",
        input_values: "Mapping[str, Any]",
    ) -> CallResult:
        """Call a procedure with ``cursor.callproc``.

        Arguments are passed in declaration order, OUTPUT parameters as ``None``.
        The sequence ``callproc`` returns is mapped back to parameter names for
        OUTPUT and INPUT_OUTPUT parameters. DB-API has no return value channel, so
        the result carries none.

        Raises:
            ProcSpecError: When the driver does not implement ``callproc``.
        """
        cur = self._cursor()
        try:
            if not hasattr(cur, "callproc"):
                msg = f"{type(cur).__module__}.{type(cur).__name__} does not support callproc"
                raise ProcSpecError(msg)
            args = [
                None if declared.direction is ParameterDirection.OUTPUT else input_values.get(declared.name)
                for declared in declared_params
            ]
            name = f"{schema}.{procedure_name}" if schema else procedure_name
            returned = cur.callproc(name, args)
        finally:
            cur.close()
        values = list(returned) if returned is not None else args
        outputs = {
            declared.name: values[index] if index < len(values) else None
            for index, declared in enumerate(declared_params)
            if declared.direction is not ParameterDirection.INPUT
        }
        return CallResult(outputs, None)
