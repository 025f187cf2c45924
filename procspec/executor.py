"""Execute parameter objects through an execution layer.

The executor builds SQL and arguments from a parameter object and hands them
to an :class:`ExecutionLayer`. Errors raised by the execution layer propagate
unchanged.
"""

import logging
import numbers
from typing import TYPE_CHECKING, Any, Callable, NamedTuple, Optional, Protocol, TypeVar, runtime_checkable

from mypy_extensions import mypyc_attr
from typing_extensions import TypeAlias

from procspec import binder
from procspec.config import get_config
from procspec.descriptors import resolve_schema
from procspec.result import ExecuteResult
from procspec.utils.logging import get_logger, log_with_context
from procspec.validation import validate

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from procspec.binder import DeclaredParameter
    from procspec.config import ProgramConfig

__all__ = ("CallResult", "ExecutionLayer", "ProgramExecutor", "RowMapper")

logger = get_logger("executor")

T = TypeVar("T")

RowMapper: TypeAlias = Callable[["Sequence[Any]", "Sequence[str]"], T]
"""Maps one result row and its column names to an item."""


class CallResult(NamedTuple):
    """Named output values and return value of a procedure called by parameter name."""

    outputs: "Mapping[str, Any]"
    return_value: Any = None


def _return_code(return_value: Any) -> Optional[int]:
    """Integer return code of a procedure, or ``None`` for non-numeric and non-finite values."""
    if not isinstance(return_value, numbers.Number) or isinstance(return_value, bool):
        return None
    try:
        return int(return_value)  # type: ignore[call-overload]
    except (TypeError, ValueError, OverflowError):
        logger.debug("Ignoring return value %r: not convertible to an integer", return_value)
        return None


@runtime_checkable
class ExecutionLayer(Protocol):
    """Runs SQL text with bound arguments against a database."""

    def update(self, sql: str, args: "Sequence[Any]") -> int:
        """Execute a statement and return the affected row count."""
        ...

    def query(self, sql: str, args: "Sequence[Any]", row_mapper: "RowMapper[T]") -> "list[T]":
        """Execute a query and map every row."""
        ...

    def query_for_scalar(self, sql: str, args: "Sequence[Any]", result_type: "Optional[type[T]]") -> "Optional[T]":
        """Execute a query and return the first column of the first row."""
        ...

    def call_with_named_parameters(
        self,
        schema: str,
        procedure_name: str,
        declared_params: "Sequence[DeclaredParameter]",
        input_values: "Mapping[str, Any]",
    ) -> CallResult:
        """Call a procedure addressing its parameters by name."""
        ...


@mypyc_attr(allow_interpreted_subclasses=True)
class ProgramExecutor:
    """Executes stored programs described by parameter objects.

    Args:
        layer: Execution layer running the generated SQL.
        config: Configuration to use instead of the global one.
        validate: Validate each parameter type once before its first execution.
    """

    __slots__ = ("_config", "_layer", "_validate", "_validated")

    def __init__(
        self, layer: ExecutionLayer, config: "Optional[ProgramConfig]" = None, *, validate: bool = True
    ) -> None:
        self._layer = layer
        self._config = config
        self._validate = validate
        self._validated: set[type] = set()

    @property
    def config(self) -> "ProgramConfig":
        """The injected configuration, or the active global one."""
        return self._config if self._config is not None else get_config()

    def _prepare(self, param: Any) -> None:
        binder.require_program(param)
        param_type = type(param)
        if self._validate and param_type not in self._validated:
            validate(param_type)
            self._validated.add(param_type)

    def _log(self, kind: str, sql: str, args: "Sequence[Any]") -> None:
        log_with_context(logger, logging.DEBUG, f"Executing {kind}", sql=sql, parameter_count=len(args))

    def execute(self, param: Any) -> ExecuteResult:
        """Call the stored procedure described by ``param``.

        Without OUTPUT parameters the procedure is called positionally and the
        affected row count is returned. Otherwise it is called by parameter name,
        output values are written back onto ``param`` and a numeric return value
        becomes the result's return code.

        Raises:
            MissingProgramNameError: When ``param``'s type declares no program.
            ProgramValidationError: When validation is enabled and the type is invalid.
        """
        self._prepare(param)
        config = self.config
        if not binder.output_fields(param):
            sql = binder.create_stored_procedure_call(param, config)
            args = binder.build_value_array(param)
            self._log("procedure", sql, args)
            affected_rows = self._layer.update(sql, args)
            return ExecuteResult(affected_rows, None, config.error_codes)
        return self._execute_with_outputs(param, config)

    def _execute_with_outputs(self, param: Any, config: "ProgramConfig") -> ExecuteResult:
        descriptor = binder.require_program(param)
        schema = resolve_schema(descriptor, config)
        declared = binder.declare_parameters(param)
        inputs = binder.build_input_map(param)
        log_with_context(
            logger,
            logging.DEBUG,
            "Executing procedure with named parameters",
            schema=schema,
            procedure=descriptor.name,
            parameter_count=len(declared),
        )
        result = self._layer.call_with_named_parameters(schema, descriptor.name, declared, inputs)
        binder.apply_outputs(param, result.outputs)
        return ExecuteResult(0, _return_code(result.return_value), config.error_codes)

    def query(self, param: Any, row_mapper: "RowMapper[T]", order_by: Optional[str] = None) -> "list[T]":
        """Select every row of the table-valued function described by ``param``."""
        self._prepare(param)
        sql = binder.create_table_function_query(param, order_by, self.config)
        args = binder.build_value_array(param)
        self._log("table function", sql, args)
        return self._layer.query(sql, args, row_mapper)

    def query_first_or_default(self, param: Any, row_mapper: "RowMapper[T]") -> "Optional[T]":
        """Return the first row of the table-valued function, or ``None`` when it is empty."""
        rows = self.query(param, row_mapper)
        return rows[0] if rows else None

    def execute_scalar(self, param: Any, result_type: "Optional[type[T]]" = None) -> "Optional[T]":
        """Return the value of the scalar function described by ``param``."""
        self._prepare(param)
        sql = binder.create_scalar_function_query(param, self.config)
        args = binder.build_value_array(param)
        self._log("scalar function", sql, args)
        return self._layer.query_for_scalar(sql, args, result_type)
