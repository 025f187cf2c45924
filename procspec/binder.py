"""Bind parameter objects to positional placeholders, values and named outputs.

Field access never raises: :func:`read_field` and :func:`write_field` report
failure through :class:`FieldAccess`, the binder substitutes a default and
logs a debug diagnostic.
"""

from typing import TYPE_CHECKING, Any, Final, NamedTuple, Optional

from procspec.config import get_config
from procspec.descriptors import (
    ParameterDescriptor,
    ParameterDirection,
    collect_fields,
    describe,
    full_name,
    ordered,
)
from procspec.exceptions import MissingProgramNameError
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from procspec.config import ProgramConfig
    from procspec.descriptors import ProgramDescriptor

__all__ = (
    "PLACEHOLDER",
    "DeclaredParameter",
    "FieldAccess",
    "all_ordered_fields",
    "apply_outputs",
    "build_input_map",
    "build_value_array",
    "create_scalar_function_query",
    "create_stored_procedure_call",
    "create_table_function_query",
    "declare_parameters",
    "ordered_input_fields",
    "output_fields",
    "parameter_name",
    "placeholders",
    "read_field",
    "require_program",
    "set_output_value",
    "write_field",
)

logger = get_logger("binder")

PLACEHOLDER: Final[str] = "?"


class FieldAccess(NamedTuple):
    """Outcome of reading or writing one parameter field."""

    ok: bool
    value: Any = None
    error: Optional[Exception] = None


class DeclaredParameter(NamedTuple):
    """A parameter declaration for calls that address parameters by name."""

    name: str
    sql_type: Optional[int]
    direction: ParameterDirection
    size: Optional[int] = None


def read_field(param: Any, field: ParameterDescriptor) -> FieldAccess:
    try:
        return FieldAccess(True, getattr(param, field.field_name))
    except Exception as e:  # noqa: BLE001
        return FieldAccess(False, error=e)


def write_field(param: Any, field: ParameterDescriptor, value: Any) -> FieldAccess:
    try:
        setattr(param, field.field_name, value)
    except Exception as e:  # noqa: BLE001
        return FieldAccess(False, value, e)
    return FieldAccess(True, value)


def require_program(param: Any) -> "ProgramDescriptor":
    """Return the program declared on ``param``'s type.

    Raises:
        MissingProgramNameError: When the type declares no program.
    """
    descriptor = describe(param)
    if descriptor is None:
        raise MissingProgramNameError(param if isinstance(param, type) else type(param))
    return descriptor


def all_ordered_fields(param: Any) -> "list[ParameterDescriptor]":
    return ordered(collect_fields(param))


def ordered_input_fields(param: Any) -> "list[ParameterDescriptor]":
    """Fields bound as positional arguments: every non-OUTPUT field, in order."""
    return ordered(field for field in collect_fields(param) if field.is_input)


def placeholders(param: Any) -> "list[str]":
    return [PLACEHOLDER for _ in ordered_input_fields(param)]


def build_value_array(param: Any) -> "list[Any]":
    """Read the positional argument values of ``param``.

    Unreadable fields are bound as ``None``.
    """
    values: list[Any] = []
    for field in ordered_input_fields(param):
        access = read_field(param, field)
        if not access.ok:
            logger.debug("Cannot read parameter %s.%s: %s", type(param).__name__, field.field_name, access.error)
        values.append(access.value)
    return values


def output_fields(param: Any) -> "list[ParameterDescriptor]":
    """Fields whose value comes back from the program (OUTPUT or INPUT_OUTPUT)."""
    return [field for field in collect_fields(param) if field.is_output]


def parameter_name(field: ParameterDescriptor) -> str:
    return field.name


def set_output_value(param: Any, field: ParameterDescriptor, value: Any) -> None:
    """Write a returned value back onto ``param``. Failures are logged and skipped."""
    access = write_field(param, field, value)
    if not access.ok:
        logger.debug("Cannot write output %s.%s: %s", type(param).__name__, field.field_name, access.error)


def build_input_map(param: Any) -> "dict[str, Any]":
    """Named input values of every non-OUTPUT field; unreadable fields are left out."""
    values: dict[str, Any] = {}
    for field in all_ordered_fields(param):
        if not field.is_input:
            continue
        access = read_field(param, field)
        if access.ok:
            values[parameter_name(field)] = access.value
        else:
            logger.debug("Skipping unreadable input %s.%s: %s", type(param).__name__, field.field_name, access.error)
    return values


def declare_parameters(param: Any) -> "tuple[DeclaredParameter, ...]":
    """Declarations of all parameters, in order, for a named call."""
    return tuple(
        DeclaredParameter(parameter_name(field), field.sql_type, field.direction, field.size)
        for field in all_ordered_fields(param)
    )


def apply_outputs(param: Any, outputs: "Mapping[str, Any]") -> None:
    """Copy named output values onto ``param``; missing names are written as ``None``."""
    for field in output_fields(param):
        set_output_value(param, field, outputs.get(parameter_name(field)))


def create_table_function_query(
    param: Any, order_by: Optional[str] = None, config: "Optional[ProgramConfig]" = None
) -> str:
    active = config or get_config()
    return active.dialect.create_table_function_query(
        full_name(require_program(param), active), placeholders(param), order_by
    )


def create_scalar_function_query(param: Any, config: "Optional[ProgramConfig]" = None) -> str:
    active = config or get_config()
    return active.dialect.create_scalar_function_query(full_name(require_program(param), active), placeholders(param))


def create_stored_procedure_call(param: Any, config: "Optional[ProgramConfig]" = None) -> str:
    active = config or get_config()
    return active.dialect.create_stored_procedure_call(full_name(require_program(param), active), placeholders(param))
