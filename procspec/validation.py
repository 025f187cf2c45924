"""Structural validation of parameter type declarations.

Validation is static and side-effect free: it only inspects the declared
program metadata and parameter markers of the given types. Call
:func:`validate` at application startup to fail fast, or
:func:`validate_and_collect` to report.
"""

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Final

from procspec.base import ProgramBase
from procspec.descriptors import collect_fields, describe, shadowed_parameters
from procspec.exceptions import ImproperConfigurationError, ProgramValidationError
from procspec.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from types import ModuleType

__all__ = (
    "INVALID_NAME_CHARACTERS",
    "ValidationError",
    "ValidationErrorCode",
    "ValidationResult",
    "contains_invalid_characters",
    "discover_program_types",
    "is_abstract_program",
    "validate",
    "validate_and_collect",
)

logger = get_logger("validation")

INVALID_NAME_CHARACTERS: Final[frozenset[str]] = frozenset({";", "'", '"', "-", "/", "*", "\\", "\n", "\r", "\t"})


class ValidationErrorCode(str, Enum):
    """Kinds of structural problems found in a parameter type."""

    MISSING_DB_PROGRAM_NAME = "MISSING_DB_PROGRAM_NAME"
    EMPTY_PROGRAM_NAME = "EMPTY_PROGRAM_NAME"
    INVALID_PROGRAM_NAME = "INVALID_PROGRAM_NAME"
    INVALID_SCHEMA_NAME = "INVALID_SCHEMA_NAME"
    DUPLICATE_PARAMETER_ORDER = "DUPLICATE_PARAMETER_ORDER"
    UNORDERED_PARAMETER = "UNORDERED_PARAMETER"
    SHADOWED_PARAMETER = "SHADOWED_PARAMETER"
    UNRESOLVED_PARAMETER_ANNOTATION = "UNRESOLVED_PARAMETER_ANNOTATION"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class ValidationError:
    """A single problem found in a parameter type."""

    type: type
    code: ValidationErrorCode
    message: str

    def __str__(self) -> str:
        return f"[{self.type.__name__}] {self.message}"


@dataclass(slots=True)
class ValidationResult:
    """Errors and warnings found by :func:`validate_and_collect`.

    Warnings never make a result invalid.
    """

    errors: "list[ValidationError]" = field(default_factory=list)
    warnings: "list[ValidationError]" = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def contains_invalid_characters(name: str) -> bool:
    """Whether ``name`` holds any character that could break out of a quoted identifier."""
    return any(char in INVALID_NAME_CHARACTERS for char in name)


def is_abstract_program(cls: type) -> bool:
    """Abstract parameter bases are never invoked directly and are not validated.

    A class is abstract when it has abstract methods or sets ``__abstract__ = True`` in its own body.
    """
    return inspect.isabstract(cls) or bool(cls.__dict__.get("__abstract__", False))


def _check_program(cls: type, result: ValidationResult) -> None:
    descriptor = describe(cls)
    if descriptor is None:
        result.errors.append(
            ValidationError(cls, ValidationErrorCode.MISSING_DB_PROGRAM_NAME, "Program name is not declared.")
        )
        return

    name = descriptor.name
    if not name or not name.strip():
        result.errors.append(ValidationError(cls, ValidationErrorCode.EMPTY_PROGRAM_NAME, "Program name is empty."))
    if name and contains_invalid_characters(name):
        result.errors.append(
            ValidationError(
                cls, ValidationErrorCode.INVALID_PROGRAM_NAME, f"Program name {name!r} contains invalid characters."
            )
        )
    schema = descriptor.schema
    if schema and contains_invalid_characters(schema):
        result.errors.append(
            ValidationError(
                cls, ValidationErrorCode.INVALID_SCHEMA_NAME, f"Schema name {schema!r} contains invalid characters."
            )
        )


def _check_parameter_order(cls: type, result: ValidationResult) -> None:
    seen: set[int] = set()
    unordered: list[str] = []
    ordered_count = 0
    for parameter in collect_fields(cls):
        if parameter.order is None:
            unordered.append(parameter.field_name)
            continue
        ordered_count += 1
        if parameter.order in seen:
            result.errors.append(
                ValidationError(
                    cls,
                    ValidationErrorCode.DUPLICATE_PARAMETER_ORDER,
                    f"Parameter order {parameter.order} is duplicated (field {parameter.field_name!r}).",
                )
            )
        else:
            seen.add(parameter.order)

    if ordered_count and unordered:
        result.warnings.append(
            ValidationError(
                cls,
                ValidationErrorCode.UNORDERED_PARAMETER,
                f"Fields without a parameter order sort last: {', '.join(unordered)}.",
            )
        )


def _check_shadowed_parameters(cls: type, result: ValidationResult) -> None:
    for owner, field_name, ancestor in shadowed_parameters(cls):
        result.warnings.append(
            ValidationError(
                cls,
                ValidationErrorCode.SHADOWED_PARAMETER,
                f"Field {field_name!r} is redeclared on {owner.__qualname__} without parameter markers "
                f"and hides the parameter declared on {ancestor.__qualname__}.",
            )
        )


def validate_and_collect(*param_types: type) -> ValidationResult:
    """Validate parameter types and return every problem found.

    Abstract types are skipped. All checks run for every type, independently.
    A parameter annotation that cannot be evaluated is collected as an error.

    Args:
        *param_types: Parameter types to check.

    Returns:
        The collected errors and warnings.
    """
    result = ValidationResult()
    for cls in param_types:
        if is_abstract_program(cls):
            continue
        _check_program(cls, result)
        try:
            _check_parameter_order(cls, result)
        except ImproperConfigurationError as e:
            result.errors.append(ValidationError(cls, ValidationErrorCode.UNRESOLVED_PARAMETER_ANNOTATION, e.detail))
        _check_shadowed_parameters(cls, result)
    if result.errors or result.warnings:
        log_with_context(
            logger,
            logging.DEBUG,
            "Program validation finished",
            types=len(param_types),
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
    return result


def validate(*param_types: type) -> None:
    """Validate parameter types, raising on any structural error.

    Args:
        *param_types: Parameter types to check.

    Raises:
        ProgramValidationError: Listing every error found.
    """
    result = validate_and_collect(*param_types)
    if not result.is_valid:
        raise ProgramValidationError(result.errors)


def discover_program_types(module: "ModuleType") -> "list[type]":
    """Find the parameter types defined in ``module``.

    A class qualifies when it is defined in the module, is not abstract and either
    declares a program or derives from :class:`procspec.base.ProgramBase`.
    """
    found: list[type] = []
    for _, member in inspect.getmembers(module, inspect.isclass):
        if member.__module__ != module.__name__ or is_abstract_program(member):
            continue
        if describe(member) is not None or issubclass(member, ProgramBase):
            found.append(member)
    return found
