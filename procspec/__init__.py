"""procspec: metadata-driven SQL generation for stored procedures and functions."""

from procspec import adapters, binder, config, descriptors, dialects, exceptions, result, utils, validation
from procspec.__metadata__ import __version__
from procspec.adapters import DBAPIExecutionLayer
from procspec.base import ProgramBase, ProgramWithErrorBase
from procspec.config import ErrorCodes, ProgramConfig, configure, get_config, reset
from procspec.descriptors import (
    ParameterDescriptor,
    ParameterDirection,
    ParameterName,
    ParameterOrder,
    ParameterProperty,
    ProgramDescriptor,
    SqlType,
    program,
)
from procspec.dialects import Dialect, MySqlDialect, PostgresDialect, SqlServerDialect, resolve_dialect
from procspec.exceptions import (
    ImproperConfigurationError,
    MissingProgramNameError,
    ProcSpecError,
    ProgramValidationError,
)
from procspec.executor import CallResult, ExecutionLayer, ProgramExecutor
from procspec.result import ExecuteResult
from procspec.validation import ValidationErrorCode, ValidationResult, validate, validate_and_collect

__all__ = (
    "CallResult",
    "DBAPIExecutionLayer",
    "Dialect",
    "ErrorCodes",
    "ExecuteResult",
    "ExecutionLayer",
    "ImproperConfigurationError",
    "MissingProgramNameError",
    "MySqlDialect",
    "ParameterDescriptor",
    "ParameterDirection",
    "ParameterName",
    "ParameterOrder",
    "ParameterProperty",
    "PostgresDialect",
    "ProcSpecError",
    "ProgramBase",
    "ProgramConfig",
    "ProgramDescriptor",
    "ProgramExecutor",
    "ProgramValidationError",
    "ProgramWithErrorBase",
    "SqlServerDialect",
    "SqlType",
    "ValidationErrorCode",
    "ValidationResult",
    "__version__",
    "adapters",
    "binder",
    "config",
    "configure",
    "descriptors",
    "dialects",
    "exceptions",
    "get_config",
    "program",
    "reset",
    "resolve_dialect",
    "result",
    "utils",
    "validate",
    "validate_and_collect",
    "validation",
)
