"""Process-wide procspec configuration.

The active configuration is an immutable :class:`ProgramConfig` snapshot.
:func:`configure` and :func:`reset` build a new snapshot and swap it in as one
step, so readers always see a fully populated configuration.
"""

import threading
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from procspec.dialects import Dialect, SqlServerDialect
from procspec.dialects import resolve_dialect
from procspec.exceptions import ImproperConfigurationError
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = (
    "DEFAULT_SCHEMA",
    "ErrorCodes",
    "ProgramConfig",
    "configure",
    "get_config",
    "get_default_schema",
    "get_dialect",
    "get_error_codes",
    "reset",
)

logger = get_logger("config")

DEFAULT_SCHEMA: Final[str] = "dbo"

ERROR_CODE_NAMES: Final[tuple[str, ...]] = (
    "exclusive_lock",
    "optimistic_lock",
    "duplicate",
    "not_found",
    "foreign_key_violation",
    "permission_denied",
    "validation_error",
    "deadlock",
    "timeout",
)


@dataclass(frozen=True, slots=True)
class ErrorCodes:
    """Return codes used to classify stored procedure results.

    An unset code disables its classification.
    """

    success: int = 0
    exclusive_lock: Optional[int] = None
    optimistic_lock: Optional[int] = None
    duplicate: Optional[int] = None
    not_found: Optional[int] = None
    foreign_key_violation: Optional[int] = None
    permission_denied: Optional[int] = None
    validation_error: Optional[int] = None
    deadlock: Optional[int] = None
    timeout: Optional[int] = None

    def copy(self, **changes: Any) -> "ErrorCodes":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, codes: "Mapping[str, Optional[int]]") -> "ErrorCodes":
        """Build a table from a mapping of code names to values.

        Raises:
            ImproperConfigurationError: For names that are not error codes.
        """
        unknown = set(codes) - {"success", *ERROR_CODE_NAMES}
        if unknown:
            msg = f"Unknown error code names: {', '.join(sorted(unknown))}"
            raise ImproperConfigurationError(msg)
        return cls(**codes)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class ProgramConfig:
    """Dialect, default schema and error code table used to build and classify calls."""

    dialect: Dialect = field(default_factory=SqlServerDialect)
    default_schema: str = DEFAULT_SCHEMA
    error_codes: ErrorCodes = field(default_factory=ErrorCodes)

    def replace(
        self,
        *,
        dialect: "Union[Dialect, str, None]" = None,
        default_schema: Optional[str] = None,
        error_codes: Optional[ErrorCodes] = None,
    ) -> "ProgramConfig":
        """Return a copy where only the given values change.

        ``None`` leaves a value untouched. ``dialect`` may be a dialect name.
        """
        changes: dict[str, Any] = {}
        if dialect is not None:
            changes["dialect"] = resolve_dialect(dialect) if isinstance(dialect, str) else dialect
        if default_schema is not None:
            changes["default_schema"] = default_schema
        if error_codes is not None:
            changes["error_codes"] = error_codes
        return replace(self, **changes) if changes else self


_lock = threading.Lock()
_current = ProgramConfig()


def get_config() -> ProgramConfig:
    """Return the active configuration snapshot."""
    return _current


def get_dialect() -> Dialect:
    return _current.dialect


def get_default_schema() -> str:
    return _current.default_schema


def get_error_codes() -> ErrorCodes:
    return _current.error_codes


def configure(
    *,
    dialect: "Union[Dialect, str, None]" = None,
    default_schema: Optional[str] = None,
    error_codes: Optional[ErrorCodes] = None,
) -> ProgramConfig:
    """Update the active configuration.

    Only the values passed are replaced; ``None`` leaves the current value in place.

    Args:
        dialect: Dialect instance or dialect name.
        default_schema: Schema used when a program declares none.
        error_codes: Return code table.

    Raises:
        ImproperConfigurationError: When the dialect name is unknown or the values have the wrong type.

    Returns:
        The new active configuration.
    """
    global _current
    if dialect is not None and not isinstance(dialect, (Dialect, str)):
        msg = f"dialect must be a Dialect or a dialect name, not {type(dialect).__name__}"
        raise ImproperConfigurationError(msg)
    if error_codes is not None and not isinstance(error_codes, ErrorCodes):
        msg = f"error_codes must be an ErrorCodes instance, not {type(error_codes).__name__}"
        raise ImproperConfigurationError(msg)
    with _lock:
        _current = _current.replace(dialect=dialect, default_schema=default_schema, error_codes=error_codes)
        snapshot = _current
    logger.debug(
        "procspec configured: dialect=%s default_schema=%s", snapshot.dialect.name, snapshot.default_schema
    )
    return snapshot


def reset() -> ProgramConfig:
    """Restore the default configuration (SQL Server, ``dbo``, default error codes)."""
    global _current
    with _lock:
        _current = ProgramConfig()
        snapshot = _current
    logger.debug("procspec configuration reset")
    return snapshot
