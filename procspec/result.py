"""Stored procedure execution results and return code classification."""

from dataclasses import dataclass, field
from typing import Optional

from procspec.config import ErrorCodes, get_error_codes

__all__ = ("ErrorCodes", "ExecuteResult")


@dataclass(slots=True)
class ExecuteResult:
    """Outcome of a stored procedure call.

    ``return_code`` is ``None`` when the procedure returned no value, which always
    counts as success. Classification uses the bound ``error_codes`` table, or the
    active global table when none was bound.

    Example:
        result = executor.execute(param)
        if result.has_error() and result.is_not_found_error():
            raise LookupError(param)
    """

    affected_rows: int = 0
    return_code: Optional[int] = None
    error_codes: Optional[ErrorCodes] = field(default=None, compare=False, repr=False)

    def _codes(self) -> ErrorCodes:
        return self.error_codes if self.error_codes is not None else get_error_codes()

    def _matches(self, code: Optional[int]) -> bool:
        return code is not None and self.return_code is not None and self.return_code == code

    def is_success(self) -> bool:
        if self.return_code is None:
            return True
        return self.return_code == self._codes().success

    def has_error(self) -> bool:
        return not self.is_success()

    def is_exclusive_lock_error(self) -> bool:
        """Record locked by another session."""
        return self._matches(self._codes().exclusive_lock)

    def is_optimistic_lock_error(self) -> bool:
        """Row version mismatch."""
        return self._matches(self._codes().optimistic_lock)

    def is_duplicate_error(self) -> bool:
        """Unique constraint violation."""
        return self._matches(self._codes().duplicate)

    def is_not_found_error(self) -> bool:
        return self._matches(self._codes().not_found)

    def is_foreign_key_violation_error(self) -> bool:
        return self._matches(self._codes().foreign_key_violation)

    def is_permission_denied_error(self) -> bool:
        return self._matches(self._codes().permission_denied)

    def is_validation_error(self) -> bool:
        """Business rule violation reported by the procedure."""
        return self._matches(self._codes().validation_error)

    def is_deadlock_error(self) -> bool:
        return self._matches(self._codes().deadlock)

    def is_timeout_error(self) -> bool:
        return self._matches(self._codes().timeout)
