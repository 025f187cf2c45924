from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from collections.abc import Sequence

    from procspec.validation import ValidationError

__all__ = (
    "ImproperConfigurationError",
    "MissingDependencyError",
    "MissingProgramNameError",
    "ProcSpecError",
    "ProgramValidationError",
)


class ProcSpecError(Exception):
    """Base exception class from which all procspec exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``ProcSpecError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(ProcSpecError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install procspec[{install_package or package}]' to install procspec with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(ProcSpecError):
    """Improper Configuration error.

    This exception is raised when a configuration value is invalid, such as an unknown dialect name.
    """


class MissingProgramNameError(ProcSpecError, ValueError):
    """A parameter object was executed without a ``@program`` declaration on its class."""

    def __init__(self, param_type: type) -> None:
        self.param_type = param_type
        super().__init__(
            f"Program name is not declared on {param_type.__module__}.{param_type.__qualname__}. "
            "Decorate the class with @program(...)."
        )


class ProgramValidationError(ProcSpecError):
    """One or more parameter types carry structurally invalid program metadata."""

    def __init__(self, errors: "Sequence[ValidationError]") -> None:
        self.errors = list(errors)
        lines = ["Program validation error:", *(str(error) for error in self.errors)]
        super().__init__("\n".join(lines))
