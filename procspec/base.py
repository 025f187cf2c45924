"""Base classes for parameter objects."""

import dataclasses
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Optional, get_origin

from procspec.descriptors import ParameterDirection, ParameterProperty, SqlType, annotated_fields, unwrap_annotation

__all__ = ("ProgramBase", "ProgramWithErrorBase")


def _accepts(annotation: Any, value: Any) -> bool:
    if value is None:
        return True
    base = unwrap_annotation(annotation)
    origin = get_origin(base)
    if origin is not None:
        base = origin
    if isinstance(base, type):
        return isinstance(value, base)
    return True


class ProgramBase:
    """Base class for stored program parameter objects.

    Subclasses are usually dataclasses decorated with :func:`procspec.program`.
    """

    __abstract__: ClassVar[bool] = True

    @classmethod
    def from_source(cls, source: Any, **overrides: Any) -> Any:
        """Build a parameter object from the same-named attributes of ``source``.

        An attribute is copied when its value matches the declared type of the
        target field. Empty strings are copied as ``None``. Keyword ``overrides``
        win over copied values.

        Args:
            source: Any object, e.g. a request model or domain entity. ``None`` copies nothing.
            **overrides: Field values to set explicitly.

        Returns:
            A new instance of ``cls``.
        """
        values: dict[str, Any] = {}
        if source is not None:
            for _, field_name, annotation in annotated_fields(cls):
                if not hasattr(source, field_name):
                    continue
                value = getattr(source, field_name)
                if isinstance(value, str) and not value:
                    value = None
                if _accepts(annotation, value):
                    values[field_name] = value
        values.update(overrides)

        if dataclasses.is_dataclass(cls):
            init_names = {f.name for f in dataclasses.fields(cls) if f.init}
            instance = cls(**{name: value for name, value in values.items() if name in init_names})
            for name, value in values.items():
                if name not in init_names:
                    setattr(instance, name, value)
            return instance

        instance = cls()
        for name, value in values.items():
            setattr(instance, name, value)
        return instance


@dataclass(kw_only=True)
class ProgramWithErrorBase(ProgramBase):
    """Parameter base for procedures reporting an error code and message through OUTPUT parameters."""

    __abstract__: ClassVar[bool] = True

    sql_error_cd: Annotated[
        Optional[int], ParameterProperty(sql_type=SqlType.INTEGER, direction=ParameterDirection.OUTPUT)
    ] = None
    progress_message: Annotated[
        Optional[str], ParameterProperty(sql_type=SqlType.VARCHAR, direction=ParameterDirection.OUTPUT, size=4000)
    ] = None

    def has_sql_error(self) -> bool:
        """Whether the procedure reported a non-zero error code."""
        return self.sql_error_cd is not None and self.sql_error_cd != 0
