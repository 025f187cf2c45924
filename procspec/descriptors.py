"""Static program and parameter metadata.

A parameter type declares the stored program it invokes with :func:`program`
and marks its parameter fields with ``typing.Annotated`` metadata::

    @program("sp_get_tasks", schema="sales")
    @dataclass
    class GetTasksParam(ProgramBase):
        user_id: Annotated[UUID, ParameterOrder(1)]
        limit: Annotated[int, ParameterOrder(2)] = 50
        total: Annotated[Optional[int], ParameterProperty(direction=ParameterDirection.OUTPUT)] = None

The metadata of a type is composed once, class by class along its MRO, and
memoized; it never changes after the class is created.
"""

import inspect
import re
import sys
import types
import weakref
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum, IntEnum
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ClassVar,
    Final,
    ForwardRef,
    Optional,
    TypeVar,
    Union,
    get_args,
    get_origin,
)
from uuid import UUID

from procspec.config import get_config
from procspec.exceptions import ImproperConfigurationError
from procspec.utils.dispatch import TypeDispatcher

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from procspec.config import ProgramConfig

__all__ = (
    "ParameterDescriptor",
    "ParameterDirection",
    "ParameterName",
    "ParameterOrder",
    "ParameterProperty",
    "ProgramDescriptor",
    "SqlType",
    "annotated_fields",
    "clear_descriptor_cache",
    "collect_fields",
    "describe",
    "full_name",
    "infer_sql_type",
    "ordered",
    "program",
    "resolve_schema",
    "shadowed_parameters",
    "unwrap_annotation",
)

T = TypeVar("T", bound=type)

UNORDERED: int = sys.maxsize

_MARKER_PATTERN: Final = re.compile(r"\b(?:ParameterOrder|ParameterProperty)\b")


class ParameterDirection(str, Enum):
    """Direction of a parameter relative to the stored program."""

    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input_output"

    def __str__(self) -> str:
        return self.value


class SqlType(IntEnum):
    """JDBC-compatible SQL type codes."""

    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    NCHAR = -15
    NVARCHAR = -9
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    TIMESTAMP_WITH_TIMEZONE = 2014
    BINARY = -2
    VARBINARY = -3
    BLOB = 2004
    CLOB = 2005
    BOOLEAN = 16
    NULL = 0
    OTHER = 1111


@dataclass(frozen=True, slots=True)
class ParameterOrder:
    """1-based position of a parameter in the program's argument list.

    Markers are read from the closest declaration of a field along the MRO. A
    subclass that re-annotates an inherited parameter must repeat its markers;
    a plain redeclaration, e.g. one that only changes the default, turns the
    field into a non-parameter. :func:`procspec.validate_and_collect` reports
    this as a ``SHADOWED_PARAMETER`` warning.
    """

    value: int


@dataclass(frozen=True, slots=True)
class ParameterProperty:
    """SQL type, direction and size of a parameter.

    ``sql_type`` is inferred from the annotated type when left as ``None``.
    """

    sql_type: Optional[int] = None
    direction: ParameterDirection = ParameterDirection.INPUT
    size: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ParameterName:
    """Parameter name to use instead of the field name."""

    value: str


@dataclass(frozen=True, slots=True)
class ProgramDescriptor:
    """Name and schema of a stored program. An empty schema means the configured default."""

    name: str
    schema: str = ""


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """Static description of one parameter field."""

    field_name: str
    order: Optional[int]
    direction: ParameterDirection
    sql_type: Optional[int]
    size: Optional[int]
    name: str
    owner: type

    @property
    def sort_order(self) -> int:
        """Order used for sorting; fields without an explicit order sort last."""
        return UNORDERED if self.order is None else self.order

    @property
    def is_input(self) -> bool:
        return self.direction is not ParameterDirection.OUTPUT

    @property
    def is_output(self) -> bool:
        return self.direction in {ParameterDirection.OUTPUT, ParameterDirection.INPUT_OUTPUT}


_SQL_TYPES: TypeDispatcher[SqlType] = TypeDispatcher()
for _python_type, _sql_type in (
    (str, SqlType.VARCHAR),
    (bool, SqlType.BOOLEAN),
    (int, SqlType.INTEGER),
    (float, SqlType.DOUBLE),
    (Decimal, SqlType.DECIMAL),
    (bytes, SqlType.VARBINARY),
    (bytearray, SqlType.VARBINARY),
    (UUID, SqlType.OTHER),
    (datetime, SqlType.TIMESTAMP),
    (date, SqlType.DATE),
    (time, SqlType.TIME),
):
    _SQL_TYPES.register(_python_type, _sql_type)

_PROGRAMS: "weakref.WeakKeyDictionary[type, ProgramDescriptor]" = weakref.WeakKeyDictionary()
_FIELDS: "weakref.WeakKeyDictionary[type, tuple[ParameterDescriptor, ...]]" = weakref.WeakKeyDictionary()


def program(name: str, *, schema: str = "") -> "Callable[[T], T]":
    """Declare the stored program a parameter type invokes.

    The declaration applies to the decorated class only; subclasses must declare their own.

    Args:
        name: Program name.
        schema: Schema name. Empty means the configured default schema.

    Returns:
        A class decorator.
    """
    descriptor = ProgramDescriptor(name=name, schema=schema)

    def decorator(cls: T) -> T:
        _PROGRAMS[cls] = descriptor
        return cls

    return decorator


def _as_type(target: Any) -> type:
    return target if isinstance(target, type) else type(target)


def describe(target: Any) -> Optional[ProgramDescriptor]:
    """Return the program declared on the exact type of ``target``.

    Args:
        target: A parameter type or instance.

    Returns:
        The program descriptor, or ``None`` when the type declares none.
    """
    return _PROGRAMS.get(_as_type(target))


def resolve_schema(descriptor: ProgramDescriptor, config: "Optional[ProgramConfig]" = None) -> str:
    """Return the descriptor's schema, or the configured default schema when it is empty."""
    if descriptor.schema:
        return descriptor.schema
    return (config or get_config()).default_schema


def full_name(descriptor: ProgramDescriptor, config: "Optional[ProgramConfig]" = None) -> str:
    """Render the dialect-quoted, schema-qualified name of a program.

    Args:
        descriptor: Program descriptor.
        config: Configuration to use instead of the global one.

    Returns:
        The qualified name.
    """
    active = config or get_config()
    return active.dialect.format_full_name(resolve_schema(descriptor, active), descriptor.name)


def infer_sql_type(annotation: Any) -> int:
    """Infer a SQL type code from an annotated Python type.

    ``Optional`` and ``Annotated`` wrappers are stripped first; unknown types map to ``OTHER``.
    """
    base = unwrap_annotation(annotation)
    origin = get_origin(base)
    if origin is not None:
        base = origin
    if isinstance(base, type):
        sql_type = _SQL_TYPES.get_for_type(base)
        if sql_type is not None:
            return sql_type
    return SqlType.OTHER


def unwrap_annotation(annotation: Any) -> Any:
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            annotation = annotation.__origin__
        elif origin is Union or origin is types.UnionType:
            args = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(args) != 1:
                return annotation
            annotation = args[0]
        else:
            return annotation


def _raw_annotations(cls: type) -> "dict[str, Any]":
    try:
        return dict(inspect.get_annotations(cls))
    except NameError:
        if sys.version_info < (3, 14):
            raise
        import annotationlib

        return dict(annotationlib.get_annotations(cls, format=annotationlib.Format.FORWARDREF))


def _annotation_text(annotation: Any) -> Optional[str]:
    if isinstance(annotation, ForwardRef):
        return annotation.__forward_arg__
    if isinstance(annotation, str):
        return annotation
    return None


def _declares_parameter(annotation: Any) -> bool:
    """Whether an annotation, evaluated or as written, carries a parameter marker."""
    text = _annotation_text(annotation)
    if text is not None:
        return _MARKER_PATTERN.search(text) is not None
    if get_origin(annotation) is not Annotated:
        return False
    return any(isinstance(marker, (ParameterOrder, ParameterProperty)) for marker in annotation.__metadata__)


def _is_class_var(annotation: Any) -> bool:
    text = _annotation_text(annotation)
    if text is not None:
        return text.startswith(("ClassVar", "typing.ClassVar"))
    return get_origin(annotation) is ClassVar


def _resolve_annotation(cls: type, field_name: str, annotation: Any) -> Any:
    """Evaluate a postponed annotation in the namespace of the class that declares it.

    Module-level names take precedence over class attributes. An annotation that
    cannot be evaluated is returned as written, unless it declares a parameter.

    Raises:
        ImproperConfigurationError: When a parameter field's annotation cannot be evaluated.
    """
    text = _annotation_text(annotation)
    if text is None:
        return annotation
    module = sys.modules.get(cls.__module__)
    try:
        return eval(text, dict(vars(cls)), vars(module) if module is not None else {})  # noqa: S307
    except (AttributeError, NameError, SyntaxError, TypeError) as e:
        if _declares_parameter(text):
            msg = f"Cannot resolve the annotation of parameter {cls.__qualname__}.{field_name}: {e}"
            raise ImproperConfigurationError(msg) from e
        return annotation


def _build_descriptor(cls: type, field_name: str, annotation: Any) -> Optional[ParameterDescriptor]:
    if get_origin(annotation) is not Annotated:
        return None
    order: Optional[ParameterOrder] = None
    prop: Optional[ParameterProperty] = None
    explicit_name: Optional[ParameterName] = None
    for marker in annotation.__metadata__:
        if isinstance(marker, ParameterOrder):
            order = marker
        elif isinstance(marker, ParameterProperty):
            prop = marker
        elif isinstance(marker, ParameterName):
            explicit_name = marker
    if order is None and prop is None:
        return None
    sql_type = prop.sql_type if prop is not None and prop.sql_type is not None else infer_sql_type(annotation)
    return ParameterDescriptor(
        field_name=field_name,
        order=order.value if order is not None else None,
        direction=prop.direction if prop is not None else ParameterDirection.INPUT,
        sql_type=sql_type,
        size=prop.size if prop is not None else None,
        name=explicit_name.value if explicit_name is not None else field_name,
        owner=cls,
    )


def annotated_fields(target: Any) -> "list[tuple[type, str, Any]]":
    """Every annotated attribute of a type and its ancestors as ``(owner, name, annotation)``.

    Subclass declarations come first and hide ancestor declarations of the same name.
    ``ClassVar`` annotations are left out. Postponed annotations are evaluated one
    field at a time; a non-parameter annotation that cannot be evaluated, such as a
    name imported only under ``TYPE_CHECKING``, is kept as written.

    Raises:
        ImproperConfigurationError: When a parameter field's annotation cannot be evaluated.
    """
    found: list[tuple[type, str, Any]] = []
    seen: set[str] = set()
    for klass in _as_type(target).__mro__:
        if klass is object:
            continue
        for field_name, raw in _raw_annotations(klass).items():
            if field_name in seen:
                continue
            seen.add(field_name)
            annotation = _resolve_annotation(klass, field_name, raw)
            if not _is_class_var(annotation):
                found.append((klass, field_name, annotation))
    return found


def shadowed_parameters(target: Any) -> "list[tuple[type, str, type]]":
    """Ancestor parameter fields hidden by an unmarked redeclaration in a subclass.

    Returns:
        ``(owner, field_name, ancestor)`` for each hidden parameter, where ``owner``
        redeclares the field without markers and ``ancestor`` declared it as a parameter.
    """
    winners: dict[str, tuple[type, bool]] = {}
    found: list[tuple[type, str, type]] = []
    for klass in _as_type(target).__mro__:
        if klass is object:
            continue
        for field_name, raw in _raw_annotations(klass).items():
            declares = _declares_parameter(raw)
            winner = winners.get(field_name)
            if winner is None:
                winners[field_name] = (klass, declares)
            elif declares and not winner[1]:
                found.append((winner[0], field_name, klass))
                winners[field_name] = (winner[0], True)
    return found


def _compose_fields(cls: type) -> "tuple[ParameterDescriptor, ...]":
    fields: list[ParameterDescriptor] = []
    for owner, field_name, annotation in annotated_fields(cls):
        descriptor = _build_descriptor(owner, field_name, annotation)
        if descriptor is not None:
            fields.append(descriptor)
    return tuple(fields)


def collect_fields(target: Any) -> "tuple[ParameterDescriptor, ...]":
    """Collect the parameter fields of a type and all of its ancestors.

    Walks the MRO from the exact type up to ``object``. A field re-declared in a
    subclass replaces the ancestor's declaration. Only fields annotated with
    :class:`ParameterOrder` or :class:`ParameterProperty` are parameters.

    Args:
        target: A parameter type or instance.

    Returns:
        Parameter descriptors in MRO discovery order (subclass fields first).
    """
    cls = _as_type(target)
    cached = _FIELDS.get(cls)
    if cached is None:
        cached = _compose_fields(cls)
        _FIELDS[cls] = cached
    return cached


def ordered(fields: "Iterable[ParameterDescriptor]") -> "list[ParameterDescriptor]":
    """Sort parameters ascending by order; fields without an order come last."""
    return sorted(fields, key=lambda field: field.sort_order)


def clear_descriptor_cache() -> None:
    """Drop memoized parameter metadata."""
    _FIELDS.clear()
