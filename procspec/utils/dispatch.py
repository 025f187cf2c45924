"""Type-keyed lookup with subclass resolution.

Used to map Python annotation types to SQL type codes: a value registered for
``date`` also answers for user subclasses of ``date`` unless they are
registered themselves.
"""

from typing import Any, Generic, Optional, TypeVar

__all__ = ("TypeDispatcher",)


T = TypeVar("T")


class TypeDispatcher(Generic[T]):
    """Registry of values per type, resolved along the MRO and memoized."""

    __slots__ = ("_cache", "_registry")

    def __init__(self) -> None:
        self._registry: dict[type, T] = {}
        self._cache: dict[type, Optional[T]] = {}

    def register(self, type_: type, value: T) -> None:
        """Associate ``value`` with ``type_`` and forget earlier resolutions."""
        self._registry[type_] = value
        self._cache.clear()

    def get(self, obj: Any) -> Optional[T]:
        """Value for the type of ``obj``, or ``None``."""
        return self.get_for_type(type(obj))

    def get_for_type(self, obj_type: type) -> Optional[T]:
        """Value registered for ``obj_type`` or its closest registered ancestor.

        Args:
            obj_type: The type to look up.

        Returns:
            The value, or ``None`` when neither the type nor any base is registered.
        """
        try:
            return self._cache[obj_type]
        except KeyError:
            resolved = self._resolve(obj_type)
        if resolved is not None:
            self._cache[obj_type] = resolved
        return resolved

    def _resolve(self, obj_type: type) -> Optional[T]:
        return next((self._registry[base] for base in obj_type.__mro__ if base in self._registry), None)

    def clear_cache(self) -> None:
        self._cache.clear()
