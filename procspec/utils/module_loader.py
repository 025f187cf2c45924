"""Dotted path imports."""

import importlib
from typing import Any

__all__ = ("import_string",)


def import_string(dotted_path: str) -> "Any":
    """Dotted Path Import.

    Import a dotted module path and return the module, or the attribute/class
    designated by the trailing names in the path.

    Args:
        dotted_path: The path to import, e.g. ``"app.params"`` or ``"app.params.GetTasksParam"``.

    Raises:
        ImportError: Could not import the module or resolve the attribute.

    Returns:
        object: The imported module or object.
    """
    parts = dotted_path.split(".")
    for i in range(len(parts), 0, -1):
        module_path = ".".join(parts[:i])
        try:
            module = importlib.import_module(module_path)
            break
        except ModuleNotFoundError as e:
            if e.name is not None and not module_path.startswith(e.name):
                msg = f"Could not import '{dotted_path}': {e}"
                raise ImportError(msg) from e
            continue
    else:
        msg = f"{dotted_path} doesn't look like a module path"
        raise ImportError(msg)

    obj: Any = module
    for attr in parts[i:]:
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            msg = f"Module '{module.__name__}' has no attribute '{attr}' in '{dotted_path}'"
            raise ImportError(msg) from e
    return obj
