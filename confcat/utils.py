"""
confcat.utils
-------------

Small helpers shared by the loader and the CLI.
"""

import importlib
import os
from typing import Any, Optional


def expand_path(path: Optional[str]) -> Optional[str]:
    """Expand ``~`` and ``$VAR``/``${VAR}`` in a config file path.

    Examples:
        >>> expand_path("$HOME/.config/app.toml")
        '/home/user/.config/app.toml'
        >>> expand_path(None)
        None
    """
    if path is None:
        return None
    return os.path.expandvars(os.path.expanduser(path))


def import_object(target: str) -> Any:
    """Import ``"package.module:Name"`` and return ``Name``.

    Raises:
        ValueError: If `target` is not in ``module:attribute`` form.
        ImportError: If the module cannot be imported.
        AttributeError: If the module has no such attribute.
    """
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Expected 'module:attribute', got {target!r}")
    obj = importlib.import_module(module_name)
    for part in attribute.split("."):
        obj = getattr(obj, part)
    return obj
