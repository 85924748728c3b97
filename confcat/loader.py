"""
confcat.loader
--------------

Read-only, layered configuration source consumed by `confcat.parser`.

Values are loaded from defaults, JSON/TOML files, a .env file, prefixed
environment variables and an overrides dictionary, then exposed through
dotted key lookups. `get_string` and `get_string_list` are the two lookups
the materializer relies on.
"""

import copy
import json
import logging
import os
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import tomli
from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationException, MissingMandatoryConfig, RepresentationMismatch
from .utils import expand_path

log = logging.getLogger(__name__)

ENV_KEY_SEPARATOR = "__"

_SUBSTITUTION = re.compile(r"^\$\{(\?)?([A-Za-z_][A-Za-z0-9_]*)\}$")

# Sentinel for "remove this key" after optional substitution.
_UNSET = object()


# --- Helper Functions ---

def deep_merge(base: dict, updates: Mapping) -> dict:
    """
    Recursively merge `updates` into a copy of `base`.

    Keys of `updates` land on an existing key of `base` that matches
    ignoring case, so `app.server` from the environment merges into an
    `App.Server` section loaded from a file. When a key holds a dictionary
    on both sides the two are merged; otherwise the value from `updates`
    replaces the one in `base`.

    Args:
        base: The base dictionary. Not modified.
        updates: Values taking precedence over `base`.

    Returns:
        A new merged dictionary.
    """
    merged = copy.deepcopy(base)
    for update_key, value_updates in updates.items():
        key = update_key
        if isinstance(update_key, str):
            try:
                key = _find_key(merged, update_key)
            except KeyError:
                pass
        value_base = merged.get(key)
        if isinstance(value_base, dict) and isinstance(value_updates, Mapping):
            merged[key] = deep_merge(value_base, value_updates)
        else:
            merged[key] = copy.deepcopy(value_updates)
    return merged


def _find_key(d: Mapping, part: str) -> Any:
    """Exact key match first, then a case-insensitive one. Raises KeyError."""
    if part in d:
        return part
    lowered = part.lower()
    for candidate in d:
        if isinstance(candidate, str) and candidate.lower() == lowered:
            return candidate
    raise KeyError(part)


def get_by_dot(cfg: Mapping, key: str) -> Any:
    """
    Retrieve a nested value using a dot-notated key.

    Each segment is matched exactly if possible, otherwise ignoring case.

    Raises:
        KeyError: If any part of the key path does not exist.
        TypeError: If a non-mapping value is traversed (e.g. "a.b" when "a" is an int).
    """
    d = cfg
    walked = []
    for part in key.split("."):
        if not isinstance(d, Mapping):
            raise TypeError(
                f"Cannot access key '{part}' on non-dictionary item at path "
                f"'{'.'.join(walked)}' (item type: {type(d).__name__})"
            )
        try:
            d = d[_find_key(d, part)]
        except KeyError:
            raise KeyError(
                f"Key path '{key}' not found (missing part: '{part}' at path '{'.'.join(walked)}')"
            ) from None
        walked.append(part)
    return d


def set_by_dot(cfg: dict, key: str, value: Any):
    """
    Set a nested value using a dot-notated key, creating intermediate dicts.

    A non-dictionary value found along the path is replaced (with a warning).
    """
    parts = key.split(".")
    d = cfg
    for part in parts[:-1]:
        current = d.get(part)
        if not isinstance(current, dict):
            if part in d:
                log.warning(
                    "Overwriting non-dictionary key '%s' (type: %s) in path '%s'.",
                    part, type(current).__name__, key,
                )
            d[part] = {}
        d = d[part]
    d[parts[-1]] = value


def _render_scalar(value: Any) -> str:
    # Booleans follow HOCON rendering, not Python's.
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# --- ConfigSource ---

FileEntry = Union[str, Tuple[str, str]]


class ConfigSource:
    """
    Layered configuration source with dotted key lookups.

    Loading precedence (lowest to highest):
    1.  **Defaults dictionary (`defaults`)**.
    2.  **Config files (`file_path`, then `file_paths`)**: JSON or TOML. An entry
        of `file_paths` may be a ``(path, namespace)`` tuple to nest the file
        under ``namespace``.
    3.  **Environment variables (`prefix`)**: ``PREFIX__SERVER__PORT=9090`` sets
        ``server.port`` to the raw string ``"9090"``. Variables from a `.env`
        file are loaded into `os.environ` beforehand (never overriding).
    4.  **Overrides dictionary (`overrides_dict`)**: dot-notation keys.

    After merging, HOCON-style substitutions are resolved: a string that is
    exactly ``${VAR}`` takes the environment variable's value (missing is an
    error); ``${?VAR}`` takes it if set and removes the key otherwise.
    """

    def __init__(self,
                 defaults: Optional[Dict[str, Any]] = None,
                 file_path: Optional[str] = None,
                 file_paths: Optional[Sequence[FileEntry]] = None,
                 prefix: Optional[str] = None,
                 overrides_dict: Optional[Mapping[str, Any]] = None,
                 mandatory: Optional[List[str]] = None,
                 load_dotenv_file: bool = True,
                 dotenv_path: Optional[str] = None):

        if load_dotenv_file:
            self._load_dotenv_file(dotenv_path)

        data = copy.deepcopy(defaults or {})
        log.debug("Collected defaults: %s", data)

        if file_path:
            data = deep_merge(data, self._load_single_file(file_path))

        for entry in file_paths or []:
            path, namespace = entry if isinstance(entry, tuple) else (entry, None)
            if not os.path.exists(expand_path(path)):
                log.warning("Skipping missing config file: %s", path)
                continue
            file_data = self._load_single_file(path)
            if namespace and namespace not in file_data:
                file_data = {namespace: file_data}
            data = deep_merge(data, file_data)

        env_data = self._collect_env_vars(prefix)
        if env_data:
            data = deep_merge(data, env_data)

        overrides_data = self._structure_overrides(overrides_dict)
        if overrides_data:
            data = deep_merge(data, overrides_data)

        self._data = self._resolve_substitutions(data, "")
        log.debug("Final merged configuration: %s", self._data)

        if mandatory:
            self._validate_mandatory(mandatory)

    @staticmethod
    def _load_dotenv_file(dotenv_path: Optional[str]):
        """Loads a .env file into os.environ without overriding existing variables."""
        actual_path = dotenv_path or find_dotenv(usecwd=True)
        if actual_path and os.path.exists(actual_path):
            loaded = load_dotenv(dotenv_path=actual_path, override=False)
            log.debug("Loaded .env file from %s (changed: %s).", actual_path, loaded)

    @staticmethod
    def _load_single_file(file_path: str) -> dict:
        """
        Load one JSON or TOML file into a plain dict.

        Raises:
            FileNotFoundError: If the file does not exist.
            RuntimeError: If the file is malformed or has an unsupported extension.
        """
        path = expand_path(file_path)
        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {file_path}")

        ext = os.path.splitext(path)[1].lower()
        try:
            if ext == ".toml":
                with open(path, mode="rb") as f:
                    content = tomli.load(f)
            elif ext == ".json":
                with open(path, mode="r", encoding="utf-8") as f:
                    content = json.load(f)
            else:
                raise ValueError(f"Unsupported config file type: {ext}")
        except Exception as e:
            raise RuntimeError(f"Error loading/parsing file {file_path}: {e}") from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise RuntimeError(f"Config file {file_path} must contain a mapping at top level.")
        log.debug("Loaded config file %s", file_path)
        return content

    @staticmethod
    def _collect_env_vars(prefix: Optional[str]) -> dict:
        """
        Collect ``PREFIX__A__B`` environment variables into ``{"a": {"b": ...}}``.

        Values are kept as raw strings; typing happens during materialization.
        """
        if not prefix or not prefix.strip():
            return {}
        prefix_match = prefix.strip().rstrip("_").upper() + ENV_KEY_SEPARATOR

        env_data: dict = {}
        for var, raw_value in os.environ.items():
            if not var.upper().startswith(prefix_match):
                continue
            parts = [p.lower() for p in var[len(prefix_match):].split(ENV_KEY_SEPARATOR)]
            if not all(parts):
                log.debug("Ignoring malformed env var '%s'", var)
                continue
            dot_key = ".".join(parts)
            log.debug("Env var '%s' -> '%s'", var, dot_key)
            set_by_dot(env_data, dot_key, raw_value)
        return env_data

    @staticmethod
    def _structure_overrides(overrides_dict: Optional[Mapping[str, Any]]) -> dict:
        """Converts a flat dict with dot-keys into a nested dict."""
        structured: dict = {}
        for key, value in (overrides_dict or {}).items():
            set_by_dot(structured, key, copy.deepcopy(value))
        return structured

    @classmethod
    def _resolve_substitutions(cls, data: Any, path: str) -> Any:
        """Replace ``${VAR}`` / ``${?VAR}`` string values with environment values."""
        if isinstance(data, dict):
            resolved = {}
            for key, value in data.items():
                child = cls._resolve_substitutions(value, f"{path}.{key}" if path else str(key))
                if child is not _UNSET:
                    resolved[key] = child
            return resolved
        if isinstance(data, list):
            items = (cls._resolve_substitutions(item, path) for item in data)
            return [item for item in items if item is not _UNSET]
        if isinstance(data, str):
            match = _SUBSTITUTION.match(data)
            if match:
                optional, var = match.groups()
                if var in os.environ:
                    return os.environ[var]
                if optional:
                    return _UNSET
                raise ConfigurationException(
                    f"Unresolved substitution '{data}' at '{path}': environment variable {var} is not set",
                    key_path=path,
                )
        return data

    def _validate_mandatory(self, keys: Iterable[str]):
        missing = [k for k in keys if k not in self]
        if missing:
            raise MissingMandatoryConfig(missing)

    # --- Lookups ---

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a value using dot-notation, returning default if not found."""
        try:
            return get_by_dot(self._data, key)
        except (KeyError, TypeError):
            return default

    def __contains__(self, key: Any) -> bool:
        if not isinstance(key, str):
            return False
        try:
            get_by_dot(self._data, key)
            return True
        except (KeyError, TypeError):
            return False

    def get_string(self, key: str) -> Optional[str]:
        """
        Return the scalar at `key` rendered as text, or None if absent or null.

        Raises:
            RepresentationMismatch: If `key` holds a list or a mapping.
        """
        value = self.get(key)
        if value is None:
            return None
        if isinstance(value, (dict, list)):
            raise RepresentationMismatch(
                f"Expected a scalar at '{key}' but found a {type(value).__name__}",
                key_path=key,
            )
        return _render_scalar(value)

    def get_string_list(self, key: str) -> Optional[List[str]]:
        """
        Return the native list at `key` with elements rendered as text, or None if absent.

        Raises:
            RepresentationMismatch: If `key` holds a scalar or mapping, or the
                list holds nested lists or mappings.
        """
        if key not in self:
            return None
        value = self.get(key)
        if not isinstance(value, list):
            raise RepresentationMismatch(
                f"Expected a list at '{key}' but found a {type(value).__name__}",
                key_path=key,
            )
        rendered = []
        for item in value:
            if isinstance(item, (dict, list)):
                raise RepresentationMismatch(
                    f"List at '{key}' holds a {type(item).__name__}, expected scalars",
                    key_path=key,
                )
            rendered.append("null" if item is None else _render_scalar(item))
        return rendered

    def as_dict(self) -> dict:
        """Return a deep copy of the merged configuration."""
        return copy.deepcopy(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"
