"""
confcat.parser
--------------

Materializes dataclass catalogs from a `ConfigSource`.

Each dataclass field is read from the key path formed by its parent's key
path plus the field name, so the configuration hierarchy must mirror the
dataclass hierarchy::

    @dataclass
    class Server:
        host: str
        port: int

    @dataclass
    class Catalog:
        server: Server

    catalog = parse(source, Catalog, [CatalogMap("app.server", "server", Server)])
    # reads app.server.host and app.server.port

Lists may be native lists or a single delimited string (handy for
environment variables), e.g. ``hosts = "a.example, 'b,c'"``.

Top-level sections are materialized concurrently on a thread pool; the first
failure aborts the whole parse.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Sequence

from .catalog import CatalogMap
from .coercion import DEFAULT_DELIMITER, coerce_value, split_delimited
from .exceptions import CatalogArgumentNotFound, ConstructionFailure, RepresentationMismatch
from .loader import ConfigSource
from .shape import ParameterShape, constructor_parameters, find_field_kind, is_record, list_element_kind

log = logging.getLogger(__name__)


class ConfigurationParser:
    """
    Builds typed dataclass instances from dotted configuration keys.

    Args:
        delimiter: Character separating elements of a list written as a
            single string. Defaults to a comma.
        max_workers: Size of the thread pool used for top-level sections.
            None lets `ThreadPoolExecutor` pick its I/O-oriented default.
    """

    def __init__(self, delimiter: str = DEFAULT_DELIMITER, max_workers: Optional[int] = None):
        split_delimited("", delimiter)  # validates the delimiter
        self.delimiter = delimiter
        self.max_workers = max_workers

    def parse(self, source: ConfigSource, catalog_type: type, mappings: Sequence[CatalogMap]) -> Any:
        """
        Materialize every mapped section concurrently and build the catalog.

        Args:
            source: Configuration to read from.
            catalog_type: Dataclass holding one field per mapping.
            mappings: Key path to catalog field bindings.

        Returns:
            A new `catalog_type` instance.

        Raises:
            MissingConstructor: If `catalog_type` or a section type is not a dataclass.
            CatalogArgumentNotFound: If a mapping names no catalog parameter.
            ConfigurationException: For any failure while materializing a section.
        """
        parameters = constructor_parameters(catalog_type)

        def build_section(mapping: CatalogMap):
            instance = self.materialize(source, mapping.key_path, mapping.property_type)
            for parameter in parameters:
                if parameter.name.lower() == mapping.catalog_property.lower():
                    return parameter.name, instance
            raise CatalogArgumentNotFound(
                f"Catalog argument not found: {mapping.catalog_property}",
                key_path=mapping.key_path,
            )

        results: List[Optional[tuple]] = [None] * len(mappings)
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="confcat") as executor:
            futures = {executor.submit(build_section, mapping): index for index, mapping in enumerate(mappings)}
            log.debug("Scheduled %d catalog sections for %s", len(futures), catalog_type.__name__)
            for future in as_completed(futures):
                error = future.exception()
                if error is not None:
                    for pending in futures:
                        pending.cancel()
                    raise error
                results[futures[future]] = future.result()

        # Declaration order, so a repeated catalog_property resolves to the last mapping.
        arguments = dict(results)
        return self._construct(catalog_type, "<catalog>", arguments, [p.name for p in parameters])

    def materialize(self, source: ConfigSource, key_path: str, record_type: type) -> Any:
        """
        Build one `record_type` instance from the keys under `key_path`.

        Nested dataclass fields recurse; list fields go through `decode_list`;
        everything else is read with `source.get_string` and coerced. A key
        that is absent gives "no value": the field's default applies, or None
        for an ``Optional`` field, otherwise the constructor reports it.

        Raises:
            MissingConstructor: If `record_type` is not a dataclass.
            PropertyNotFound: If a parameter has no matching field.
            ConstructionFailure: If the constructor rejects the values.
        """
        log.debug("Parsing '%s' from '%s'", record_type.__name__, key_path)
        parameters = constructor_parameters(record_type)

        arguments: Dict[str, Any] = {}
        for parameter in parameters:
            child_path = f"{key_path}.{parameter.name}"
            if is_record(parameter.kind):
                value = self.materialize(source, child_path, parameter.kind)
            else:
                kind = find_field_kind(record_type, parameter.name)
                value = self._convert(source, child_path, kind)
            self._assign(arguments, parameter, value)

        return self._construct(record_type, key_path, arguments, [p.name for p in parameters])

    def decode_list(self, source: ConfigSource, key_path: str, element_kind: Any) -> List[Any]:
        """
        Read a list at `key_path` and coerce each element to `element_kind`.

        A native list is used as is. A scalar is read as a single delimited
        string instead. An absent key or blank string gives an empty list.
        """
        try:
            raw_list = source.get_string_list(key_path) or []
        except RepresentationMismatch:
            text = source.get_string(key_path) or ""
            raw_list = split_delimited(text, self.delimiter) if text.strip() else []

        if element_kind is Any:
            element_kind = str
        return [coerce_value(key_path, raw, element_kind, self.delimiter) for raw in raw_list]

    def _convert(self, source: ConfigSource, key_path: str, kind: Any) -> Any:
        element_kind = list_element_kind(kind)
        if element_kind is not None:
            return self.decode_list(source, key_path, element_kind)

        raw = source.get_string(key_path)
        if raw is None:
            return None
        return coerce_value(key_path, raw, kind, self.delimiter)

    @staticmethod
    def _assign(arguments: Dict[str, Any], parameter: ParameterShape, value: Any):
        if value is not None:
            arguments[parameter.name] = value
        elif parameter.optional and not parameter.has_default:
            arguments[parameter.name] = None
        # Otherwise leave it out: the default applies, or the constructor rejects it.

    @staticmethod
    def _construct(cls: type, key_path: str, arguments: Dict[str, Any], attempted: List[str]) -> Any:
        try:
            return cls(**arguments)
        except Exception as e:
            raise ConstructionFailure(cls.__name__, key_path, attempted, e) from e


_default_parser = ConfigurationParser()


def parse(source: ConfigSource, catalog_type: type, mappings: Sequence[CatalogMap]) -> Any:
    """Materialize `catalog_type` from `source` with the default parser settings."""
    return _default_parser.parse(source, catalog_type, mappings)
