"""
confcat.catalog
---------------

Catalog contracts and the mapping declarations that drive `confcat.parser`.

A catalog is a dataclass whose fields are section dataclasses. Each
`CatalogMap` binds a dotted key path in the configuration to one of those
fields.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import MissingConstructor
from .shape import constructor_parameters, is_record


class ConfigCatalog:
    """Marker base for the root catalog holding every configuration section."""


class CatalogSection:
    """Marker base for a section held by a `ConfigCatalog`."""


@dataclass(frozen=True)
class CatalogMap:
    """Maps a key path in the configuration to a field of the catalog.

    Attributes:
        key_path: Dotted path to parse from, e.g. ``"app.server"``.
        catalog_property: Name of the catalog constructor parameter to fill
            (matched ignoring case).
        property_type: Dataclass to materialize for that parameter.
    """

    key_path: str
    catalog_property: str
    property_type: type


def derive_mappings(catalog_type: type, key_path: str = "") -> list[CatalogMap]:
    """
    Build one `CatalogMap` per constructor parameter of `catalog_type`.

    Each section is read from ``"<key_path>.<name>"``, or ``"<name>"`` when
    `key_path` is empty.

    Raises:
        MissingConstructor: If the catalog or one of its fields is not a dataclass.
    """
    mappings = []
    for parameter in constructor_parameters(catalog_type):
        if not is_record(parameter.kind):
            raise MissingConstructor(
                f"Catalog field '{parameter.name}' of {catalog_type.__name__} is not a dataclass section."
            )
        path = f"{key_path}.{parameter.name}" if key_path else parameter.name
        mappings.append(CatalogMap(path, parameter.name, parameter.kind))
    return mappings
