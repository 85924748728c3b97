"""
confcat – Typed configuration catalogs from layered config sources.

Build a `ConfigSource` from `confcat.loader`, describe the catalog sections
with `CatalogMap` from `confcat.catalog`, and call `parse` from
`confcat.parser` to get one fully populated dataclass back.
Errors derive from `ConfigurationException` in `confcat.exceptions`.
"""

__version__ = "0.1.0"
