"""
confcat.exceptions
------------------

Custom exceptions for confcat.

Every error raised while loading or materializing configuration derives from
`ConfigurationException`, so callers can catch a single type.
"""


class ConfigurationException(Exception):
    """
    Raised when configuration cannot be read or materialized.

    Attributes:
        key_path: Dotted key path the failure relates to, when known.
    """

    def __init__(self, message, key_path=None):
        super().__init__(message)
        self.key_path = key_path


class MissingMandatoryConfig(ConfigurationException):
    """
    Raised when one or more mandatory config keys are missing.
    """

    def __init__(self, keys):
        super().__init__(f"Missing mandatory configuration keys: {', '.join(keys)}")
        self.missing_keys = keys


class RepresentationMismatch(ConfigurationException):
    """Raised when a key holds a different shape than requested (e.g. scalar vs list)."""


class MissingConstructor(ConfigurationException):
    """Raised when a target type has no dataclass constructor to inspect."""


class CatalogArgumentNotFound(ConfigurationException):
    """Raised when a mapping names a field the catalog constructor does not have."""


class PropertyNotFound(ConfigurationException):
    """Raised when a constructor parameter has no matching field on its class."""


class InvalidValue(ConfigurationException):
    """Raised when raw text cannot be parsed as the requested scalar kind."""


class EnumValueNotFound(ConfigurationException):
    """Raised when a token matches none of the target enum's members."""


class UnsupportedType(ConfigurationException):
    """Raised when a requested kind cannot be coerced from text."""


class ConstructionFailure(ConfigurationException):
    """
    Raised when a constructor rejects the materialized arguments.

    Attributes:
        type_name: Name of the class that failed to build.
        arguments: Parameter names that were attempted.
    """

    def __init__(self, type_name, key_path, arguments, error):
        message = (
            f"Error instantiating: {type_name}"
            "\nMake sure the key path and class field names match."
            f"\nKey path: {key_path}"
            f"\nArguments: {', '.join(arguments)}"
            f"\nError: {error}"
        )
        super().__init__(message, key_path=key_path)
        self.type_name = type_name
        self.arguments = list(arguments)
