from __future__ import annotations


class CardpressError(Exception):
    """Base class for every error raised by the drawing-data compiler."""


class ConfigurationError(CardpressError, RuntimeError):
    pass


class TemplateLookupError(CardpressError, LookupError):
    pass


class FieldLookupError(CardpressError, LookupError):
    pass


class ChoiceLookupError(CardpressError, LookupError):
    pass


class MissingReferenceError(CardpressError, LookupError):
    pass


class UnsupportedFieldTypeError(CardpressError, ValueError):
    pass


class FieldDataError(CardpressError, ValueError):
    pass


class ResourceResolutionError(CardpressError, RuntimeError):
    pass
