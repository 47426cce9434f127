"""Exceptions raised by the export and import pipelines."""

from __future__ import annotations


class TranslationExchangeError(Exception):
    """Base class for all errors reported to the command line."""


class NotFoundError(TranslationExchangeError):
    """A starting node, workspace or site could not be resolved."""


class ConfigurationError(TranslationExchangeError):
    """Dimension presets or languages do not allow the requested operation."""


class FormatError(TranslationExchangeError):
    """The document uses an unsupported format version or property type."""


class ParseError(TranslationExchangeError):
    """The document contains an unexpected element or is not well-formed."""


class UnknownPackageError(TranslationExchangeError):
    """The site package named in the document is not available."""


class InvalidStateError(TranslationExchangeError):
    """The site package exists but no site is registered for it."""
