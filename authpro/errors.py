"""Exceptions raised by the authpro core."""


class AuthproError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(AuthproError):
    """An unknown type or algorithm reached code that must handle every variant.

    This is a programming or data-corruption bug, never a user mistake.
    """


class FormatError(AuthproError, ValueError):
    """Input could not be parsed (URI, query parameter, record dict, backup)."""


class ValidationError(AuthproError, ValueError):
    """Input was well formed but the resulting record is not valid."""


class BackupReadError(FormatError):
    """A backup could not be read.

    Wrong passwords and corrupted files are reported the same way.
    """

    def __init__(self, message: str = "Could not read backup"):
        super().__init__(message)
