"""Errors raised while loading statement files."""


class LedgerError(ValueError):
    """Base class for statement ledger errors."""


class UnsupportedFormatError(LedgerError):
    """Raised when a file extension has no loader."""


class DecodeError(LedgerError):
    """Raised when a supported file cannot be decoded."""
