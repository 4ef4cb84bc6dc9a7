"""
Exception hierarchy.

Gameplay rejections (busy navigator, locked card, unspent battle points)
are not errors and are reported through return values. Exceptions are
reserved for broken master data and save I/O.
"""


class TowerError(Exception):
    """Base class for all tower errors."""


class DataError(TowerError):
    """Master data is missing or malformed."""


class SaveError(TowerError):
    """A save slot could not be read or written."""
