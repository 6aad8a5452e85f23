"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule was violated before anything was mutated."""


class InventoryError(DomainException):
    """A stock operation failed at execution time."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class ConcurrencyConflictError(DomainException):
    """A keyed lock could not be acquired within its timeout."""
