"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ConfigurationError(DomainException):
    """Dues are disabled or the recurrence rule is incomplete"""

    pass


class NotFoundError(DomainException):
    """Referenced association, member or due does not exist"""

    pass


class ConflictError(DomainException):
    """A due already exists for this member and period"""

    pass


class DueAlreadyPaidError(ConflictError):
    """Payment recorded against a due that is already paid"""

    pass


class InvalidPaymentError(DomainException):
    """Payment details are malformed"""

    pass


class PersistenceError(DomainException):
    """Storage layer failed while reading or writing dues"""

    pass
