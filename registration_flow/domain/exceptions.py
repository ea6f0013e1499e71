"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class RegistrationAPIError(DomainException):
    """Registration backend returned an error or is unavailable"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SchemaError(DomainException):
    """Registration form schema is malformed (duplicate names, missing options, unknown types)"""

    pass


class FlowStateError(DomainException):
    """Illegal mutation of the registration flow state"""

    pass
