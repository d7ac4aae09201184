class ServiceError(Exception):
    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(ServiceError):
    """A counterparty, job, invoice or other reference does not resolve to an active record."""


class InvalidStateError(ServiceError):
    """The invoice's lifecycle state forbids the requested operation."""


class PolicyViolationError(ServiceError):
    """Credit limit, payment balance or routing rules reject the operation."""


class ResourceExhaustedError(ServiceError):
    """Invoice number generation ran out of attempts."""


class InvalidInputError(ServiceError):
    def __init__(self, message, errors=None):
        super().__init__(message, errors=errors or {})
        self.errors = errors or {}
