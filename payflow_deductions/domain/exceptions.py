"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Local precondition failed before reaching any external service"""

    pass


class InvalidTransitionError(DomainException, ValueError):
    """Operation is not allowed in the draft's current state"""

    pass


class InvalidFieldError(DomainException, ValueError):
    """Field does not exist or cannot be edited directly"""

    pass


class GatewayError(DomainException):
    """External collaborator returned an error or is unavailable"""

    def __init__(self, message: str, service: str = "unknown"):
        super().__init__(message)
        self.service = service


class GatewayNetworkError(GatewayError):
    """Timeout or connection failure talking to an external service"""

    pass


class GatewayServerError(GatewayError):
    """External service failed (5xx) or sent a malformed response"""

    pass


class SubmissionRejected(GatewayError):
    """Persistence service refused the request (e.g. duplicate external reference)"""

    def __init__(self, message: str, service: str = "deduction_requests", status_code: int = 400):
        super().__init__(message, service)
        self.status_code = status_code
