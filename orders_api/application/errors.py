"""Error taxonomy of the orders service.

Every error carries the HTTP status it maps to and a human readable
(French) message that is sent back verbatim as a plain-text body.
"""

NOT_FOUND_MESSAGE = "Commande non trouvée"
FORBIDDEN_MESSAGE = "Forbidden: Invalid API Key"


class OrderError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OrderValidationError(OrderError):
    """Creation payload rejected by the field validator."""
    status_code = 400


class UpdateNotAllowedError(OrderError):
    """Update payload rejected by the update authorizer."""
    status_code = 400


class MalformedEventError(OrderError):
    """Event envelope missing, undecodable, or without an action."""
    status_code = 400


class OrderNotFoundError(OrderError):
    status_code = 404

    def __init__(self, message: str = NOT_FOUND_MESSAGE):
        super().__init__(message)


class ForbiddenError(OrderError):
    status_code = 403

    def __init__(self, message: str = FORBIDDEN_MESSAGE):
        super().__init__(message)


class BackendError(OrderError):
    """Store failure, reported with the name of the failed operation."""
    status_code = 500

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation} : {cause}")
        self.operation = operation
        self.cause = cause
