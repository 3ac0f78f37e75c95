"""
services/exceptions.py

Domain errors raised by the services layer.
middlewares/error_handler.py maps each one to its HTTP status and JSON body.
"""


class ResultServiceError(Exception):
    code = "RESULT_SERVICE_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ResultServiceError):
    """Malformed or incomplete input, rejected before anything is written."""
    code = "VALIDATION_ERROR"
    status_code = 422


class NotFoundError(ResultServiceError):
    """Missing record, or a record owned by another school."""
    code = "NOT_FOUND"
    status_code = 404


class AccessDeniedError(ResultServiceError):
    code = "ACCESS_DENIED"
    status_code = 403


class DuplicateTemplateError(ResultServiceError):
    code = "DUPLICATE_TEMPLATE"
    status_code = 409


class InvalidTransitionError(ResultServiceError):
    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, current: str, event: str):
        super().__init__(f"Cannot {event} a result in '{current}' status.")
        self.current = current
        self.event = event


class DependentServiceError(ResultServiceError):
    """PDF rendering or SMS delivery failed."""
    code = "DEPENDENT_SERVICE_ERROR"
    status_code = 502
