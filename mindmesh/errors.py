"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class UnauthorizedError(AppError):
    """Raised when the caller is not signed in."""

    def __init__(self, message="Authentication required."):
        """Initialize the error."""
        super().__init__(message, 401)


class ForbiddenError(AppError):
    """Raised when the caller lacks the privilege for an action."""

    def __init__(self, message="You are not allowed to perform this action."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class InvalidStateError(AppError):
    """Raised when a business rule forbids the action in the current state."""

    def __init__(self, message="Action not allowed in the current state.", status_code=409):
        """Initialize the error."""
        super().__init__(message, status_code)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)
