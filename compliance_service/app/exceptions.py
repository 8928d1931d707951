"""
Exceptions raised by the framework engine.

Services raise these; the routers translate them into HTTP responses.
"""
from typing import List, Optional


class FrameworkServiceError(Exception):
    """Base exception for framework engine errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class MalformedInputError(FrameworkServiceError):
    """Raised when an import payload (JSON text or workbook) cannot be read."""
    pass


class FrameworkValidationError(FrameworkServiceError):
    """Raised when a parsed framework breaks one or more structural rules."""

    def __init__(self, errors: List[str], message: str = "Validation failed"):
        self.errors = list(errors)
        super().__init__(message)


class ScopeMismatchError(FrameworkServiceError):
    """Raised when an organizational framework meets a regular project, or vice versa."""
    pass


class LastFrameworkError(FrameworkServiceError):
    """Raised when a detach would leave a project without any framework."""
    pass


class ConflictError(FrameworkServiceError):
    """Raised when a write collides with an existing row."""
    pass


class FrameworkInUseError(ConflictError):
    """Raised when deleting a framework that is still attached to projects."""
    pass


class NotFoundError(FrameworkServiceError):
    """Raised when a framework, project, association or implementation cannot be found."""

    def __init__(self, message: str, resource: Optional[str] = None):
        self.resource = resource
        super().__init__(message)
