# studymate/core/exceptions.py
"""Custom exceptions for the StudyMate client cache."""
from typing import Optional


class StudyMateException(Exception):
    """Base exception for StudyMate."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class RemoteAPIError(StudyMateException):
    """Raised when the backend rejects a request or cannot be reached."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code)


class NotAuthenticatedError(StudyMateException):
    """Raised when no bearer token is stored."""
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, 401)


class StoreError(StudyMateException):
    """Raised when the device store backend fails."""
    def __init__(self, operation: str, key: str, reason: str = ""):
        message = f"Device store {operation} failed for key '{key}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.operation = operation
        self.key = key
