# core/errors.py
"""
Application error types mapped to JSON error responses by ``app.configure_error_handlers``.
"""

from typing import Any, Dict, Optional


class ApiError(Exception):
    """Error carrying the HTTP status and message that should reach the client"""

    def __init__(self, status_code: int, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details or {}


class ValidationError(ApiError):
    """Invalid or missing input"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(400, message, details)


class NotFoundError(ApiError):
    def __init__(self, message: str = 'Resource not found'):
        super().__init__(404, message)


class AuthenticationError(ApiError):
    def __init__(self, message: str = 'Authentication required'):
        super().__init__(401, message)


class IntegrationError(Exception):
    """A third-party service (SMTP, storage, translation, geocoder) failed"""
    pass
