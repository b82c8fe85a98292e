"""
Error types for link previews and their mapping to HTTP status codes.
"""
from dataclasses import dataclass
from typing import Optional


class PreviewError(Exception):
    """Base class for errors that carry an HTTP-like status code."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PreviewError):
    """Raised when a URL is empty or malformed."""

    status_code = 400


class PolicyError(PreviewError):
    """Raised when a well-formed URL is not allowed to be scraped."""

    status_code = 400


class NetworkError(PreviewError):
    """
    Raised on a non-2xx response, a timeout or a transport failure.

    Args:
        message: Human readable description
        status_code: Upstream HTTP status, if a response was received
        timeout: Whether the request exceeded its deadline
    """

    def __init__(self, message: str, status_code: Optional[int] = None, timeout: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.timeout = timeout


class ScrapingError(PreviewError):
    """Outer boundary error; always has a status code to report."""

    def __init__(self, message: str, status_code: int = 500, code: Optional[str] = None):
        super().__init__(message, status_code)
        self.code = code


@dataclass
class ErrorInfo:
    """Message and status code pair serialized into error responses."""

    message: str
    status_code: int


def get_error_message(error: BaseException) -> ErrorInfo:
    """
    Map an exception to a user-facing message and status code.

    Args:
        error: Any exception raised while building a preview

    Returns:
        ErrorInfo with the message and HTTP status to report
    """
    if isinstance(error, ScrapingError):
        return ErrorInfo(error.message, error.status_code)

    if isinstance(error, (ValidationError, PolicyError)):
        return ErrorInfo(error.message, 400)

    if isinstance(error, NetworkError):
        if error.timeout:
            return ErrorInfo("Request timeout - the website took too long to respond", 408)
        if error.status_code == 403:
            return ErrorInfo("Access forbidden - the website blocked our request", 403)
        if error.status_code == 404:
            return ErrorInfo("Page not found", 404)
        if error.status_code is not None and error.status_code >= 500:
            return ErrorInfo("The target website is experiencing issues", 502)
        if error.status_code is None:
            return ErrorInfo(f"Network error - unable to reach the website: {error.message}", 503)
        return ErrorInfo(error.message, error.status_code)

    message = str(error) or "An unexpected error occurred"
    return ErrorInfo(message, 500)
