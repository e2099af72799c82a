"""
Error taxonomy and HTTP error translation for RepoPush.

Every fatal error carries a ``kind`` so the boundary layer can render a
specific message rather than a generic failure string.
"""

import functools
from enum import Enum
from typing import Any, Callable, Optional, Tuple, TypeVar

import httpx

from .logger import logger


F = TypeVar("F", bound=Callable[..., Any])


class ErrorKind(Enum):
    """Categories of failure surfaced to callers."""

    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INSUFFICIENT_SCOPE = "insufficient_scope"
    TOO_LARGE = "too_large"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    RATE_LIMITED = "rate_limited"
    INVALID = "invalid"
    UNKNOWN = "unknown"


####
##      EXCEPTIONS
#####
class RepoPushError(Exception):
    """Base exception for RepoPush operations."""

    kind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        self.message = message
        self.original_error = original_error
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (Original: {self.original_error})"
        return self.message


class UnauthenticatedError(RepoPushError):
    """Raised when the credential is missing, invalid or expired."""

    kind = ErrorKind.UNAUTHENTICATED


class CredentialNotReadyError(UnauthenticatedError):
    """Raised while a freshly linked credential is still being provisioned."""


class NotFoundError(RepoPushError):
    """Raised when a repository, branch or path is absent."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(RepoPushError):
    """Raised on a stale revision token or a duplicate create."""

    kind = ErrorKind.CONFLICT


class AlreadyExistsError(ConflictError):
    """Raised when creating a path that already exists."""


class InsufficientScopeError(RepoPushError):
    """Raised when the credential lacks a permission, e.g. ``delete_repo``."""

    kind = ErrorKind.INSUFFICIENT_SCOPE


class TooLargeError(RepoPushError):
    """Raised when an enumeration or batch exceeds its ceiling."""

    kind = ErrorKind.TOO_LARGE

    def __init__(self, count: int, limit: int, message: Optional[str] = None):
        self.count = count
        self.limit = limit
        super().__init__(
            message or f"Too many files ({count}). Maximum {limit} files allowed."
        )


class UpstreamUnavailableError(RepoPushError):
    """Raised on a 5xx response or a network failure."""

    kind = ErrorKind.UPSTREAM_UNAVAILABLE


class RateLimitError(UpstreamUnavailableError):
    """Raised when GitHub throttles the credential (primary or secondary limit)."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, original_error: Optional[Exception] = None,
                 status_code: Optional[int] = None, detail: Optional[str] = None,
                 retry_after: Optional[int] = None):
        super().__init__(message, original_error, status_code=status_code, detail=detail)
        self.retry_after = retry_after


class InvalidInputError(RepoPushError, ValueError):
    """Raised for malformed input such as an illegal file path."""

    kind = ErrorKind.INVALID


class BranchError(RepoPushError):
    """Raised when a branch cannot be resolved or created."""

    def __init__(self, branch: str, cause: Exception):
        self.branch = branch
        self.cause = cause
        super().__init__(f"Failed to create/access branch '{branch}': {cause}", cause)
        self.kind = getattr(cause, "kind", ErrorKind.UNKNOWN)


####
##      HTTP TRANSLATION
#####
_STATUS_ERRORS = {
    400: InvalidInputError,
    401: UnauthenticatedError,
    403: InsufficientScopeError,
    404: NotFoundError,
    409: ConflictError,
    422: ConflictError,
}


def _response_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        message = payload.get("message", "")
        errors = payload.get("errors") or []
        if errors and isinstance(errors[0], dict) and errors[0].get("message"):
            return f"{message}: {errors[0]['message']}" if message else errors[0]["message"]
        return message or response.text
    return response.text


def _is_rate_limited(response: httpx.Response, detail: str) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    # Secondary limits reuse 403; only the body or headers tell them apart
    return (
        "rate limit" in detail.lower()
        or "retry-after" in response.headers
        or response.headers.get("x-ratelimit-remaining") == "0"
    )


def _retry_after(response: httpx.Response) -> Optional[int]:
    try:
        return int(response.headers["retry-after"])
    except (KeyError, ValueError):
        return None


def error_for_response(response: httpx.Response, context: str) -> RepoPushError:
    """Build the taxonomy error matching an unsuccessful response."""

    status = response.status_code
    detail = _response_detail(response)
    message = f"{context} failed ({status}): {detail}"
    if _is_rate_limited(response, detail):
        return RateLimitError(
            message, status_code=status, detail=detail, retry_after=_retry_after(response)
        )
    if status >= 500:
        error_cls = UpstreamUnavailableError
    else:
        error_cls = _STATUS_ERRORS.get(status, RepoPushError)
    return error_cls(message, status_code=status, detail=detail)


def raise_for_status(response: httpx.Response, context: str) -> None:
    """Raise a :class:`RepoPushError` subclass if ``response`` is not 2xx."""

    if response.is_success:
        return
    raise error_for_response(response, context)


def handle_api_error(func: F) -> F:
    """
    Decorator translating transport failures of an async API call into
    the RepoPush error taxonomy. Taxonomy errors pass through untouched.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except RepoPushError:
            raise
        except httpx.TimeoutException as e:
            logger.error(f"Timeout in {func.__name__}: {e}")
            raise UpstreamUnavailableError("GitHub API request timed out", e)
        except httpx.TransportError as e:
            logger.error(f"Network error in {func.__name__}: {e}")
            raise UpstreamUnavailableError("Failed to reach GitHub API", e)
        except httpx.HTTPStatusError as e:
            raise error_for_response(e.response, func.__name__)

    return wrapper  # type: ignore[return-value]


####
##      USER-FACING MESSAGES
#####
_KIND_MESSAGES = {
    ErrorKind.UNAUTHENTICATED: (
        "Authentication required",
        "Your GitHub token is invalid or has expired. Please log out and log back in.",
    ),
    ErrorKind.NOT_FOUND: (
        "Not found",
        "The repository, branch or file doesn't exist. It may have been deleted or moved.",
    ),
    ErrorKind.CONFLICT: (
        "Conflict detected",
        "Someone else updated this file. Please refresh and try again.",
    ),
    ErrorKind.INSUFFICIENT_SCOPE: (
        "Permission denied",
        "Your GitHub connection lacks the required permission. Reconnect to "
        "grant it, or perform the change manually on GitHub.",
    ),
    ErrorKind.TOO_LARGE: (
        "Repository too large",
        "Please use a smaller repository or clone it manually.",
    ),
    ErrorKind.UPSTREAM_UNAVAILABLE: (
        "Server error",
        "GitHub is having issues right now. Please try again in a few moments.",
    ),
    ErrorKind.RATE_LIMITED: (
        "Rate limit reached",
        "GitHub is limiting requests from your account. Please wait a few minutes and try again.",
    ),
    ErrorKind.INVALID: (
        "Invalid request",
        "The changes you're trying to make aren't valid. Please check and try again.",
    ),
}

_OPERATION_MESSAGES = {
    "fetch": ("Couldn't load files", "Something went wrong while loading. Let's try that again."),
    "update": ("Couldn't save changes", "Your changes weren't saved. Please try again."),
    "delete": ("Couldn't delete file", "The file wasn't deleted. Please try again."),
    "create": ("Couldn't create file", "The file wasn't created. Please try again."),
    "upload": ("Upload failed", "Some files weren't uploaded. Please try again."),
    "push": ("Push failed", "The repository couldn't be pushed. Please try again."),
    "sync": ("Sync failed", "The branches couldn't be synced. Please try again."),
    "pull_request": ("Couldn't create pull request", "The pull request wasn't opened. Please try again."),
}


def describe_error(error: Exception, operation: str = "fetch") -> Tuple[str, str]:
    """
    Translate an error into a human-friendly ``(title, description)`` pair.

    Args:
        error: Exception raised by a RepoPush operation
        operation: Name of the operation that failed

    Returns:
        Tuple of title and description
    """
    if isinstance(error, AlreadyExistsError):
        return "File already exists", "A file already exists at this path."

    if isinstance(error, TooLargeError):
        title, hint = _KIND_MESSAGES[ErrorKind.TOO_LARGE]
        return title, f"{error.count} files found, maximum {error.limit} allowed. {hint}"

    if isinstance(error, CredentialNotReadyError):
        return (
            "Connection not ready",
            "We're still setting up your GitHub connection. Please wait and try again.",
        )

    kind = getattr(error, "kind", ErrorKind.UNKNOWN)
    if operation == "pull_request" and kind is ErrorKind.CONFLICT:
        return _OPERATION_MESSAGES["pull_request"][0], error.detail or error.message

    if kind in _KIND_MESSAGES:
        return _KIND_MESSAGES[kind]

    return _OPERATION_MESSAGES.get(operation, _OPERATION_MESSAGES["fetch"])


__all__ = [
    "ErrorKind",
    "RepoPushError",
    "UnauthenticatedError",
    "CredentialNotReadyError",
    "NotFoundError",
    "ConflictError",
    "AlreadyExistsError",
    "InsufficientScopeError",
    "TooLargeError",
    "UpstreamUnavailableError",
    "RateLimitError",
    "InvalidInputError",
    "BranchError",
    "error_for_response",
    "raise_for_status",
    "handle_api_error",
    "describe_error",
]
