"""
Cross-cutting infrastructure: logging, errors and retry policy.
"""

from .logger import logger, set_verbose
from .error_handler import (
    ErrorKind,
    RepoPushError,
    UnauthenticatedError,
    CredentialNotReadyError,
    NotFoundError,
    ConflictError,
    AlreadyExistsError,
    InsufficientScopeError,
    TooLargeError,
    UpstreamUnavailableError,
    RateLimitError,
    InvalidInputError,
    BranchError,
    describe_error,
)
from .retry_manager import RetryConfig, RetryManager

__all__ = [
    "logger",
    "set_verbose",
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
    "describe_error",
    "RetryConfig",
    "RetryManager",
]
