"""Shared error types and tuning constants."""

from .errors import (
    AllBackendsFailedError,
    BackendError,
    CogeError,
    ConfigurationError,
    InvalidConfigError,
    InvalidInputError,
    MissingCredentialError,
    StorageError,
    StoreReadError,
    StoreWriteError,
    UnknownBackendError,
    ValidationError,
)

__all__ = [
    "CogeError",
    "BackendError",
    "MissingCredentialError",
    "UnknownBackendError",
    "AllBackendsFailedError",
    "StorageError",
    "StoreReadError",
    "StoreWriteError",
    "ConfigurationError",
    "InvalidConfigError",
    "ValidationError",
    "InvalidInputError",
]
