"""Core exception hierarchy for coge.

All coge exceptions inherit from CogeError, enabling both specific
and broad exception handling.

Exception Hierarchy:
    CogeError (base)
    ├── BackendError - text-generation backend issues
    │   ├── MissingCredentialError
    │   ├── UnknownBackendError
    │   └── AllBackendsFailedError
    ├── StorageError - persisted document issues
    │   ├── StoreReadError
    │   └── StoreWriteError
    ├── ConfigurationError - config issues
    │   └── InvalidConfigError
    └── ValidationError - input validation
        └── InvalidInputError
"""

from typing import Any, Dict, Optional


class CogeError(Exception):
    """Base exception for all coge errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "BACKEND_ERROR")
        details: Optional dict with additional context
    """

    error_code: str = "COGE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dict for machine-readable output."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Backend Errors
class BackendError(CogeError):
    """A single backend failed to produce text."""

    error_code = "BACKEND_ERROR"

    def __init__(self, message: str, backend: str = "", details: Optional[Dict[str, Any]] = None):
        self.backend = backend
        merged = {"backend": backend}
        merged.update(details or {})
        super().__init__(message, details=merged)


class MissingCredentialError(BackendError):
    """Backend requires an environment variable that is not set."""

    error_code = "MISSING_CREDENTIAL"

    def __init__(self, backend: str, env_key: str, configured: Optional[list] = None):
        msg = f'Backend "{backend}" requires {env_key}. Set it: export {env_key}=your-key.'
        if configured:
            msg += f" Configured backends: {', '.join(configured)}. Run 'coge --configure' to switch."
        else:
            msg += " Run 'coge --configure' to set up a backend."
        super().__init__(msg, backend=backend, details={"env_key": env_key})


class UnknownBackendError(BackendError):
    """Backend name is not in the registry."""

    error_code = "UNKNOWN_BACKEND"

    def __init__(self, backend: str, available: list):
        super().__init__(
            f"Unknown backend: {backend}. Available: {', '.join(available)}",
            backend=backend,
            details={"available": list(available)},
        )


class AllBackendsFailedError(BackendError):
    """Every backend in a race failed.

    Attributes:
        errors: Mapping of backend name to its error message, in launch order
    """

    error_code = "ALL_BACKENDS_FAILED"

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        lines = [f"  - {name}: {message}" for name, message in self.errors.items()]
        super().__init__(
            "All backends failed:\n" + "\n".join(lines),
            details={"errors": self.errors},
        )


# Storage Errors
class StorageError(CogeError):
    """Base class for persisted document errors."""

    error_code = "STORAGE_ERROR"


class StoreReadError(StorageError):
    """A persisted document exists but could not be read or parsed."""

    error_code = "STORE_READ"

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Cannot read {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class StoreWriteError(StorageError):
    """A persisted document could not be written."""

    error_code = "STORE_WRITE"

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Cannot write {path}: {reason}",
            details={"path": path, "reason": reason},
        )


# Configuration Errors
class ConfigurationError(CogeError):
    """Base class for configuration errors."""

    error_code = "CONFIG_ERROR"


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    error_code = "INVALID_CONFIG"

    def __init__(self, config_key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value for '{config_key}': {reason}",
            details={"config_key": config_key, "value": str(value), "reason": reason},
        )


# Validation Errors
class ValidationError(CogeError):
    """Base class for validation errors."""

    error_code = "VALIDATION_ERROR"


class InvalidInputError(ValidationError):
    """User input is invalid."""

    error_code = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid input for '{field}': {reason}",
            details={"field": field, "reason": reason},
        )
