"""Tests for the exception hierarchy."""

from coge.core.errors import (
    AllBackendsFailedError,
    BackendError,
    CogeError,
    InvalidConfigError,
    InvalidInputError,
    MissingCredentialError,
    StorageError,
    StoreReadError,
    UnknownBackendError,
)


class TestHierarchy:
    def test_everything_is_coge_error(self):
        for error in (
            BackendError("x"),
            MissingCredentialError("groq", "COGE_GROQ_API_KEY"),
            UnknownBackendError("nope", ["groq"]),
            AllBackendsFailedError({"groq": "x"}),
            StoreReadError("/tmp/x", "bad"),
            InvalidConfigError("k", "v", "bad"),
            InvalidInputError("f", "bad"),
        ):
            assert isinstance(error, CogeError)

    def test_store_errors_are_storage_errors(self):
        assert isinstance(StoreReadError("/tmp/x", "bad"), StorageError)


class TestMessages:
    def test_to_dict(self):
        data = BackendError("groq API error 500: oops", backend="groq").to_dict()
        assert data == {
            "error": True,
            "error_code": "BACKEND_ERROR",
            "message": "groq API error 500: oops",
            "details": {"backend": "groq"},
        }

    def test_missing_credential_names_variable(self):
        error = MissingCredentialError("groq", "COGE_GROQ_API_KEY")
        assert "COGE_GROQ_API_KEY" in error.message
        assert "coge --configure" in error.message
        assert error.backend == "groq"

    def test_missing_credential_lists_configured(self):
        error = MissingCredentialError("groq", "COGE_GROQ_API_KEY", ["gemini", "mistral"])
        assert "Configured backends: gemini, mistral" in error.message

    def test_all_backends_failed_lists_each(self):
        error = AllBackendsFailedError({"groq": "rate limited", "gemini": "bad key"})
        assert error.message == "All backends failed:\n  - groq: rate limited\n  - gemini: bad key"
        assert error.error_code == "ALL_BACKENDS_FAILED"
