"""Text-generation backends for command generation."""

import os
from typing import Mapping, Optional

from coge.core import constants
from coge.core.errors import MissingCredentialError

from .base import Backend, BackendError
from .openai_compatible import OpenAICompatibleBackend, OpenRouterBackend
from .registry import (
    BACKENDS,
    DEFAULT_MODEL,
    DEFAULT_PROVIDER,
    BackendSpec,
    configured_backends,
    default_models,
    get_spec,
)


def create_backend(
    name: str,
    model: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> Backend:
    """
    Factory function to create a backend instance.

    Args:
        name: Registered backend name
        model: Model id (defaults to the backend's built-in default)
        env: Environment to read credentials from (defaults to os.environ)
        timeout: Request timeout in seconds

    Returns:
        Initialized backend

    Raises:
        UnknownBackendError: If the backend is not registered
        MissingCredentialError: If its API key (or account id) is not set
    """
    env = os.environ if env is None else env
    spec = get_spec(name)

    api_key = None
    if spec.env_key:
        api_key = env.get(spec.env_key)
        if not api_key:
            raise MissingCredentialError(spec.name, spec.env_key, configured_backends(env))

    backend_cls = OpenRouterBackend if spec.name == "openrouter" else OpenAICompatibleBackend
    return backend_cls(
        name=spec.name,
        model=model or spec.default_model,
        base_url=spec.resolve_base_url(env),
        api_key=api_key,
        timeout=timeout if timeout is not None else constants.BACKEND_TIMEOUT,
        extra_headers=dict(spec.extra_headers),
    )


__all__ = [
    "Backend",
    "BackendError",
    "BackendSpec",
    "OpenAICompatibleBackend",
    "OpenRouterBackend",
    "BACKENDS",
    "DEFAULT_PROVIDER",
    "DEFAULT_MODEL",
    "configured_backends",
    "default_models",
    "get_spec",
    "create_backend",
]
