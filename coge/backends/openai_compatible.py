"""Backend for any service exposing the OpenAI chat-completions API.

Uses the official openai SDK's AsyncOpenAI client pointed at the service's
base URL, the same way the xAI and OpenAI-compatible endpoints are reached.
"""

import logging
from typing import Dict, List, Optional

import openai
from openai import AsyncOpenAI

from .base import Backend, BackendError

logger = logging.getLogger(__name__)


class OpenAICompatibleBackend(Backend):
    """Chat-completions backend with one system and one user message."""

    def __init__(
        self,
        name: str,
        model: str,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        extra_headers: Optional[Dict[str, str]] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize the backend.

        Args:
            name: Backend id, used in error messages and arm keys
            model: Model id sent with every request
            base_url: API root (without /chat/completions)
            api_key: Bearer token; keyless services get a placeholder
            timeout: Per-request timeout in seconds
            extra_headers: Headers added to every request
            client: Pre-built client (tests)
        """
        self.name = name
        self.model = model
        self.base_url = base_url
        self.client = client or AsyncOpenAI(
            api_key=api_key or "unused",
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            default_headers=extra_headers or None,
        )

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except openai.APIStatusError as e:
            raise self._status_error(e) from e
        except openai.OpenAIError as e:
            raise BackendError(f"{self.name} request failed: {e}", backend=self.name) from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        text = content.strip()
        if not text:
            raise BackendError(f"Empty result from {self.name}.", backend=self.name)
        return text

    async def list_models(self) -> List[str]:
        """Model ids from the service's /models endpoint, sorted and de-duplicated."""
        try:
            page = await self.client.models.list()
        except openai.APIStatusError as e:
            raise self._status_error(e) from e
        except openai.OpenAIError as e:
            raise BackendError(f"{self.name} model listing failed: {e}", backend=self.name) from e

        model_ids = sorted({model.id for model in page.data if getattr(model, "id", None)})
        logger.debug("%s lists %d models", self.name, len(model_ids))
        return model_ids

    def _status_error(self, error: openai.APIStatusError) -> BackendError:
        return BackendError(
            self.describe_status_error(error.status_code, str(error.message)),
            backend=self.name,
            details={"status_code": error.status_code},
        )

    def describe_status_error(self, status_code: int, message: str) -> str:
        """Human-readable message for a non-2xx response."""
        return f"{self.name} API error {status_code}: {message}"


class OpenRouterBackend(OpenAICompatibleBackend):
    """OpenRouter, which rejects some models under its privacy settings."""

    def describe_status_error(self, status_code: int, message: str) -> str:
        if status_code == 404 and ("data policy" in message or "Zero data retention" in message):
            return (
                "OpenRouter: this model is not available with Zero data retention enabled. "
                "Disable it at https://openrouter.ai/settings/privacy or set a different model in config."
            )
        return super().describe_status_error(status_code, message)
