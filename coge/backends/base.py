"""Abstract base class for text-generation backends."""

from abc import ABC, abstractmethod
from typing import List

from coge.core.errors import BackendError

__all__ = ["Backend", "BackendError"]


class Backend(ABC):
    """
    A text-generation capability with a single operation.

    Implementations turn a system prompt and a user prompt into generated
    text, or raise BackendError carrying a human-readable message.
    """

    name: str = ""
    model: str = ""

    @abstractmethod
    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        """
        Generate text for the given prompts.

        Args:
            system_prompt: Instruction describing how to answer
            user_prompt: The user's request

        Returns:
            Generated text, stripped and non-empty

        Raises:
            BackendError: If the call fails or returns no content
        """
        pass

    async def list_models(self) -> List[str]:
        """Model ids the service offers. Backends without a listing raise BackendError."""
        raise BackendError(f"{self.name} does not support listing models.", backend=self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, model={self.model!r})"
