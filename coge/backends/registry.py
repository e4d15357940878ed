"""Registry of known text-generation backends.

Every backend speaks the OpenAI chat-completions protocol, so a backend is
fully described by where to send requests, which environment variable holds
its credential, and which model to ask for by default.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from coge.core.errors import MissingCredentialError, UnknownBackendError

DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True)
class BackendSpec:
    """Static description of a backend.

    Attributes:
        name: Backend id used in arm keys and config
        base_url: OpenAI-compatible API root; may contain "{account_id}"
        env_key: Environment variable holding the API key (None = keyless)
        default_model: Model requested when config names none
        available: Known model ids offered during configuration
        blacklist: Model ids hidden from configuration by default
        extra_headers: Headers sent with every request
        base_url_env: Environment variable that overrides the host
        account_env: Environment variable filling "{account_id}" in base_url
    """

    name: str
    base_url: str
    env_key: Optional[str]
    default_model: str
    available: Tuple[str, ...] = ()
    blacklist: Tuple[str, ...] = ()
    extra_headers: Dict[str, str] = field(default_factory=dict)
    base_url_env: Optional[str] = None
    account_env: Optional[str] = None

    def resolve_base_url(self, env: Optional[Mapping[str, str]] = None) -> str:
        """Base URL after applying environment overrides."""
        env = os.environ if env is None else env
        if self.base_url_env and env.get(self.base_url_env):
            return env[self.base_url_env].rstrip("/") + "/v1"
        if self.account_env:
            account_id = env.get(self.account_env)
            if not account_id:
                raise MissingCredentialError(self.name, self.account_env)
            return self.base_url.format(account_id=account_id)
        return self.base_url


BACKENDS: Dict[str, BackendSpec] = {
    spec.name: spec
    for spec in [
        BackendSpec(
            name="gemini",
            base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
            env_key="COGE_GEMINI_API_KEY",
            default_model="gemini-2.5-flash",
            available=("gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-2.5-pro"),
            blacklist=("gemini-2.0-flash-exp",),
        ),
        BackendSpec(
            name="openrouter",
            base_url="https://openrouter.ai/api/v1",
            env_key="COGE_OPENROUTER_API_KEY",
            default_model="meta-llama/llama-3.3-70b-instruct:free",
            available=("meta-llama/llama-3.3-70b-instruct:free", "deepseek/deepseek-chat-v3-0324:free"),
        ),
        BackendSpec(
            name="openai",
            base_url="https://api.openai.com/v1",
            env_key="COGE_OPENAI_API_KEY",
            default_model="gpt-4o-mini",
            available=("gpt-4o-mini", "gpt-4.1-mini", "gpt-4.1-nano", "gpt-4o"),
            blacklist=("gpt-4o-realtime-preview",),
        ),
        BackendSpec(
            name="ollama",
            base_url="http://localhost:11434/v1",
            env_key=None,
            default_model="llama3.2",
            base_url_env="COGE_OLLAMA_BASE_URL",
        ),
        BackendSpec(
            name="cerebras",
            base_url="https://api.cerebras.ai/v1",
            env_key="COGE_CEREBRAS_API_KEY",
            default_model="llama-3.3-70b",
            available=("llama-3.3-70b", "llama3.1-8b"),
        ),
        BackendSpec(
            name="cloudflare",
            base_url="https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/v1",
            env_key="COGE_CLOUDFLARE_API_KEY",
            default_model="@cf/meta/llama-3.3-70b-instruct-fp8-fast",
            account_env="COGE_CLOUDFLARE_ACCOUNT_ID",
        ),
        BackendSpec(
            name="cohere",
            base_url="https://api.cohere.ai/compatibility/v1",
            env_key="COGE_COHERE_API_KEY",
            default_model="command-a-03-2025",
            available=("command-a-03-2025", "command-r-plus", "command-r7b-12-2024"),
        ),
        BackendSpec(
            name="github-models",
            base_url="https://models.github.ai/inference",
            env_key="COGE_GITHUB_MODELS_TOKEN",
            default_model="openai/gpt-4.1-mini",
            extra_headers={"X-GitHub-Api-Version": "2022-11-28"},
        ),
        BackendSpec(
            name="groq",
            base_url="https://api.groq.com/openai/v1",
            env_key="COGE_GROQ_API_KEY",
            default_model="llama-3.3-70b-versatile",
            available=("llama-3.3-70b-versatile", "llama-3.1-8b-instant"),
            blacklist=("whisper-large-v3",),
        ),
        BackendSpec(
            name="huggingface",
            base_url="https://router.huggingface.co/v1",
            env_key="COGE_HUGGINGFACE_API_KEY",
            default_model="meta-llama/Llama-3.3-70B-Instruct",
        ),
        BackendSpec(
            name="codestral",
            base_url="https://codestral.mistral.ai/v1",
            env_key="COGE_CODESTRAL_API_KEY",
            default_model="codestral-latest",
        ),
        BackendSpec(
            name="mistral",
            base_url="https://api.mistral.ai/v1",
            env_key="COGE_MISTRAL_API_KEY",
            default_model="mistral-small-latest",
            available=("mistral-small-latest", "mistral-medium-latest", "mistral-large-latest"),
        ),
        BackendSpec(
            name="vercel-ai",
            base_url="https://ai-gateway.vercel.sh/v1",
            env_key="COGE_VERCEL_API_KEY",
            default_model="openai/gpt-4o-mini",
        ),
    ]
}


def get_spec(name: str) -> BackendSpec:
    """Look up a backend by (case-insensitive) name.

    Raises:
        UnknownBackendError: If the backend is not registered
    """
    spec = BACKENDS.get(name.lower())
    if spec is None:
        raise UnknownBackendError(name, list(BACKENDS))
    return spec


def configured_backends(env: Optional[Mapping[str, str]] = None) -> List[str]:
    """Backends whose credential variable is set, in registry order.

    Keyless backends (ollama) are never listed; they are only used when
    chosen explicitly.
    """
    env = os.environ if env is None else env
    return [name for name, spec in BACKENDS.items() if spec.env_key and env.get(spec.env_key)]


def default_models() -> Dict[str, str]:
    """Map of backend name to its built-in default model."""
    return {name: spec.default_model for name, spec in BACKENDS.items()}
