"""Configuration management for coge.

The per-user config file lives next to the bandit and usage stats
documents in the platform config directory:

    Linux/macOS: $XDG_CONFIG_HOME/coge (default ~/.config/coge)
    Windows:     %APPDATA%/coge
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from coge.backends.registry import BACKENDS, DEFAULT_MODEL, DEFAULT_PROVIDER
from coge.core.errors import InvalidConfigError
from coge.storage.json_store import JsonDocumentStore

logger = logging.getLogger(__name__)

APP_NAME = "coge"
CONFIG_FILENAME = "config.json"


class BackendSettings(BaseModel):
    """Per-backend configuration entry."""

    model_config = ConfigDict(extra="allow")

    default: Optional[str] = Field(default=None, description="Model used for this backend")
    available: List[str] = Field(default_factory=list, description="Known model ids")
    blacklist: List[str] = Field(default_factory=list, description="Model ids hidden from selection menus")

    @field_validator("available", mode="before")
    @classmethod
    def normalize_available(cls, v: Any) -> List[str]:
        """Accept both plain ids and {"id": ..., "category": ...} entries."""
        if v is None:
            return []
        return [entry["id"] if isinstance(entry, dict) else entry for entry in v]

    @field_validator("blacklist", mode="before")
    @classmethod
    def normalize_blacklist(cls, v: Any) -> List[str]:
        return [] if v is None else v


class CogeConfig(BaseModel):
    """Top-level user configuration."""

    provider: str = Field(default=DEFAULT_PROVIDER, description="Preferred backend")
    model: str = Field(default=DEFAULT_MODEL, description="Global default model")
    strategy: Literal["auto", "manual"] = Field(
        default="auto", description="auto: bandit races backends; manual: only the preferred backend"
    )
    providers: Dict[str, BackendSettings] = Field(default_factory=dict)

    @field_validator("provider", mode="before")
    @classmethod
    def lowercase_provider(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @field_validator("strategy", mode="before")
    @classmethod
    def normalize_strategy(cls, v: Any) -> Any:
        if v is None:
            return "auto"
        return v.lower() if isinstance(v, str) else v

    def default_model_for(self, backend: str, fallback: Optional[str] = None) -> Optional[str]:
        """Model configured for a backend, else the given fallback."""
        entry = self.providers.get(backend)
        if entry is not None and entry.default:
            return entry.default
        return fallback

    def blacklist_for(self, backend: str) -> List[str]:
        entry = self.providers.get(backend)
        return list(entry.blacklist) if entry is not None else []

    def to_document(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "providers": {name: entry.model_dump(exclude_none=True) for name, entry in self.providers.items()},
            "strategy": self.strategy,
        }


def get_config_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    """Config directory for the current platform."""
    env = os.environ if env is None else env
    if sys.platform == "win32":
        base = env.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_NAME
    base = env.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_NAME


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def default_config() -> CogeConfig:
    """Built-in configuration used when no config file exists."""
    providers = {
        name: BackendSettings(
            default=spec.default_model,
            available=list(spec.available),
            blacklist=list(spec.blacklist),
        )
        for name, spec in BACKENDS.items()
    }
    return CogeConfig(provider=DEFAULT_PROVIDER, model=DEFAULT_MODEL, strategy="auto", providers=providers)


def _merge_default_blacklists(providers: Dict[str, Any]) -> None:
    """Add built-in blacklist entries to user entries (additive, order kept)."""
    for name, spec in BACKENDS.items():
        entry = providers.get(name)
        if not spec.blacklist or not isinstance(entry, dict):
            continue
        merged = list(dict.fromkeys(list(spec.blacklist) + list(entry.get("blacklist") or [])))
        entry["blacklist"] = merged


def _migrate_legacy(document: Dict[str, Any]) -> Dict[str, Any]:
    """Convert the old flat {"models": {backend: model}} layout."""
    provider = document.get("provider") or DEFAULT_PROVIDER
    providers: Dict[str, Any] = {}
    for name, model_id in document["models"].items():
        spec = BACKENDS.get(name)
        entry: Dict[str, Any] = {"default": model_id, "available": list(spec.available) if spec else []}
        if spec and spec.blacklist:
            entry["blacklist"] = list(spec.blacklist)
        providers[name] = entry
    logger.info("Migrated legacy config layout (%d backends)", len(providers))
    return {
        "provider": provider,
        "model": document["models"].get(provider, DEFAULT_MODEL),
        "providers": providers,
        "strategy": "auto",
    }


def load_config(path: Optional[Path] = None) -> CogeConfig:
    """Load the user config.

    Returns the built-in default when the file is missing. An existing file
    is used as-is (no merging with built-in models) except that legacy
    layouts are migrated and built-in blacklists are merged in.

    Raises:
        StoreReadError: If the file exists but cannot be read or parsed
        InvalidConfigError: If the file does not match the config schema
    """
    store = JsonDocumentStore(path or get_config_path())
    if not store.exists():
        return default_config()
    document = store.load()

    if "models" in document and "providers" not in document:
        document = _migrate_legacy(document)
    else:
        document = {
            "provider": document.get("provider") or DEFAULT_PROVIDER,
            "model": document.get("model") or DEFAULT_MODEL,
            "providers": document.get("providers") or {},
            "strategy": document.get("strategy") or "auto",
        }
        if isinstance(document["providers"], dict):
            _merge_default_blacklists(document["providers"])

    try:
        return CogeConfig.model_validate(document)
    except ValidationError as e:
        raise InvalidConfigError(str(store.path), document, str(e))


def write_config(config: CogeConfig, path: Optional[Path] = None) -> None:
    """Write the config file, creating its directory if needed."""
    JsonDocumentStore(path or get_config_path()).save(config.to_document())


def write_default_config_if_missing(path: Optional[Path] = None) -> bool:
    """Write the built-in config unless a config file already exists.

    Returns:
        True if the file was created
    """
    store = JsonDocumentStore(path or get_config_path())
    if store.exists():
        return False
    store.save(default_config().to_document())
    return True
