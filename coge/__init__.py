"""coge package exports.

Keep package import lightweight by lazily importing heavy modules.
"""

from typing import TYPE_CHECKING, Any

__version__ = "1.4.0"

if TYPE_CHECKING:
    from .config import CogeConfig

__all__ = ["CogeConfig", "create_backend", "load_config"]


def __getattr__(name: str) -> Any:
    """Lazily resolve top-level exports."""
    if name in {"CogeConfig", "load_config"}:
        from .config import CogeConfig, load_config

        return CogeConfig if name == "CogeConfig" else load_config

    if name == "create_backend":
        from .backends import create_backend

        return create_backend

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
