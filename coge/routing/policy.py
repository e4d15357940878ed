"""Strategy selection: which backends take part in a race.

- "manual": only the preferred backend, no racing, nothing learned
- "auto" with more than one configured backend: bandit-driven selection
- otherwise: random race selection (nothing to learn from with <= 1 arm)
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from coge.config import CogeConfig
from coge.core import constants
from coge.routing.bandit import ArmStore, backend_of, make_arm_key, select_arms, select_race_providers

logger = logging.getLogger(__name__)


@dataclass
class ProviderPick:
    """Backends chosen for a race.

    Attributes:
        selected: Backend names, first pick first
        arms: Arm keys behind the selection, or None when the bandit was not consulted
    """

    selected: List[str]
    arms: Optional[List[str]] = None


def model_for(config: CogeConfig, backend: str, default_models: Mapping[str, str]) -> str:
    """Model a backend runs with: its configured default, else the built-in, else the global model."""
    return config.default_model_for(backend, default_models.get(backend)) or config.model


def arm_key_for(config: CogeConfig, backend: str, default_models: Mapping[str, str]) -> str:
    return make_arm_key(backend, model_for(config, backend, default_models))


def pick_providers(
    config: CogeConfig,
    configured: Sequence[str],
    default_models: Mapping[str, str],
    max_count: Optional[int] = None,
    store: Optional[ArmStore] = None,
    rng: Optional[random.Random] = None,
) -> ProviderPick:
    """Decide which backends race for this invocation.

    Args:
        config: User configuration (strategy, preferred backend, models)
        configured: Backends with credentials available
        default_models: Built-in default model per backend
        max_count: Maximum racers (defaults to constants.MAX_RACERS)
        store: Arm store to rank with (defaults to the user's bandit.json)
        rng: Randomness source

    Returns:
        ProviderPick with the selected backends and, for bandit picks, their arm keys
    """
    if max_count is None:
        max_count = constants.MAX_RACERS

    if config.strategy == "manual":
        logger.debug("Manual strategy: using %s only", config.provider)
        return ProviderPick(selected=[config.provider])

    if len(configured) > 1:
        candidates = [arm_key_for(config, name, default_models) for name in configured]
        store = store or ArmStore.default()
        state = store.load()
        chosen = select_arms(state, candidates, max_count, rng=rng)
        logger.debug("Bandit picked %s from %d candidates", chosen, len(candidates))
        return ProviderPick(selected=[backend_of(key) for key in chosen], arms=chosen)

    selected = select_race_providers(configured, config.provider, max_count, rng=rng)
    return ProviderPick(selected=selected)
