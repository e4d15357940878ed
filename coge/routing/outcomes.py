"""Post-race learning: fold outcomes into the bandit, blacklist broken models.

Both recorders are plain callables over a list of RaceOutcome so the race
coordinator can run them once every call has settled.
"""

import logging
import re
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from coge.config import load_config, write_config
from coge.routing.bandit import ArmStore, make_arm_key, update_arm
from coge.routing.race import RaceOutcome

logger = logging.getLogger(__name__)

MODEL_UNAVAILABLE_PATTERN = re.compile(r"unknown_model|unavailable_model", re.IGNORECASE)


def is_model_unavailable_error(message: str) -> bool:
    """True when a backend error says the requested model does not exist or is unavailable."""
    return bool(message) and MODEL_UNAVAILABLE_PATTERN.search(message) is not None


class OutcomeRecorder:
    """Updates the persisted bandit state after a race.

    Args:
        store: Arm store to load from and save to
        arm_for_backend: Maps a backend name to the arm key it raced as
    """

    def __init__(self, store: ArmStore, arm_for_backend: Callable[[str], str]):
        self.store = store
        self.arm_for_backend = arm_for_backend

    def record(self, outcomes: Sequence[RaceOutcome]) -> None:
        """Fold every outcome into its arm, recompute rewards, save once."""
        if not outcomes:
            return
        state = self.store.load()
        for outcome in outcomes:
            arm_key = self.arm_for_backend(outcome.backend)
            arm = update_arm(state, arm_key, outcome.latency_ms, outcome.success)
            logger.debug(
                "Arm %s: n=%d avg_latency=%.0fms success_rate=%.2f",
                arm_key,
                arm.n,
                arm.avg_latency,
                arm.success_rate,
            )
        self.store.save(state)


class AutoBlacklister:
    """Blacklists a backend's model after a "model unavailable" failure.

    Only backends that already have an entry in the config file are touched;
    the model is appended once. The config is written only when it changed.

    Args:
        model_for_backend: Maps a backend name to the model it raced with
        config_path: Config file to update (defaults to the user config)
        classifier: Decides whether an error message means "model unavailable"
    """

    def __init__(
        self,
        model_for_backend: Callable[[str], Optional[str]],
        config_path: Optional[Path] = None,
        classifier: Callable[[str], bool] = is_model_unavailable_error,
    ):
        self.model_for_backend = model_for_backend
        self.config_path = config_path
        self.classifier = classifier

    def apply(self, outcomes: Sequence[RaceOutcome]) -> List[str]:
        """Blacklist models named by unavailable-model failures.

        Returns:
            Arm keys that were newly blacklisted
        """
        failures = [o for o in outcomes if not o.success and o.error and self.classifier(o.error)]
        if not failures:
            return []

        config = load_config(self.config_path)
        added: List[str] = []
        for outcome in failures:
            model = self.model_for_backend(outcome.backend)
            entry = config.providers.get(outcome.backend)
            if not model or entry is None or model in entry.blacklist:
                continue
            entry.blacklist.append(model)
            added.append(make_arm_key(outcome.backend, model))
            logger.warning("Auto-blacklisted %s:%s (%s)", outcome.backend, model, outcome.error)

        if added:
            write_config(config, self.config_path)
        return added
