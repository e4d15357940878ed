"""Backend selection and racing.

This package decides which backends answer an instruction, races them
concurrently, and learns from every race which backend+model combination
is fastest and most reliable.

Usage:
    from coge.routing import ArmStore, pick_providers

    pick = pick_providers(config, configured_backends(), default_models())
    # → ProviderPick(selected=["groq", "gemini", "mistral"], arms=[...])
"""

from coge.routing.bandit import (
    Arm,
    ArmStore,
    BanditState,
    apply_decay,
    backend_of,
    compute_reward,
    make_arm_key,
    select_arms,
    select_race_providers,
    update_arm,
)
from coge.routing.outcomes import AutoBlacklister, OutcomeRecorder, is_model_unavailable_error
from coge.routing.policy import ProviderPick, arm_key_for, model_for, pick_providers
from coge.routing.race import RaceCoordinator, RaceOutcome, RaceWinner

__all__ = [
    "Arm",
    "ArmStore",
    "BanditState",
    "apply_decay",
    "backend_of",
    "compute_reward",
    "make_arm_key",
    "select_arms",
    "select_race_providers",
    "update_arm",
    "ProviderPick",
    "arm_key_for",
    "model_for",
    "pick_providers",
    "RaceCoordinator",
    "RaceOutcome",
    "RaceWinner",
    "OutcomeRecorder",
    "AutoBlacklister",
    "is_model_unavailable_error",
]
