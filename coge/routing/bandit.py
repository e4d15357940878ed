"""Epsilon-greedy bandit over backend/model arms.

Provides:
- Arm dataclass: running performance record for one "backend:model" key
- ArmStore: load/save the whole bandit state through a document store
- compute_reward / apply_decay: the reward model
- select_arms / select_race_providers: the selectors
- update_arm: fold one observation into the state

Usage:
    from coge.routing.bandit import ArmStore, select_arms, update_arm

    store = ArmStore.default()
    state = store.load()
    chosen = select_arms(state, ["groq:llama-3.3-70b-versatile", "gemini:gemini-2.5-flash"], n=2)

    update_arm(state, chosen[0], latency_ms=420.0, success=True)
    store.save(state)
"""

import copy
import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from coge.core import constants
from coge.core.errors import StoreReadError
from coge.storage.json_store import DocumentStore, JsonDocumentStore, store_location

logger = logging.getLogger(__name__)

BANDIT_FILENAME = "bandit.json"

_default_rng = random.Random()


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def _parse_datetime(iso_str: Optional[str]) -> Optional[datetime]:
    """Parse ISO datetime string ensuring timezone awareness."""
    if not iso_str:
        return None
    if iso_str.endswith("Z"):
        iso_str = iso_str[:-1] + "+00:00"
    dt = datetime.fromisoformat(iso_str)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def make_arm_key(backend: str, model: str) -> str:
    """Build the composite "backend:model" arm key."""
    return f"{backend}:{model}"


def backend_of(arm_key: str) -> str:
    """Backend part of an arm key. Model ids may contain ':' themselves."""
    return arm_key.split(":", 1)[0]


@dataclass
class Arm:
    """Performance record for a backend/model combination.

    Attributes:
        n: Number of observations folded in
        avg_latency: Running mean of call duration in milliseconds
        success_rate: Running mean of the success indicator (0-1)
        reward: Derived score (0-1), see compute_reward
        last_used: Time of the most recent observation
    """

    n: int = 0
    avg_latency: float = 0.0
    success_rate: float = 0.0
    reward: float = constants.COLD_REWARD
    last_used: Optional[datetime] = None

    def is_cold(self, threshold: Optional[int] = None) -> bool:
        """True while the arm has too few samples for its reward to be trusted."""
        if threshold is None:
            threshold = constants.COLD_THRESHOLD
        return self.n < threshold

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "n": self.n,
            "avg_latency": self.avg_latency,
            "success_rate": self.success_rate,
            "reward": self.reward,
        }
        if self.last_used is not None:
            data["last_used"] = self.last_used.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Arm":
        return cls(
            n=int(data.get("n", 0)),
            avg_latency=float(data.get("avg_latency", 0.0)),
            success_rate=float(data.get("success_rate", 0.0)),
            reward=float(data.get("reward", constants.COLD_REWARD)),
            last_used=_parse_datetime(data.get("last_used")),
        )


BanditState = Dict[str, Arm]


class ArmStore:
    """Bandit state persisted as one document, replaced wholesale on save."""

    def __init__(self, store: DocumentStore):
        self.store = store

    @classmethod
    def default(cls, config_dir: Optional[Path] = None) -> "ArmStore":
        """Arm store backed by bandit.json in the user config directory."""
        if config_dir is None:
            from coge.config import get_config_dir

            config_dir = get_config_dir()
        return cls(JsonDocumentStore(Path(config_dir) / BANDIT_FILENAME))

    def load(self) -> BanditState:
        """Load every arm. A missing document yields an empty state."""
        document = self.store.load()
        try:
            return {key: Arm.from_dict(record) for key, record in document.items()}
        except (AttributeError, TypeError, ValueError) as e:
            raise StoreReadError(store_location(self.store), f"malformed arm record ({e})")

    def save(self, state: BanditState) -> None:
        self.store.save({key: arm.to_dict() for key, arm in state.items()})


def compute_reward(state: BanditState) -> None:
    """Recalculate reward for every arm in place.

    reward = success_rate * (LATENCY_FLOOR + (1 - LATENCY_FLOOR) * normalized_speed)

    Speed is normalized against the current fastest and slowest arms, so a
    change to one arm can shift every other arm's reward.
    """
    if not state:
        return

    latencies = [arm.avg_latency for arm in state.values()]
    min_lat = min(latencies)
    max_lat = max(latencies)
    floor = constants.LATENCY_FLOOR

    for arm in state.values():
        if max_lat == min_lat:
            normalized = 1.0
        else:
            normalized = (max_lat - arm.avg_latency) / (max_lat - min_lat)
        arm.reward = arm.success_rate * (floor + (1 - floor) * normalized)


def apply_decay(state: BanditState, now: Optional[datetime] = None) -> None:
    """Pull rewards of arms unused for a while toward the neutral prior, in place.

    Arms idle for more than DECAY_START_DAYS drift linearly toward
    COLD_REWARD and reach it after a further DECAY_DURATION_DAYS. Arms with
    no last_used are left untouched.
    """
    current = now or _utc_now()
    for arm in state.values():
        if arm.last_used is None:
            continue
        days_old = (current - arm.last_used).total_seconds() / 86400
        if days_old > constants.DECAY_START_DAYS:
            fraction = min((days_old - constants.DECAY_START_DAYS) / constants.DECAY_DURATION_DAYS, 1.0)
            arm.reward = arm.reward + (constants.COLD_REWARD - arm.reward) * fraction


def select_arms(
    state: BanditState,
    candidates: Sequence[str],
    n: int = 3,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    epsilon: Optional[float] = None,
) -> List[str]:
    """Epsilon-greedy selection of up to n distinct arms.

    Slot 1 exploits the best-ranked arm with probability 1 - epsilon and
    otherwise picks uniformly at random. Slots 2..n are uniformly random
    among the remaining candidates. Cold arms rank with COLD_REWARD.

    Decay is applied to a private copy of the state, so the caller's
    state and anything later persisted from it are unaffected.

    Args:
        state: Bandit state (not mutated)
        candidates: Arm keys to choose from; duplicates are collapsed
        n: How many arms to select
        rng: Randomness source (seedable for tests)
        now: Reference time for decay
        epsilon: Exploration probability, defaults to constants.EPSILON

    Returns:
        Selected arm keys, best/explore pick first
    """
    unique = list(dict.fromkeys(candidates))
    if not unique or n <= 0:
        return []
    rng = rng or _default_rng
    if epsilon is None:
        epsilon = constants.EPSILON
    count = min(n, len(unique))

    decayed = copy.deepcopy(state)
    apply_decay(decayed, now)

    scored = []
    for key in unique:
        arm = decayed.get(key)
        reward = constants.COLD_REWARD if arm is None or arm.is_cold() else arm.reward
        scored.append((key, reward))

    remaining = list(scored)
    if rng.random() < 1 - epsilon:
        best_idx = 0
        for idx, (_, reward) in enumerate(remaining):
            if reward > remaining[best_idx][1]:
                best_idx = idx
        first = remaining.pop(best_idx)
        logger.debug("Exploit: picked %s (reward %.3f)", first[0], first[1])
    else:
        first = remaining.pop(rng.randrange(len(remaining)))
        logger.debug("Explore: picked %s (reward %.3f)", first[0], first[1])

    selected = [first[0]]
    for _ in range(1, count):
        selected.append(remaining.pop(rng.randrange(len(remaining)))[0])
    return selected


def select_race_providers(
    configured: Sequence[str],
    preferred: Optional[str],
    max_count: int = 3,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Random race selection used when there is nothing learned to rank on.

    Returns every configured backend when they fit. Otherwise keeps the
    preferred backend (first) if it is configured and fills the remaining
    slots from a uniform shuffle of the others.
    """
    if len(configured) <= max_count:
        return list(configured)
    rng = rng or _default_rng

    chosen_preferred = preferred if preferred in configured else None
    others = [name for name in configured if name != chosen_preferred]
    rng.shuffle(others)

    slots = max_count - 1 if chosen_preferred else max_count
    selected = others[:slots]
    if chosen_preferred:
        selected.insert(0, chosen_preferred)
    return selected


def update_arm(
    state: BanditState,
    arm_key: str,
    latency_ms: float,
    success: bool,
    now: Optional[datetime] = None,
) -> Arm:
    """Fold one observation into an arm (exact running means), then recompute rewards.

    Missing arms start at n=0, avg_latency=0, success_rate=0 and the neutral
    reward. Returns the updated arm.
    """
    if not math.isfinite(latency_ms) or latency_ms < 0:
        logger.warning("Invalid latency_ms=%s for %s, clamping to 0", latency_ms, arm_key)
        latency_ms = 0.0

    arm = state.get(arm_key)
    if arm is None:
        arm = Arm(n=0, avg_latency=0.0, success_rate=0.0, reward=constants.COLD_REWARD)
        state[arm_key] = arm

    arm.n += 1
    arm.avg_latency += (latency_ms - arm.avg_latency) / arm.n
    arm.success_rate += ((1.0 if success else 0.0) - arm.success_rate) / arm.n
    arm.last_used = now or _utc_now()

    compute_reward(state)
    return arm
