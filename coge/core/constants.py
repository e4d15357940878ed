"""Central tuning constants for coge.

Constants can be overridden via environment variables using the COGE_*
prefix convention. Call load_config() to re-read the environment.

Environment Variables:
    COGE_EPSILON - Exploration probability for the first race slot (default: 0.1)
    COGE_COLD_THRESHOLD - Samples before an arm's reward is trusted (default: 3)
    COGE_MAX_RACERS - Maximum backends raced per invocation (default: 3)
    COGE_STRAGGLER_TIMEOUT - Seconds before an unfinished call is abandoned (default: 60)
    COGE_BACKEND_TIMEOUT - HTTP timeout passed to backend clients (default: 60)
"""

import os

from coge.core.errors import InvalidConfigError

# =============================================================================
# Bandit Settings
# =============================================================================

# Probability that the first slot is picked at random instead of by reward
EPSILON: float = 0.1

# Arms with fewer samples than this rank with COLD_REWARD
COLD_THRESHOLD: int = 3

# Neutral prior: ranking reward of cold arms and the target of decay
COLD_REWARD: float = 0.5

# Days of inactivity before decay starts
DECAY_START_DAYS: float = 7.0

# Days over which a stale arm drifts fully back to COLD_REWARD
DECAY_DURATION_DAYS: float = 30.0

# Reward floor share for a reliable arm that is the slowest of the set
LATENCY_FLOOR: float = 0.3

# =============================================================================
# Race Settings
# =============================================================================

# Maximum number of backends raced per invocation
MAX_RACERS: int = 3

# Seconds an individual call may run before it is abandoned as failed
STRAGGLER_TIMEOUT: float = 60.0

# HTTP timeout handed to backend clients
BACKEND_TIMEOUT: float = 60.0


# =============================================================================
# Environment overrides
# =============================================================================

def _read_env_number(key: str, default, cast, kind: str):
    """Parse a non-negative number from the environment, or return default."""
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        parsed = cast(raw)
    except ValueError:
        raise InvalidConfigError(key, raw, f"expected {kind}")
    if not parsed >= 0:
        raise InvalidConfigError(key, raw, f"expected a non-negative {kind}")
    return parsed


def _get_env_int(key: str, default: int) -> int:
    return _read_env_number(key, default, int, "integer")


def _get_env_float(key: str, default: float) -> float:
    return _read_env_number(key, default, float, "number")


def load_config() -> None:
    """Reload constants from environment variables.

    Raises:
        InvalidConfigError: If any environment variable has an invalid value
    """
    global EPSILON, COLD_THRESHOLD, MAX_RACERS, STRAGGLER_TIMEOUT, BACKEND_TIMEOUT

    epsilon = _get_env_float("COGE_EPSILON", 0.1)
    if epsilon > 1:
        raise InvalidConfigError("COGE_EPSILON", epsilon, "must be between 0 and 1")
    max_racers = _get_env_int("COGE_MAX_RACERS", 3)
    if max_racers < 1:
        raise InvalidConfigError("COGE_MAX_RACERS", max_racers, "must be at least 1")

    EPSILON = epsilon
    COLD_THRESHOLD = _get_env_int("COGE_COLD_THRESHOLD", 3)
    MAX_RACERS = max_racers
    STRAGGLER_TIMEOUT = _get_env_float("COGE_STRAGGLER_TIMEOUT", 60.0)
    BACKEND_TIMEOUT = _get_env_float("COGE_BACKEND_TIMEOUT", 60.0)
