"""Tests for the epsilon-greedy bandit.

Tests cover:
- Arm: defaults, cold detection, serialization
- compute_reward / apply_decay: the reward model
- update_arm: running means and reward recomputation
- select_arms / select_race_providers: selection behavior
- ArmStore: persistence through document stores
"""

import json
import random
from datetime import datetime, timedelta, timezone

import pytest

from coge.routing.bandit import (
    Arm,
    ArmStore,
    apply_decay,
    backend_of,
    compute_reward,
    make_arm_key,
    select_arms,
    select_race_providers,
    update_arm,
)
from coge.storage.json_store import InMemoryStore, JsonDocumentStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def warm(reward, avg_latency=500.0, success_rate=1.0, n=5, last_used=None):
    return Arm(n=n, avg_latency=avg_latency, success_rate=success_rate, reward=reward, last_used=last_used)


class TestArmKeys:
    def test_make_arm_key(self):
        assert make_arm_key("groq", "llama-3.3-70b-versatile") == "groq:llama-3.3-70b-versatile"

    def test_backend_of_keeps_colons_in_model(self):
        key = make_arm_key("openrouter", "meta-llama/llama-3.3-70b-instruct:free")
        assert backend_of(key) == "openrouter"


class TestArm:
    """Tests for the Arm dataclass."""

    def test_defaults(self):
        arm = Arm()
        assert arm.n == 0
        assert arm.avg_latency == 0.0
        assert arm.success_rate == 0.0
        assert arm.reward == 0.5
        assert arm.last_used is None

    def test_is_cold_below_threshold(self):
        assert Arm(n=2).is_cold()
        assert not Arm(n=3).is_cold()
        assert not Arm(n=2).is_cold(threshold=2)

    def test_to_dict_omits_missing_last_used(self):
        data = Arm(n=1, avg_latency=100.0, success_rate=1.0, reward=1.0).to_dict()
        assert data == {"n": 1, "avg_latency": 100.0, "success_rate": 1.0, "reward": 1.0}

    def test_from_dict_parses_zulu_timestamp(self):
        arm = Arm.from_dict({"n": 4, "avg_latency": 250, "success_rate": 0.75, "reward": 0.6,
                             "last_used": "2025-06-01T12:00:00.000Z"})
        assert arm.n == 4
        assert arm.avg_latency == 250.0
        assert arm.last_used == NOW

    def test_from_dict_fills_missing_fields(self):
        arm = Arm.from_dict({})
        assert arm.n == 0
        assert arm.reward == 0.5
        assert arm.last_used is None

    def test_round_trip(self):
        arm = warm(0.8, last_used=NOW)
        assert Arm.from_dict(arm.to_dict()) == arm


class TestComputeReward:
    """Tests for the latency-normalized reward."""

    def test_empty_state_is_noop(self):
        state = {}
        compute_reward(state)
        assert state == {}

    def test_single_arm_gets_full_speed_credit(self):
        state = {"a:m": Arm(n=4, avg_latency=900.0, success_rate=0.75)}
        compute_reward(state)
        assert state["a:m"].reward == pytest.approx(0.75)

    def test_fastest_and_slowest(self):
        state = {
            "fast:m": Arm(n=5, avg_latency=100.0, success_rate=1.0),
            "mid:m": Arm(n=5, avg_latency=200.0, success_rate=1.0),
            "slow:m": Arm(n=5, avg_latency=300.0, success_rate=1.0),
        }
        compute_reward(state)
        assert state["fast:m"].reward == pytest.approx(1.0)
        assert state["mid:m"].reward == pytest.approx(0.65)
        assert state["slow:m"].reward == pytest.approx(0.3)

    def test_unreliable_arm_scaled_by_success_rate(self):
        state = {
            "fast:m": Arm(n=5, avg_latency=100.0, success_rate=0.5),
            "slow:m": Arm(n=5, avg_latency=300.0, success_rate=1.0),
        }
        compute_reward(state)
        assert state["fast:m"].reward == pytest.approx(0.5)
        assert state["slow:m"].reward == pytest.approx(0.3)

    def test_equal_latencies_normalize_to_one(self):
        state = {
            "a:m": Arm(n=5, avg_latency=400.0, success_rate=1.0),
            "b:m": Arm(n=5, avg_latency=400.0, success_rate=0.2),
        }
        compute_reward(state)
        assert state["a:m"].reward == pytest.approx(1.0)
        assert state["b:m"].reward == pytest.approx(0.2)


class TestApplyDecay:
    """Tests for time decay toward the neutral prior."""

    def test_recent_arm_untouched(self):
        state = {"a:m": warm(0.9, last_used=NOW - timedelta(days=7))}
        apply_decay(state, NOW)
        assert state["a:m"].reward == pytest.approx(0.9)

    def test_halfway_through_decay(self):
        state = {"a:m": warm(1.0, last_used=NOW - timedelta(days=22))}
        apply_decay(state, NOW)
        assert state["a:m"].reward == pytest.approx(0.75)

    def test_fully_decayed_reaches_prior(self):
        state = {
            "high:m": warm(1.0, last_used=NOW - timedelta(days=40)),
            "low:m": warm(0.1, last_used=NOW - timedelta(days=400)),
        }
        apply_decay(state, NOW)
        assert state["high:m"].reward == pytest.approx(0.5)
        assert state["low:m"].reward == pytest.approx(0.5)

    def test_low_reward_rises_toward_prior(self):
        state = {"a:m": warm(0.1, last_used=NOW - timedelta(days=22))}
        apply_decay(state, NOW)
        assert state["a:m"].reward == pytest.approx(0.3)

    def test_never_used_arm_untouched(self):
        state = {"a:m": warm(0.9)}
        apply_decay(state, NOW)
        assert state["a:m"].reward == 0.9


class TestUpdateArm:
    """Tests for folding observations into the state."""

    def test_creates_missing_arm(self):
        state = {}
        arm = update_arm(state, "groq:m", 420.0, True, now=NOW)

        assert state["groq:m"] is arm
        assert arm.n == 1
        assert arm.avg_latency == 420.0
        assert arm.success_rate == 1.0
        assert arm.reward == pytest.approx(1.0)
        assert arm.last_used == NOW

    def test_first_failure(self):
        state = {}
        arm = update_arm(state, "groq:m", 50.0, False, now=NOW)
        assert arm.n == 1
        assert arm.success_rate == 0.0
        assert arm.reward == 0.0

    def test_running_means_are_exact(self):
        state = {}
        update_arm(state, "a:m", 100.0, True, now=NOW)
        update_arm(state, "a:m", 300.0, False, now=NOW)
        arm = update_arm(state, "a:m", 200.0, True, now=NOW)

        assert arm.n == 3
        assert arm.avg_latency == pytest.approx(200.0)
        assert arm.success_rate == pytest.approx(2 / 3)

    def test_recomputes_every_reward(self):
        state = {"slow:m": Arm(n=5, avg_latency=300.0, success_rate=1.0, reward=1.0)}
        update_arm(state, "fast:m", 100.0, True, now=NOW)

        assert state["fast:m"].reward == pytest.approx(1.0)
        assert state["slow:m"].reward == pytest.approx(0.3)

    def test_sets_last_used_now_by_default(self):
        state = {}
        before = datetime.now(timezone.utc)
        arm = update_arm(state, "a:m", 100.0, True)
        assert arm.last_used >= before

    @pytest.mark.parametrize("latency", [-5.0, float("nan"), float("inf")])
    def test_invalid_latency_clamped(self, latency):
        state = {}
        arm = update_arm(state, "a:m", latency, True, now=NOW)
        assert arm.avg_latency == 0.0


class TestSelectArms:
    """Tests for epsilon-greedy selection."""

    def test_empty_candidates(self):
        assert select_arms({}, [], n=3) == []

    def test_zero_slots(self):
        assert select_arms({}, ["a:m"], n=0) == []

    def test_returns_all_candidates_when_fewer_than_n(self):
        chosen = select_arms({}, ["a:m", "b:m"], n=3, rng=random.Random(1))
        assert sorted(chosen) == ["a:m", "b:m"]

    def test_duplicates_collapsed(self):
        chosen = select_arms({}, ["a:m", "a:m", "b:m"], n=3, rng=random.Random(1))
        assert len(chosen) == 2
        assert set(chosen) == {"a:m", "b:m"}

    def test_selection_is_distinct_subset(self):
        candidates = [f"b{i}:m" for i in range(8)]
        chosen = select_arms({}, candidates, n=3, rng=random.Random(7))
        assert len(chosen) == 3
        assert len(set(chosen)) == 3
        assert set(chosen) <= set(candidates)

    def test_exploit_picks_highest_reward_first(self):
        state = {"a:m": warm(0.2), "b:m": warm(0.9), "c:m": warm(0.6)}
        chosen = select_arms(state, ["a:m", "b:m", "c:m"], n=2, rng=random.Random(3), epsilon=0.0)
        assert chosen[0] == "b:m"

    def test_cold_arm_ranks_at_prior(self):
        state = {"cold:m": warm(0.99, n=1), "warm:m": warm(0.6)}
        chosen = select_arms(state, ["cold:m", "warm:m"], n=1, rng=random.Random(0), epsilon=0.0)
        assert chosen == ["warm:m"]

    def test_unknown_arm_ranks_at_prior(self):
        state = {"warm:m": warm(0.4)}
        chosen = select_arms(state, ["warm:m", "new:m"], n=1, rng=random.Random(0), epsilon=0.0)
        assert chosen == ["new:m"]

    def test_ties_keep_candidate_order(self):
        chosen = select_arms({}, ["x:m", "y:m", "z:m"], n=1, rng=random.Random(0), epsilon=0.0)
        assert chosen == ["x:m"]

    def test_decay_used_for_ranking_but_not_persisted(self):
        state = {
            "stale:m": warm(0.9, last_used=NOW - timedelta(days=60)),
            "fresh:m": warm(0.6, last_used=NOW - timedelta(days=1)),
        }
        chosen = select_arms(state, ["stale:m", "fresh:m"], n=1, rng=random.Random(0), now=NOW, epsilon=0.0)

        assert chosen == ["fresh:m"]
        assert state["stale:m"].reward == 0.9

    def test_full_exploration_reaches_every_arm(self):
        state = {"a:m": warm(0.9), "b:m": warm(0.1), "c:m": warm(0.1)}
        rng = random.Random(11)
        firsts = {select_arms(state, ["a:m", "b:m", "c:m"], n=1, rng=rng, epsilon=1.0)[0] for _ in range(200)}
        assert firsts == {"a:m", "b:m", "c:m"}

    def test_best_arm_first_about_ninety_percent(self):
        """Over many seeded draws the best arm leads roughly (1 - e) + e / k of the time."""
        state = {"best:m": warm(0.95), "b:m": warm(0.4), "c:m": warm(0.3)}
        rng = random.Random(2024)
        trials = 2000
        best_first = sum(
            select_arms(state, ["b:m", "best:m", "c:m"], n=3, rng=rng)[0] == "best:m" for _ in range(trials)
        )
        # expected 0.9 + 0.1 / 3
        assert 0.90 <= best_first / trials <= 0.97

    def test_warm_arm_beats_cold_arm_most_of_the_time(self):
        state = {"warm:m": warm(0.99, n=100)}
        rng = random.Random(99)
        trials = 500
        warm_first = sum(select_arms(state, ["cold:m", "warm:m"], n=1, rng=rng) == ["warm:m"] for _ in range(trials))
        assert 0.85 <= warm_first / trials <= 1.0

    def test_uses_epsilon_constant(self, monkeypatch):
        from coge.core import constants

        monkeypatch.setattr(constants, "EPSILON", 0.0)
        state = {"a:m": warm(0.1), "b:m": warm(0.9)}
        rng = random.Random(5)
        assert all(select_arms(state, ["a:m", "b:m"], n=1, rng=rng) == ["b:m"] for _ in range(50))


class TestSelectRaceProviders:
    """Tests for random race selection."""

    def test_returns_all_when_they_fit(self):
        assert select_race_providers(["groq", "gemini"], "gemini", max_count=3) == ["groq", "gemini"]

    def test_empty(self):
        assert select_race_providers([], "gemini") == []

    def test_preferred_kept_first(self):
        configured = ["a", "b", "c", "d", "e"]
        for seed in range(20):
            chosen = select_race_providers(configured, "d", max_count=3, rng=random.Random(seed))
            assert chosen[0] == "d"
            assert len(chosen) == 3
            assert len(set(chosen)) == 3

    def test_unconfigured_preferred_ignored(self):
        configured = ["a", "b", "c", "d"]
        chosen = select_race_providers(configured, "zzz", max_count=3, rng=random.Random(4))
        assert len(chosen) == 3
        assert set(chosen) <= set(configured)


class TestArmStore:
    """Tests for bandit state persistence."""

    def test_missing_document_is_empty_state(self):
        assert ArmStore(InMemoryStore()).load() == {}

    def test_save_and_load(self):
        backing = InMemoryStore()
        store = ArmStore(backing)
        state = {"groq:m": warm(0.7, last_used=NOW)}

        store.save(state)

        assert store.load() == state
        assert backing.document["groq:m"]["n"] == 5

    def test_json_layout(self, tmp_path):
        store = ArmStore(JsonDocumentStore(tmp_path / "bandit.json"))
        store.save({"groq:m": Arm(n=1, avg_latency=120.0, success_rate=1.0, reward=1.0, last_used=NOW)})

        data = json.loads((tmp_path / "bandit.json").read_text(encoding="utf-8"))
        assert data == {
            "groq:m": {
                "n": 1,
                "avg_latency": 120.0,
                "success_rate": 1.0,
                "reward": 1.0,
                "last_used": "2025-06-01T12:00:00+00:00",
            }
        }

    def test_default_location(self, tmp_path):
        store = ArmStore.default(tmp_path)
        assert store.store.path == tmp_path / "bandit.json"

    def test_default_uses_config_dir(self, config_dir):
        assert ArmStore.default().store.path == config_dir / "bandit.json"
