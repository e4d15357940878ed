"""Usage telemetry for generated commands."""

from coge.observability.usage_stats import ACTIONS, UsageEntry, UsageStatsRecorder

__all__ = ["ACTIONS", "UsageEntry", "UsageStatsRecorder"]
