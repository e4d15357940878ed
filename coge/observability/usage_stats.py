"""Usage statistics: what users do with the commands each arm produced.

Counts execute / copy / cancel actions per "backend:model" arm. The counts
are purely observational; backend selection never reads them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from coge.core.errors import InvalidInputError, StoreReadError
from coge.routing.bandit import _parse_datetime
from coge.storage.json_store import DocumentStore, JsonDocumentStore, store_location

logger = logging.getLogger(__name__)

STATS_FILENAME = "stats.json"
ACTIONS = ("execute", "copy", "cancel")


@dataclass
class UsageEntry:
    """Action counters for one arm."""

    execute: int = 0
    copy: int = 0
    cancel: int = 0
    last_used: Optional[datetime] = None

    @property
    def total(self) -> int:
        return self.execute + self.copy + self.cancel

    @property
    def accept_rate(self) -> float:
        """Share of actions that kept the command (execute or copy), 0-1."""
        if self.total == 0:
            return 0.0
        return (self.execute + self.copy) / self.total

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"execute": self.execute, "copy": self.copy, "cancel": self.cancel}
        if self.last_used is not None:
            data["last_used"] = self.last_used.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageEntry":
        return cls(
            execute=int(data.get("execute", 0)),
            copy=int(data.get("copy", 0)),
            cancel=int(data.get("cancel", 0)),
            last_used=_parse_datetime(data.get("last_used")),
        )


class UsageStatsRecorder:
    """Records user actions into the usage stats document."""

    def __init__(self, store: DocumentStore):
        self.store = store

    @classmethod
    def default(cls, config_dir: Optional[Path] = None) -> "UsageStatsRecorder":
        """Recorder backed by stats.json in the user config directory."""
        if config_dir is None:
            from coge.config import get_config_dir

            config_dir = get_config_dir()
        return cls(JsonDocumentStore(Path(config_dir) / STATS_FILENAME))

    def load(self) -> Dict[str, UsageEntry]:
        document = self.store.load()
        try:
            return {key: UsageEntry.from_dict(record) for key, record in document.items()}
        except (AttributeError, TypeError, ValueError) as e:
            raise StoreReadError(store_location(self.store), f"malformed usage record ({e})")

    def record_action(self, arm_key: str, action: str) -> UsageEntry:
        """Increment one action counter for an arm and save.

        Raises:
            InvalidInputError: If action is not execute, copy or cancel
            StoreReadError / StoreWriteError: If the stats document cannot be read or written
        """
        if action not in ACTIONS:
            raise InvalidInputError("action", f"must be one of {', '.join(ACTIONS)}, got {action!r}")

        stats = self.load()
        entry = stats.setdefault(arm_key, UsageEntry())
        setattr(entry, action, getattr(entry, action) + 1)
        entry.last_used = datetime.now(timezone.utc)

        self.store.save({key: value.to_dict() for key, value in stats.items()})
        logger.debug("Recorded %s for %s", action, arm_key)
        return entry
