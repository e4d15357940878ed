"""Whole-document JSON persistence for per-user state files.

Each document (bandit state, usage stats, config) is read fully into
memory, mutated by the caller, and written back wholesale. There is no
locking: two processes saving at the same time lose one writer's update.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Protocol, Union

from coge.core.errors import StoreReadError, StoreWriteError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def store_location(store) -> str:
    """Where a document store keeps its data, for error messages."""
    path = getattr(store, "path", None)
    return str(path) if path is not None else type(store).__name__


class DocumentStore(Protocol):
    """Anything that can load and replace a whole JSON document."""

    def load(self) -> Document: ...

    def save(self, document: Document) -> None: ...


class JsonDocumentStore:
    """A single JSON document on disk.

    A missing file reads as an empty document. Every other read failure
    (permissions, corrupt JSON, a non-object top level) raises
    StoreReadError instead of silently starting fresh.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Document:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise StoreReadError(str(self.path), f"invalid JSON ({e})")
        except UnicodeDecodeError as e:
            raise StoreReadError(str(self.path), f"not UTF-8 text ({e})")
        except OSError as e:
            raise StoreReadError(str(self.path), str(e))

        if not isinstance(data, dict):
            raise StoreReadError(str(self.path), "top-level value must be an object")
        return data

    def save(self, document: Document) -> None:
        """Write the document, replacing prior contents.

        Writes to a sibling temp file first and renames it over the target
        so an interrupted write never leaves a truncated document behind.
        """
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.path)
        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.debug("Could not remove temp file %s", temp_path)
            raise StoreWriteError(str(self.path), str(e))
        logger.debug("Saved %d entries to %s", len(document), self.path)


class InMemoryStore:
    """Document store kept in process memory, for tests and dry runs."""

    def __init__(self, document: Document = None):
        self._document: Document = copy.deepcopy(document) if document else {}
        self.save_count = 0

    def load(self) -> Document:
        return copy.deepcopy(self._document)

    def save(self, document: Document) -> None:
        self._document = copy.deepcopy(document)
        self.save_count += 1

    @property
    def document(self) -> Document:
        return copy.deepcopy(self._document)
