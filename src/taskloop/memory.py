# memory.py
# Two key/value memory tiers with different lifecycles.
#
#   EphemeralMemory: bounded, in-process window. Evicts FIFO-on-write.
#   DurableMemory:   JSON file on disk. Mutations are in-memory until
#                     persist(); a dirty flag tracks unsaved changes.
#
# Both are safe to share between agents and capability worker threads.

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Any, Mapping, Protocol, runtime_checkable

from pydantic import BaseModel

from taskloop.errors import PersistenceError

logger = logging.getLogger(__name__)


class MemoryEntry(BaseModel):
    key: str
    value: Any = None


class MemoryStats(BaseModel):
    entry_count: int
    is_dirty: bool
    storage_path: str


@runtime_checkable
class MemoryStore(Protocol):
    """The operations every memory tier supports."""

    def save(self, key: str, value: Any) -> None: ...

    def get(self, key: str) -> Any | None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def keys(self) -> list[str]: ...


# ---------------------------------------------------------------------------
# Ephemeral
# ---------------------------------------------------------------------------


class EphemeralMemory:
    """
    Fixed-capacity window ordered by write time.

    Saving a key (new or existing) makes it the most recent. Reads never
    change the order. When a save pushes the size past max_size, the oldest
    written keys are evicted until the store fits again.
    """

    def __init__(self, max_size: int = 100) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}.")
        self._max_size = max_size
        self._store: OrderedDict[str, Any] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    def save(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            self._store[key] = value
            while len(self._store) > self._max_size:
                evicted, _ = self._store.popitem(last=False)
                logger.debug("Evicted %r from ephemeral memory", evicted)

    def get(self, key: str) -> Any | None:
        return self._store.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._store)

    def get_recent(self, count: int) -> list[MemoryEntry]:
        """The `count` most recently saved entries, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            recent = list(self._store.items())[-count:]
        return [MemoryEntry(key=key, value=value) for key, value in recent]

    def size(self) -> int:
        return len(self._store)

    def __len__(self) -> int:
        return len(self._store)


# ---------------------------------------------------------------------------
# Durable
# ---------------------------------------------------------------------------


class DurableMemory:
    """
    File-backed store holding a single JSON object of key -> value.

    Call load() before use to pick up existing data. Nothing reaches disk
    until persist() (or dispose(), or the autosave thread when
    autosave_interval > 0 seconds).

    Example:
        with DurableMemory("./data/memory.json", autosave_interval=30) as memory:
            memory.load()
            memory.save("user:1", {"name": "Ada"})
        # dispose() ran on exit and flushed the dirty entry
    """

    def __init__(self, storage_path: str | os.PathLike[str], autosave_interval: float = 0.0) -> None:
        self._path = Path(storage_path)
        self._store: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._dirty = False
        self._version = 0

        self._autosave_interval = autosave_interval
        self._stop = threading.Event()
        self._autosave_thread: threading.Thread | None = None
        if autosave_interval > 0:
            self._autosave_thread = threading.Thread(
                target=self._autosave_loop,
                name=f"taskloop-autosave:{self._path.name}",
                daemon=True,
            )
            self._autosave_thread.start()

    # ------------------------------------------------------------------
    # Disk I/O
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Replace the in-memory map with the file's contents.

        A missing file means an empty store. An unreadable or malformed file
        is logged and also yields an empty store; load() never raises for
        either case.
        """
        data: dict[str, Any] = {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not read memory file %s: %s. Starting empty.", self._path, exc)
        else:
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as exc:
                logger.warning("Memory file %s is not valid JSON (%s). Starting empty.", self._path, exc)
            else:
                if isinstance(parsed, dict):
                    data = parsed
                else:
                    logger.warning(
                        "Memory file %s holds a %s, expected an object. Starting empty.",
                        self._path,
                        type(parsed).__name__,
                    )

        with self._lock:
            self._store = data
            self._dirty = False
            self._version += 1

    def persist(self) -> None:
        """
        Write the whole map to disk and clear the dirty flag.

        The file is written to a temporary sibling and renamed over the
        target, so a reader sees either the old or the new complete file.
        Raises PersistenceError on any failure.
        """
        with self._lock:
            snapshot = dict(self._store)
            version = self._version

        try:
            payload = json.dumps(snapshot, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Memory contents are not JSON-serialisable: {exc}") from exc

        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            raise PersistenceError(f"Could not write memory file {self._path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temporary file %s", tmp_name)

        with self._lock:
            # Mutations made while writing stay dirty.
            if self._version == version:
                self._dirty = False

        logger.debug("Persisted %d memory entries to %s", len(snapshot), self._path)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _touch(self) -> None:
        self._dirty = True
        self._version += 1

    def save(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = value
            self._touch()

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)
            self._touch()

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._touch()

    def import_data(self, data: Mapping[str, Any]) -> None:
        """Merge data into the store; existing keys are overwritten."""
        with self._lock:
            self._store.update(data)
            self._touch()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        return self._store.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._store)

    def search(self, pattern: str | re.Pattern[str]) -> list[str]:
        """Keys matching pattern anywhere (re.search semantics)."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return [key for key in self.keys() if regex.search(key)]

    def get_all(self) -> list[MemoryEntry]:
        with self._lock:
            items = list(self._store.items())
        return [MemoryEntry(key=key, value=value) for key, value in items]

    def export_data(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._store)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def storage_path(self) -> Path:
        return self._path

    def get_stats(self) -> MemoryStats:
        with self._lock:
            return MemoryStats(
                entry_count=len(self._store),
                is_dirty=self._dirty,
                storage_path=str(self._path),
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _autosave_loop(self) -> None:
        while not self._stop.wait(self._autosave_interval):
            if not self._dirty:
                continue
            try:
                self.persist()
            except PersistenceError:
                logger.exception("Autosave of %s failed; will retry on the next tick.", self._path)

    def dispose(self) -> None:
        """Stop autosave and flush once if there are unsaved changes."""
        self._stop.set()
        if self._autosave_thread is not None:
            self._autosave_thread.join()
            self._autosave_thread = None
        if self._dirty:
            self.persist()

    def __enter__(self) -> "DurableMemory":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
