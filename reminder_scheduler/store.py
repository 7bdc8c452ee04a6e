# -*- coding: utf-8 -*-
"""
Persistence for parsed records and reminder state.

The state is stored as a handful of opaque keys (``records``, ``completed``,
``reminders``, ``fired``, ``reminder_history``, ``settings``). Each key is
validated on load; a missing or malformed key is treated as empty rather than
failing the load.
"""
from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
import threading
import typing as t
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from calendar_feed.models import CalendarRecord
from reminder_scheduler.models import CompletionMark, ReminderEntry, ReminderSettings, ReminderState


logger = logging.getLogger(__name__)

REMINDER_STATE_PATH = os.getenv("REMINDER_STATE_PATH", "~/.taskfeed/state.json")

_records_adapter = TypeAdapter(list[CalendarRecord])
_entries_adapter = TypeAdapter(dict[str, ReminderEntry])
_completed_adapter = TypeAdapter(dict[str, CompletionMark])
_history_adapter = TypeAdapter(list[str])
_settings_adapter = TypeAdapter(ReminderSettings)


@dataclass
class StoredState:
    """Everything the store keeps, as loaded."""
    records: list[CalendarRecord] = field(default_factory=list)
    settings: ReminderSettings = field(default_factory=ReminderSettings)
    reminder_state: ReminderState = field(default_factory=ReminderState)


def _load_key(blob: dict[str, t.Any], key: str, adapter: TypeAdapter, default: t.Any) -> t.Any:
    if key not in blob or blob[key] is None:
        return default
    try:
        return adapter.validate_python(blob[key])
    except ValidationError as e:
        logger.warning("Discarding malformed %r in stored state (%d error(s))", key, e.error_count())
        return default


def state_from_blob(blob: t.Any) -> StoredState:
    """Rebuild a :class:`StoredState` from decoded JSON, treating bad parts as empty."""
    if not isinstance(blob, dict):
        if blob is not None:
            logger.warning("Stored state is not an object, starting empty")
        return StoredState()

    return StoredState(
        records=_load_key(blob, "records", _records_adapter, []),
        settings=_load_key(blob, "settings", _settings_adapter, ReminderSettings()),
        reminder_state=ReminderState(
            reminders=_load_key(blob, "reminders", _entries_adapter, {}),
            fired=_load_key(blob, "fired", _entries_adapter, {}),
            history=frozenset(_load_key(blob, "reminder_history", _history_adapter, [])),
            completed=_load_key(blob, "completed", _completed_adapter, {}),
        ),
    )


def state_to_blob(state: StoredState) -> dict[str, t.Any]:
    """Serialize a :class:`StoredState` to JSON-compatible data."""
    reminder_state = state.reminder_state
    return {
        "records": _records_adapter.dump_python(state.records, mode="json"),
        "settings": _settings_adapter.dump_python(state.settings, mode="json"),
        "reminders": _entries_adapter.dump_python(reminder_state.reminders, mode="json"),
        "fired": _entries_adapter.dump_python(reminder_state.fired, mode="json"),
        "reminder_history": sorted(reminder_state.history),
        "completed": _completed_adapter.dump_python(reminder_state.completed, mode="json"),
    }


class StateStore(ABC):
    """Load/save of the stored state, plus an atomic read-modify-write unit."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @abstractmethod
    def _read_blob(self) -> t.Any:
        """Return the decoded stored data, or None when nothing was saved yet."""

    @abstractmethod
    def _write_blob(self, blob: dict[str, t.Any]) -> None:
        """Replace the stored data in one step."""

    def load(self) -> StoredState:
        """Return the last saved state. Never raises on corrupt data."""
        return state_from_blob(self._read_blob())

    def save(self, state: StoredState) -> None:
        self._write_blob(state_to_blob(state))

    @contextmanager
    def _exclusive(self) -> t.Iterator[None]:
        """Hold the store lock. Subclasses extend it to other processes."""
        with self._lock:
            yield

    @contextmanager
    def transaction(self) -> t.Iterator[StoredState]:
        """Load, let the caller modify, then save, holding the store lock throughout.

        Nothing is saved if the block raises.
        """
        with self._exclusive():
            state = self.load()
            yield state
            self.save(state)


class JsonFileStateStore(StateStore):
    """State kept in a single JSON file, replaced atomically on save.

    Transactions also take an exclusive ``flock`` on a sibling ``.lock`` file,
    so separate processes (the CLI and a running ``watch``) serialize their
    read-modify-write cycles on the same state file.
    """

    def __init__(self, path: t.Union[str, Path] = REMINDER_STATE_PATH) -> None:
        super().__init__()
        self.path = Path(path).expanduser()
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    @contextmanager
    def _exclusive(self) -> t.Iterator[None]:
        with super()._exclusive():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.lock_path, "a") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read_blob(self) -> t.Any:
        if not self.path.is_file():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read state file %s, starting empty: %s", self.path, e)
            return None

    def _write_blob(self, blob: dict[str, t.Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(blob, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class MemoryStateStore(StateStore):
    """
    A simple in-memory store.

    Data goes through the same JSON round trip as the file store.
    """

    def __init__(self, blob: t.Optional[dict[str, t.Any]] = None) -> None:
        super().__init__()
        self._blob: t.Optional[str] = json.dumps(blob) if blob is not None else None

    def _read_blob(self) -> t.Any:
        return json.loads(self._blob) if self._blob is not None else None

    def _write_blob(self, blob: dict[str, t.Any]) -> None:
        self._blob = json.dumps(blob)
