from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from taketwo.errors import NotFoundError, ValidationError
from taketwo.services.entry_store import PATCHABLE_FIELDS, EntryRecord


class MemoryEntryStore:
    """Keeps the active and deleted sets in process; used for tests and local demos."""

    def __init__(self, entries: list[EntryRecord] | None = None) -> None:
        self._active: dict[str, EntryRecord] = {}
        self._deleted: dict[str, EntryRecord] = {}
        for entry in entries or []:
            target = self._deleted if entry.is_deleted else self._active
            target[entry.id] = entry

    def list(self) -> list[EntryRecord]:
        return list(self._active.values())

    def list_deleted(self) -> list[EntryRecord]:
        return list(self._deleted.values())

    def get(self, entry_id: str) -> EntryRecord:
        entry = self._active.get(entry_id)
        if entry is None:
            raise NotFoundError(entry_id, 'active')
        return entry

    def get_deleted(self, entry_id: str) -> EntryRecord:
        entry = self._deleted.get(entry_id)
        if entry is None:
            raise NotFoundError(entry_id, 'deleted')
        return entry

    def create(self, entry: EntryRecord) -> EntryRecord:
        if entry.id in self._active or entry.id in self._deleted:
            raise ValidationError('duplicate-entry', [entry.id])
        self._active[entry.id] = entry
        return entry

    def update(self, entry_id: str, patch: dict[str, Any]) -> EntryRecord:
        current = self.get(entry_id)
        unknown = sorted(set(patch) - PATCHABLE_FIELDS)
        if unknown:
            raise ValidationError('invalid-edit', unknown)
        updated = replace(current, **patch)
        self._active[entry_id] = updated
        return updated

    def soft_delete(self, entry_id: str, *, deleted_at: datetime) -> None:
        entry = self._active.pop(entry_id, None)
        if entry is None:
            raise NotFoundError(entry_id, 'active')
        self._deleted[entry_id] = replace(entry, deleted_at=deleted_at)

    def restore(self, entry_id: str) -> None:
        entry = self._deleted.pop(entry_id, None)
        if entry is None:
            raise NotFoundError(entry_id, 'deleted')
        self._active[entry_id] = replace(entry, deleted_at=None)

    def permanent_delete(self, entry_id: str) -> None:
        if self._deleted.pop(entry_id, None) is None:
            raise NotFoundError(entry_id, 'deleted')
