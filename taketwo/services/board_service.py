"""Local working copy of the entry lists for a dashboard session.

The board mirrors the store's active and deleted sets, applies changes
optimistically and puts the previous lists back when the store call fails.
A rejected credential or a logout empties it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

from taketwo.errors import NotFoundError, TransportError
from taketwo.models import EntryStatus
from taketwo.services.entry_service import EntryLifecycleManager
from taketwo.services.entry_store import EntryDraft, EntryRecord
from taketwo.services.workflow_service import ReleaseForm, ServiceDetails

logger = logging.getLogger(__name__)


class EntryBoard:
    def __init__(
        self,
        manager: EntryLifecycleManager,
        *,
        on_logout: Callable[[], None] | None = None,
    ) -> None:
        self.manager = manager
        self.on_logout = on_logout
        self.active: list[EntryRecord] = []
        self.deleted: list[EntryRecord] = []

    def refresh(self) -> None:
        with self._guard():
            active = self.manager.list_active()
            deleted = self.manager.list_deleted()
        self.active, self.deleted = active, deleted

    def clear(self) -> None:
        self.active = []
        self.deleted = []

    def logout(self) -> None:
        self.clear()
        if self.on_logout:
            self.on_logout()

    def by_status(self, status: EntryStatus) -> list[EntryRecord]:
        return [entry for entry in self.active if entry.status == status]

    def _find(self, rows: list[EntryRecord], entry_id: str, where: str) -> EntryRecord:
        for entry in rows:
            if entry.id == entry_id:
                return entry
        raise NotFoundError(entry_id, where)

    def _put(self, entry: EntryRecord) -> None:
        self.active = [entry if row.id == entry.id else row for row in self.active]

    @contextmanager
    def _guard(self) -> Iterator[None]:
        snapshot = (list(self.active), list(self.deleted))
        try:
            yield
        except TransportError as exc:
            self.active, self.deleted = snapshot
            if exc.credential_rejected:
                logger.info('Credential rejected; clearing local entries')
                self.clear()
            raise
        except Exception:
            self.active, self.deleted = snapshot
            raise

    def create(self, draft: EntryDraft) -> EntryRecord:
        with self._guard():
            entry = self.manager.create(draft)
            self.active.append(entry)
        return entry

    def edit(self, entry_id: str, patch: dict[str, Any]) -> EntryRecord:
        with self._guard():
            current = self._find(self.active, entry_id, 'active')
            self._put(replace(current, **patch))
            entry = self.manager.edit(entry_id, patch)
            self._put(entry)
        return entry

    def release(self, entry_id: str, details: ServiceDetails, form: ReleaseForm) -> EntryRecord:
        with self._guard():
            entry = self.manager.release(entry_id, details, form)
            self._put(entry)
        return entry

    def mark_done(self, entry_id: str) -> EntryRecord:
        with self._guard():
            entry = self.manager.mark_done(entry_id)
            self._put(entry)
        return entry

    def soft_delete(self, entry_id: str) -> None:
        with self._guard():
            entry = self._find(self.active, entry_id, 'active')
            self.active = [row for row in self.active if row.id != entry_id]
            self.deleted.append(entry)
            self.manager.soft_delete(entry_id)

    def restore(self, entry_id: str) -> EntryRecord:
        with self._guard():
            entry = self._find(self.deleted, entry_id, 'deleted')
            self.deleted = [row for row in self.deleted if row.id != entry_id]
            self.active.append(replace(entry, deleted_at=None))
            restored = self.manager.restore(entry_id)
            self._put(restored)
        return restored

    def permanent_delete(self, entry_id: str) -> None:
        with self._guard():
            self._find(self.deleted, entry_id, 'deleted')
            self.deleted = [row for row in self.deleted if row.id != entry_id]
            self.manager.permanent_delete(entry_id)
