from __future__ import annotations

from functools import lru_cache

from sqlalchemy.orm import Session

from taketwo.config import settings
from taketwo.services.api_client import ApiClient
from taketwo.services.entry_service import EntryLifecycleManager
from taketwo.services.entry_store import EntryStore
from taketwo.services.http_entry_store import HttpEntryStore
from taketwo.services.memory_entry_store import MemoryEntryStore
from taketwo.services.sql_entry_store import SqlEntryStore


@lru_cache(maxsize=1)
def _memory_store() -> MemoryEntryStore:
    return MemoryEntryStore()


def build_entry_store(db: Session | None = None) -> EntryStore:
    backend = settings.entry_store.strip().lower()
    if backend == 'memory':
        return _memory_store()
    if backend == 'http':
        return HttpEntryStore(ApiClient(token=settings.api_token))
    if db is None:
        raise ValueError('A database session is required when ENTRY_STORE=sql')
    return SqlEntryStore(db)


def build_lifecycle_manager(store: EntryStore) -> EntryLifecycleManager:
    return EntryLifecycleManager(store, soft_delete_statuses=settings.soft_delete_status_values)
