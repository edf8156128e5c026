from __future__ import annotations

from datetime import datetime
from typing import Any

from taketwo.errors import NotFoundError, TransportError
from taketwo.schemas import EntryCreate, EntryOut, EntryUpdate
from taketwo.services.api_client import ApiClient
from taketwo.services.entry_store import EntryRecord


class HttpEntryStore:
    """Entry persistence on a remote backend reached over REST."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def _records(self, rows) -> list[EntryRecord]:
        return [EntryOut.model_validate(row).to_record() for row in rows or []]

    def _call(self, method: str, path: str, payload: dict | None = None, *, entry_id: str, where: str):
        try:
            return self.client.request(method, path, payload)
        except TransportError as exc:
            if exc.status == 404:
                raise NotFoundError(entry_id, where) from exc
            raise

    def list(self) -> list[EntryRecord]:
        return self._records(self.client.request('GET', '/entries'))

    def list_deleted(self) -> list[EntryRecord]:
        return self._records(self.client.request('GET', '/entries/deleted'))

    def get(self, entry_id: str) -> EntryRecord:
        for entry in self.list():
            if entry.id == entry_id:
                return entry
        raise NotFoundError(entry_id, 'active')

    def get_deleted(self, entry_id: str) -> EntryRecord:
        for entry in self.list_deleted():
            if entry.id == entry_id:
                return entry
        raise NotFoundError(entry_id, 'deleted')

    def create(self, entry: EntryRecord) -> EntryRecord:
        # The backend assigns its own id and timestamps.
        payload = EntryCreate.from_record(entry).model_dump(mode='json', by_alias=True)
        return EntryOut.model_validate(self.client.request('POST', '/entries', payload)).to_record()

    def update(self, entry_id: str, patch: dict[str, Any]) -> EntryRecord:
        payload = EntryUpdate.from_patch(patch).model_dump(mode='json', by_alias=True, exclude_unset=True)
        row = self._call('PATCH', f'/entries/{entry_id}', payload, entry_id=entry_id, where='active')
        return EntryOut.model_validate(row).to_record()

    def soft_delete(self, entry_id: str, *, deleted_at: datetime) -> None:
        self._call('DELETE', f'/entries/{entry_id}', entry_id=entry_id, where='active')

    def restore(self, entry_id: str) -> None:
        self._call('POST', f'/entries/{entry_id}/restore', entry_id=entry_id, where='deleted')

    def permanent_delete(self, entry_id: str) -> None:
        self._call('DELETE', f'/entries/{entry_id}/permanent', entry_id=entry_id, where='deleted')
