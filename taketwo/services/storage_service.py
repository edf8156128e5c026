from __future__ import annotations

import asyncio
import base64
import logging
import re
import uuid
from collections.abc import Awaitable, Iterable
from pathlib import Path

from taketwo.config import settings
from taketwo.errors import ValidationError

logger = logging.getLogger(__name__)

INVALID_UPLOAD = 'invalid-upload'
UNSAFE_CHARS_RE = re.compile(r'[^A-Za-z0-9._-]+')

PHOTO_CONTENT_TYPES = {'image/jpeg', 'image/png', 'image/webp', 'image/heic', 'image/gif'}
WAIVER_CONTENT_TYPES = {'application/pdf'}


def safe_filename(filename: str) -> str:
    name = UNSAFE_CHARS_RE.sub('_', Path(filename or '').name).strip('._')
    return name or 'upload'


def _check_upload(filename: str, payload: bytes, content_type: str, allowed: set[str]) -> None:
    violations: list[str] = []
    if not payload:
        violations.append('empty-upload')
    elif len(payload) > settings.upload_max_bytes:
        violations.append('upload-too-large')
    if (content_type or '').split(';')[0].strip().lower() not in allowed:
        violations.append('unsupported-content-type')
    if violations:
        raise ValidationError(INVALID_UPLOAD, violations)


def store_upload(
    filename: str,
    payload: bytes,
    content_type: str,
    *,
    kind: str = 'photo',
    inline: bool | None = None,
    upload_dir: str | Path | None = None,
) -> str:
    """Persist an uploaded photo or waiver and return a stable reference.

    The reference is either a URL under the upload prefix or, in inline
    mode, a `data:` URI carrying the whole payload.
    """
    allowed = WAIVER_CONTENT_TYPES if kind == 'waiver' else PHOTO_CONTENT_TYPES
    _check_upload(filename, payload, content_type, allowed)

    if settings.upload_inline if inline is None else inline:
        encoded = base64.b64encode(payload).decode('ascii')
        return f'data:{content_type};base64,{encoded}'

    root = Path(upload_dir or settings.upload_dir) / kind
    root.mkdir(parents=True, exist_ok=True)
    stored_name = f'{uuid.uuid4().hex}_{safe_filename(filename)}'
    (root / stored_name).write_bytes(payload)
    logger.info('Stored %s upload %s (%d bytes)', kind, stored_name, len(payload))
    return f'{settings.upload_url_prefix.rstrip("/")}/{kind}/{stored_name}'


class PhotoSlots:
    """Photo references kept in the order the files were selected.

    Reads or uploads may finish in any order; each selected file reserves a
    slot up front and the finished reference lands in that slot.
    """

    def __init__(self, existing: Iterable[str] = ()) -> None:
        self._slots: dict[int, str | None] = {}
        self._next_slot = 0
        for reference in existing:
            self.resolve(self.reserve(), reference)

    def reserve(self) -> int:
        slot = self._next_slot
        self._next_slot += 1
        self._slots[slot] = None
        return slot

    def resolve(self, slot: int, reference: str) -> None:
        # A slot removed while its upload was in flight stays removed.
        if slot in self._slots:
            self._slots[slot] = reference

    def remove(self, slot: int) -> None:
        self._slots.pop(slot, None)

    @property
    def pending(self) -> int:
        return sum(1 for value in self._slots.values() if value is None)

    def references(self) -> list[str]:
        return [value for value in self._slots.values() if value is not None]


async def gather_uploads(slots: PhotoSlots, uploads: Iterable[Awaitable[str]]) -> list[str]:
    """Run uploads concurrently, filling slots in selection order."""
    reserved = [(slots.reserve(), upload) for upload in uploads]

    async def _run(slot: int, upload: Awaitable[str]) -> None:
        slots.resolve(slot, await upload)

    await asyncio.gather(*(_run(slot, upload) for slot, upload in reserved))
    return slots.references()
