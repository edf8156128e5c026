from __future__ import annotations


class TakeTwoError(Exception):
    """Base class for errors raised by the entry workflow and its collaborators."""


class ValidationError(TakeTwoError, ValueError):
    """A client-side rule violation.

    Carries every violated rule identifier so callers can show all outstanding
    issues at once instead of one message at a time.
    """

    def __init__(self, kind: str, violations: list[str] | tuple[str, ...]):
        self.kind = kind
        self.violations = list(violations)
        super().__init__(f'{kind}: {", ".join(self.violations)}')


class NotFoundError(TakeTwoError, LookupError):
    def __init__(self, entry_id: str, where: str = 'active'):
        self.entry_id = entry_id
        self.where = where
        super().__init__(f'Entry {entry_id} not found in {where} entries')


class TransportError(TakeTwoError):
    """An external collaborator call failed or answered with a non-success status."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)

    @property
    def credential_rejected(self) -> bool:
        return self.status in {401, 403}
