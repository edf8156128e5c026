from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from taketwo.auth import Principal, get_current_principal
from taketwo.db import get_db
from taketwo.dependencies import get_client_ip, get_entry_manager
from taketwo.models import EntryStatus
from taketwo.schemas import (
    AuditEntryOut,
    EntryCreate,
    EntryOut,
    EntryUpdate,
    ReleaseCheckResponse,
    ReleaseRequest,
    ServiceDetailsPayload,
)
from taketwo.services.audit_service import entry_history, log_audit
from taketwo.services.entry_service import EntryLifecycleManager, release_check
from taketwo.services.workflow_service import visible_questions

router = APIRouter(prefix='/entries', tags=['entries'])


def _audit(db: Session, request: Request, principal: Principal, action: str, entry_id: str, **metadata) -> None:
    log_audit(
        db,
        actor_principal_id=principal.id,
        action=action,
        entry_id=entry_id,
        ip=get_client_ip(request),
        metadata=metadata,
    )
    db.commit()


@router.get('', response_model=list[EntryOut])
def list_entries(
    status_filter: EntryStatus | None = Query(default=None, alias='status'),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    _: Principal = Depends(get_current_principal),
):
    return [EntryOut.from_record(entry) for entry in manager.list_active(status_filter)]


@router.get('/deleted', response_model=list[EntryOut])
def list_deleted_entries(
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    _: Principal = Depends(get_current_principal),
):
    return [EntryOut.from_record(entry) for entry in manager.list_deleted()]


@router.post('', response_model=EntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(
    payload: EntryCreate,
    request: Request,
    db: Session = Depends(get_db),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    principal: Principal = Depends(get_current_principal),
):
    entry = manager.create(payload.to_draft(), actor=principal.email)
    _audit(db, request, principal, 'ENTRY_CREATED', entry.id, total=str(entry.billing))
    return EntryOut.from_record(entry)


@router.get('/{entry_id}', response_model=EntryOut)
def get_entry(
    entry_id: str,
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    _: Principal = Depends(get_current_principal),
):
    return EntryOut.from_record(manager.get(entry_id))


@router.patch('/{entry_id}', response_model=EntryOut)
def update_entry(
    entry_id: str,
    payload: EntryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    principal: Principal = Depends(get_current_principal),
):
    patch = payload.to_patch()
    entry = manager.update(entry_id, patch)
    _audit(db, request, principal, 'ENTRY_UPDATED', entry_id, fields=sorted(patch), status=entry.status.value)
    return EntryOut.from_record(entry)


@router.post('/{entry_id}/release-check', response_model=ReleaseCheckResponse)
def check_release(
    entry_id: str,
    payload: ServiceDetailsPayload,
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    _: Principal = Depends(get_current_principal),
):
    manager.get(entry_id)
    details = payload.to_details()
    outstanding = release_check(details)['service_steps']
    return ReleaseCheckResponse(
        eligible=not outstanding,
        outstanding_steps=outstanding,
        visible_questions=list(visible_questions(details)),
    )


@router.post('/{entry_id}/release', response_model=EntryOut)
def release_entry(
    entry_id: str,
    payload: ReleaseRequest,
    request: Request,
    db: Session = Depends(get_db),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    principal: Principal = Depends(get_current_principal),
):
    entry = manager.release(entry_id, payload.service_details.to_details(), payload.to_form())
    _audit(db, request, principal, 'ENTRY_RELEASED', entry_id, after_photos=len(entry.after_photos))
    return EntryOut.from_record(entry)


@router.post('/{entry_id}/done', response_model=EntryOut)
def mark_entry_done(
    entry_id: str,
    request: Request,
    db: Session = Depends(get_db),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    principal: Principal = Depends(get_current_principal),
):
    entry = manager.mark_done(entry_id)
    _audit(db, request, principal, 'ENTRY_COMPLETED', entry_id)
    return EntryOut.from_record(entry)


@router.delete('/{entry_id}', status_code=status.HTTP_204_NO_CONTENT)
def soft_delete_entry(
    entry_id: str,
    request: Request,
    db: Session = Depends(get_db),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    principal: Principal = Depends(get_current_principal),
):
    manager.soft_delete(entry_id)
    _audit(db, request, principal, 'ENTRY_SOFT_DELETED', entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post('/{entry_id}/restore', response_model=EntryOut)
def restore_entry(
    entry_id: str,
    request: Request,
    db: Session = Depends(get_db),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    principal: Principal = Depends(get_current_principal),
):
    entry = manager.restore(entry_id)
    _audit(db, request, principal, 'ENTRY_RESTORED', entry_id, status=entry.status.value)
    return EntryOut.from_record(entry)


@router.delete('/{entry_id}/permanent', status_code=status.HTTP_204_NO_CONTENT)
def permanently_delete_entry(
    entry_id: str,
    request: Request,
    db: Session = Depends(get_db),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    principal: Principal = Depends(get_current_principal),
):
    manager.permanent_delete(entry_id)
    _audit(db, request, principal, 'ENTRY_PERMANENTLY_DELETED', entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get('/{entry_id}/history', response_model=list[AuditEntryOut])
def get_entry_history(
    entry_id: str,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
):
    return [
        AuditEntryOut(
            action=row.action,
            actor_principal_id=row.actor_principal_id,
            ip=row.ip,
            metadata=row.meta or {},
            created_at=row.created_at,
        )
        for row in entry_history(db, entry_id)
    ]
