from fastapi import Depends, Request
from sqlalchemy.orm import Session

from taketwo.db import get_db
from taketwo.services.entry_service import EntryLifecycleManager
from taketwo.services.store_factory import build_entry_store, build_lifecycle_manager


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    if request.client:
        return request.client.host
    return None


def get_entry_manager(db: Session = Depends(get_db)) -> EntryLifecycleManager:
    return build_lifecycle_manager(build_entry_store(db))
