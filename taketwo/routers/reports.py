from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from taketwo.auth import Principal, get_current_principal
from taketwo.dependencies import get_entry_manager
from taketwo.models import EntryStatus
from taketwo.schemas import ReportSummaryOut
from taketwo.services.entry_service import EntryLifecycleManager
from taketwo.services.report_service import filter_entries, summarize

router = APIRouter(prefix='/reports', tags=['reports'])


@router.get('/summary', response_model=ReportSummaryOut)
def report_summary(
    status_filter: EntryStatus | None = Query(default=None, alias='status'),
    service: str | None = None,
    from_date: date | None = Query(default=None, alias='from'),
    to_date: date | None = Query(default=None, alias='to'),
    manager: EntryLifecycleManager = Depends(get_entry_manager),
    _: Principal = Depends(get_current_principal),
):
    entries = filter_entries(
        manager.list_active(),
        status=status_filter,
        service=service,
        from_date=from_date,
        to_date=to_date,
    )
    return ReportSummaryOut.from_summary(summarize(entries))
