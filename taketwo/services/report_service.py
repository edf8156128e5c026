from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from taketwo.models import STATUS_ORDER, EntryStatus, ReceivedBy
from taketwo.services.entry_service import total_amount
from taketwo.services.entry_store import EntryRecord

# Daily averages are taken over a flat 30-day month.
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class LocationRevenue:
    location: ReceivedBy
    total_entries: int
    total_revenue: Decimal
    daily_average: Decimal


@dataclass(frozen=True)
class ReportSummary:
    total_entries: int
    status_counts: dict[str, int]
    total_revenue: Decimal
    average_billing: Decimal
    locations: list[LocationRevenue]
    service_counts: dict[str, int]


def filter_entries(
    entries: list[EntryRecord],
    *,
    status: EntryStatus | None = None,
    service: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[EntryRecord]:
    start = datetime.combine(from_date, time.min, tzinfo=timezone.utc) if from_date else None
    end = datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=timezone.utc) if to_date else None
    wanted_service = service.strip().lower() if service and service.strip() else None

    rows: list[EntryRecord] = []
    for entry in entries:
        if status is not None and entry.status != status:
            continue
        if wanted_service and wanted_service not in {line.name.strip().lower() for line in entry.services}:
            continue
        if start is not None and entry.created_at < start:
            continue
        if end is not None and entry.created_at >= end:
            continue
        rows.append(entry)
    return rows


def _revenue(entries: list[EntryRecord]) -> Decimal:
    return sum((total_amount(entry) for entry in entries), Decimal('0'))


def summarize(entries: list[EntryRecord]) -> ReportSummary:
    status_counts = {status.value: 0 for status in STATUS_ORDER}
    service_counts: Counter[str] = Counter()
    for entry in entries:
        status_counts[entry.status.value] += 1
        for line in entry.services:
            service_counts[line.name] += 1

    total_revenue = _revenue(entries)
    average = (total_revenue / len(entries)).quantize(Decimal('0.01')) if entries else Decimal('0.00')

    locations: list[LocationRevenue] = []
    for location in ReceivedBy:
        scoped = [entry for entry in entries if entry.service_details.received_by == location]
        revenue = _revenue(scoped)
        locations.append(
            LocationRevenue(
                location=location,
                total_entries=len(scoped),
                total_revenue=revenue,
                daily_average=(revenue / DAYS_PER_MONTH).quantize(Decimal('0.01')),
            )
        )

    return ReportSummary(
        total_entries=len(entries),
        status_counts=status_counts,
        total_revenue=total_revenue,
        average_billing=average,
        locations=locations,
        service_counts=dict(service_counts.most_common()),
    )
