"""Release gate for entries in service.

The tend flow asks a handful of questions about the shoe (who received it,
whether it is already clean, whether basic cleaning covers it, which service
it needs, whether QC passed). Whether the entry may leave service is decided
by a decision table keyed on the two answers that branch the flow, so every
reachable combination is listed explicitly and can be tested row by row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable

from taketwo.errors import ValidationError
from taketwo.models import Answer, DeliveryOption, EntryStatus, ReceivedBy, ServiceType

INCOMPLETE_SERVICE_STEPS = 'incomplete-service-steps'
MISSING_RELEASE_FIELD = 'missing-release-field'


def _enum_or_none(enum_cls, raw: Any):
    if raw is None or raw == '':
        return None
    if isinstance(raw, enum_cls):
        return raw
    return enum_cls(str(raw).strip().lower())


@dataclass(frozen=True)
class ServiceDetails:
    received_by: ReceivedBy | None = None
    is_shoe_clean: Answer | None = None
    service_type: ServiceType | None = None
    basic_cleaning: Answer | None = None
    needs_reglue: bool = False
    needs_paint: bool = False
    qc_passed: bool = False

    @classmethod
    def from_payload(cls, raw: dict | None) -> ServiceDetails:
        raw = raw or {}
        return cls(
            received_by=_enum_or_none(ReceivedBy, raw.get('receivedBy')),
            is_shoe_clean=_enum_or_none(Answer, raw.get('isShoeClean')),
            service_type=_enum_or_none(ServiceType, raw.get('serviceType')),
            basic_cleaning=_enum_or_none(Answer, raw.get('basicCleaning')),
            needs_reglue=bool(raw.get('needsReglue', False)),
            needs_paint=bool(raw.get('needsPaint', False)),
            qc_passed=bool(raw.get('qcPassed', False)),
        )

    def to_payload(self) -> dict:
        return {
            'receivedBy': self.received_by.value if self.received_by else '',
            'isShoeClean': self.is_shoe_clean.value if self.is_shoe_clean else '',
            'serviceType': self.service_type.value if self.service_type else '',
            'basicCleaning': self.basic_cleaning.value if self.basic_cleaning else '',
            'needsReglue': self.needs_reglue,
            'needsPaint': self.needs_paint,
            'qcPassed': self.qc_passed,
        }


@dataclass(frozen=True)
class GateRow:
    requires: tuple[str, ...]
    shows: tuple[str, ...]


_Requirement = tuple[Callable[[ServiceDetails], bool], str]

REQUIREMENTS: dict[str, _Requirement] = {
    'received_by': (lambda d: d.received_by is not None, 'missing-received-by'),
    'is_shoe_clean': (lambda d: d.is_shoe_clean is not None, 'missing-shoe-clean-answer'),
    'basic_cleaning': (lambda d: d.basic_cleaning is not None, 'missing-basic-cleaning-answer'),
    'service_type': (lambda d: d.service_type is not None, 'missing-service-type'),
    'qc_passed': (lambda d: d.qc_passed, 'qc-not-passed'),
}

# Shown on every path and never part of the gate.
ALWAYS_SHOWN: tuple[str, ...] = ('received_by', 'is_shoe_clean', 'needs_reglue', 'needs_paint', 'qc_passed')
ALWAYS_REQUIRED: tuple[str, ...] = ('received_by',)

_UNSET = None
_ROW_UNANSWERED = GateRow(requires=('is_shoe_clean', 'qc_passed'), shows=())
_ROW_CLEAN = GateRow(requires=('qc_passed',), shows=())

# (is_shoe_clean, basic_cleaning) -> requirements and follow-up questions.
RELEASE_GATE_TABLE: dict[tuple[Answer | None, Answer | None], GateRow] = {
    (_UNSET, _UNSET): _ROW_UNANSWERED,
    (_UNSET, Answer.YES): _ROW_UNANSWERED,
    (_UNSET, Answer.NO): _ROW_UNANSWERED,
    (Answer.YES, _UNSET): _ROW_CLEAN,
    (Answer.YES, Answer.YES): _ROW_CLEAN,
    (Answer.YES, Answer.NO): _ROW_CLEAN,
    (Answer.NO, _UNSET): GateRow(requires=('basic_cleaning', 'qc_passed'), shows=('basic_cleaning',)),
    (Answer.NO, Answer.YES): GateRow(requires=('qc_passed',), shows=('basic_cleaning',)),
    (Answer.NO, Answer.NO): GateRow(
        requires=('service_type', 'qc_passed'),
        shows=('basic_cleaning', 'service_type'),
    ),
}


def gate_row(details: ServiceDetails) -> GateRow:
    return RELEASE_GATE_TABLE[(details.is_shoe_clean, details.basic_cleaning)]


def outstanding_service_steps(details: ServiceDetails) -> list[str]:
    row = gate_row(details)
    outstanding: list[str] = []
    for name in ALWAYS_REQUIRED + row.requires:
        check, violation = REQUIREMENTS[name]
        if not check(details):
            outstanding.append(violation)
    return outstanding


def evaluate_release_eligibility(details: ServiceDetails) -> bool:
    return not outstanding_service_steps(details)


def visible_questions(details: ServiceDetails) -> tuple[str, ...]:
    return ALWAYS_SHOWN + gate_row(details).shows


@dataclass
class ReleaseForm:
    """Data collected by the release sub-flow once the gate has passed."""

    after_photos: list[str] = field(default_factory=list)
    additional_billing: Decimal | None = None
    delivery_option: DeliveryOption | None = None
    delivery_address: str = ''


def request_release(
    details: ServiceDetails,
    *,
    additional_billing: Decimal | None = None,
    delivery_option: DeliveryOption | None = None,
    delivery_address: str = '',
) -> ReleaseForm:
    """Open the release sub-flow, pre-filled with what the entry already carries."""
    outstanding = outstanding_service_steps(details)
    if outstanding:
        raise ValidationError(INCOMPLETE_SERVICE_STEPS, outstanding)
    return ReleaseForm(
        after_photos=[],
        additional_billing=additional_billing,
        delivery_option=delivery_option,
        delivery_address=delivery_address or '',
    )


def release_form_violations(form: ReleaseForm) -> list[str]:
    violations: list[str] = []
    if not form.after_photos:
        violations.append('missing-after-photo')
    if form.delivery_option is None:
        violations.append('missing-delivery-option')
    elif form.delivery_option == DeliveryOption.DELIVERY and not form.delivery_address.strip():
        violations.append('missing-delivery-address')
    if form.additional_billing is not None and form.additional_billing < 0:
        violations.append('invalid-additional-billing')
    return violations


def finalize_release(details: ServiceDetails, form: ReleaseForm) -> dict[str, Any]:
    """Validate the release sub-flow and build the entry update it produces."""
    outstanding = outstanding_service_steps(details)
    if outstanding:
        raise ValidationError(INCOMPLETE_SERVICE_STEPS, outstanding)

    violations = release_form_violations(form)
    if violations:
        raise ValidationError(MISSING_RELEASE_FIELD, violations)

    patch: dict[str, Any] = {
        'service_details': details,
        'after_photos': tuple(form.after_photos),
        'delivery_option': form.delivery_option,
        'status': EntryStatus.SUBSTANTIAL_COMPLETION,
    }
    if form.additional_billing is not None:
        patch['additional_billing'] = form.additional_billing
    if form.delivery_option == DeliveryOption.DELIVERY:
        patch['delivery_address'] = form.delivery_address.strip()
    return patch
