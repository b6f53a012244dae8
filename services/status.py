"""Согласование статуса записи и статуса оплаты.

Допустимы только четыре пары:

    scheduled       / не определен (None)
    cancelled       / не определен (None)
    pending_payment / pending
    completed       / paid

Любое изменение одного поля тянет за собой второе. Модуль чистый, без I/O.
"""
from typing import NamedTuple, Optional

from models import AppointmentStatus, PaymentStatus
from services.errors import ConsistencyViolation


class StatusPair(NamedTuple):
    status: AppointmentStatus
    payment_status: Optional[PaymentStatus]


UNSET = object()

CONSISTENT_PAIRS = {
    StatusPair(AppointmentStatus.SCHEDULED, None),
    StatusPair(AppointmentStatus.CANCELLED, None),
    StatusPair(AppointmentStatus.PENDING_PAYMENT, PaymentStatus.PENDING),
    StatusPair(AppointmentStatus.COMPLETED, PaymentStatus.PAID),
}

STATUS_TO_PAYMENT = {
    AppointmentStatus.SCHEDULED: None,
    AppointmentStatus.CANCELLED: None,
    AppointmentStatus.PENDING_PAYMENT: PaymentStatus.PENDING,
    AppointmentStatus.COMPLETED: PaymentStatus.PAID,
}

PAYMENT_TO_STATUS = {
    PaymentStatus.PENDING: AppointmentStatus.PENDING_PAYMENT,
    PaymentStatus.PAID: AppointmentStatus.COMPLETED,
}

PAID = StatusPair(AppointmentStatus.COMPLETED, PaymentStatus.PAID)
PENDING = StatusPair(AppointmentStatus.PENDING_PAYMENT, PaymentStatus.PENDING)
SCHEDULED = StatusPair(AppointmentStatus.SCHEDULED, None)


def _payment(value) -> Optional[PaymentStatus]:
    # "undefined" из старых форм равносильно None
    if value is None or value == "" or value == "undefined":
        return None
    return PaymentStatus(value)


def as_pair(status, payment_status) -> StatusPair:
    return StatusPair(AppointmentStatus(status), _payment(payment_status))


def is_consistent(pair) -> bool:
    return as_pair(*pair) in CONSISTENT_PAIRS


def ensure_consistent(pair) -> StatusPair:
    try:
        checked = as_pair(*pair)
    except ValueError:
        raise ConsistencyViolation(*pair)
    if checked not in CONSISTENT_PAIRS:
        raise ConsistencyViolation(*pair)
    return checked


def normalize(pair) -> StatusPair:
    """Согласованная пара остается как есть, иначе главный - статус записи."""
    checked = as_pair(*pair)
    if checked in CONSISTENT_PAIRS:
        return checked
    return StatusPair(checked.status, STATUS_TO_PAYMENT[checked.status])


def resolve(current=None, status=UNSET, payment_status=UNSET) -> StatusPair:
    if current is None:
        current = SCHEDULED
    current = as_pair(*current)

    if status is not UNSET:
        status = AppointmentStatus(status)
        return StatusPair(status, STATUS_TO_PAYMENT[status])

    if payment_status is not UNSET:
        payment_status = _payment(payment_status)
        if payment_status is not None:
            return StatusPair(PAYMENT_TO_STATUS[payment_status], payment_status)
        # Явную отмену не трогаем
        if current.status in (AppointmentStatus.COMPLETED, AppointmentStatus.PENDING_PAYMENT):
            return SCHEDULED
        return StatusPair(current.status, None)

    return normalize(current)


def resolve_edit(current, status, payment_status) -> StatusPair:
    """Форма присылает оба поля сразу; ведет то, которое изменилось."""
    current = normalize(current) if current is not None else SCHEDULED
    requested = as_pair(status, payment_status)
    if requested in CONSISTENT_PAIRS:
        return requested
    if requested.status != current.status:
        return resolve(current, status=requested.status)
    if requested.payment_status != current.payment_status:
        return resolve(current, payment_status=requested.payment_status)
    return normalize(requested)


def apply_pair(appointment, pair) -> StatusPair:
    """Повторная проверка прямо перед записью в модель."""
    checked = ensure_consistent(pair)
    appointment.status = checked.status.value
    appointment.payment_status = checked.payment_status.value if checked.payment_status else None
    return checked


def current_pair(appointment) -> StatusPair:
    return normalize((appointment.status or AppointmentStatus.SCHEDULED.value, appointment.payment_status))
