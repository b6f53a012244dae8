import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

import models
from config import DEFAULT_PAYMENT_METHOD
from services.errors import AgendaError, BatchResult, NotFound, ValidationError
from services.notifications import ERROR, INFO, SUCCESS, LoggingNotifier, Notifier
from services.session import reading, transaction
from services.status import PENDING, apply_pair, current_pair, resolve, resolve_edit

UNKNOWN_CLIENT = "Unknown client"


@dataclass
class ClientPendingGroup:
    client_id: int
    client_name: str
    client_phone: str
    appointments: list = field(default_factory=list)
    total_due: Decimal = Decimal("0")

    @property
    def count(self):
        return len(self.appointments)


@dataclass
class SettlementResult:
    appointment_id: int
    series: BatchResult = field(default_factory=BatchResult)


def group_pending_by_client(appointments: Iterable) -> List[ClientPendingGroup]:
    """Ожидающие оплаты записи по клиентам, в порядке первого появления клиента."""
    groups = {}
    for appointment in appointments:
        if appointment.payment_status != models.PaymentStatus.PENDING.value:
            continue
        group = groups.get(appointment.client_id)
        if group is None:
            client = getattr(appointment, "client", None)
            group = ClientPendingGroup(
                client_id=appointment.client_id,
                client_name=client.name if client else UNKNOWN_CLIENT,
                client_phone=(client.phone or "") if client else "",
            )
            groups[appointment.client_id] = group
        group.appointments.append(appointment)
        group.total_due += Decimal(appointment.final_price or 0)
    return list(groups.values())


class PaymentManager:
    def __init__(self, db: Session, notifier: Optional[Notifier] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock or datetime.now

    def _get(self, appointment_id: int) -> models.Appointment:
        with reading(self.db, "load appointment", appointment_id):
            appointment = self.db.get(models.Appointment, appointment_id)
        if not appointment:
            raise NotFound("Appointment", appointment_id)
        return appointment

    @staticmethod
    def _method(method) -> models.PaymentMethod:
        try:
            return models.PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown payment method '{method}'", ["method"])

    def _mark_paid(self, appointment, method, paid_at, final_price=None):
        apply_pair(appointment, resolve(current_pair(appointment), payment_status=models.PaymentStatus.PAID))
        appointment.payment_method = self._method(method).value
        appointment.payment_date = paid_at
        if final_price is not None:
            appointment.final_price = Decimal(final_price)

    def _settle(self, appointment_id, method, paid_at, final_price=None):
        appointment = self._get(appointment_id)
        with transaction(self.db, "settle appointment", appointment_id):
            self._mark_paid(appointment, method, paid_at, final_price)
        return appointment

    # ==========================================
    #              ЧТЕНИЕ
    # ==========================================

    def pending_appointments(self, client_id: Optional[int] = None) -> List[models.Appointment]:
        with reading(self.db, "load pending payments", client_id):
            query = self.db.query(models.Appointment).options(
                joinedload(models.Appointment.client),
                selectinload(models.Appointment.lines).joinedload(models.AppointmentServiceLine.service),
            ).filter(models.Appointment.payment_status == models.PaymentStatus.PENDING.value)
            if client_id is not None:
                query = query.filter(models.Appointment.client_id == client_id)
            return query.order_by(models.Appointment.start_time, models.Appointment.id).all()

    def pending_by_client(self) -> List[ClientPendingGroup]:
        return group_pending_by_client(self.pending_appointments())

    def payment_stats(self, recent: int = 3) -> dict:
        with reading(self.db, "load payment stats"):
            rows = self.db.query(models.Appointment).options(
                joinedload(models.Appointment.client)
            ).filter(models.Appointment.payment_status.isnot(None)).all()
        pending = [a for a in rows if a.payment_status == models.PaymentStatus.PENDING.value]
        paid = [a for a in rows if a.payment_status == models.PaymentStatus.PAID.value]
        recent_payments = sorted(
            paid, key=lambda a: (a.payment_date or datetime.min, a.id), reverse=True
        )[:recent]
        return {
            "pending_total": sum((Decimal(a.final_price or 0) for a in pending), Decimal("0")),
            "paid_total": sum((Decimal(a.final_price or 0) for a in paid), Decimal("0")),
            "pending_count": len(pending),
            "paid_count": len(paid),
            "recent_payments": recent_payments,
        }

    # ==========================================
    #              ОПЛАТА
    # ==========================================

    def settle_one(self, appointment_id: int, method=DEFAULT_PAYMENT_METHOD,
                   update_whole_series: bool = False,
                   final_price: Optional[Decimal] = None) -> SettlementResult:
        method = self._method(method)
        paid_at = self.clock()
        appointment = self._get(appointment_id)
        with transaction(self.db, "settle appointment", appointment_id, self.notifier):
            self._mark_paid(appointment, method, paid_at, final_price)

        result = SettlementResult(appointment_id=appointment_id)
        group_id = appointment.recurrence_group_id
        if update_whole_series and group_id:
            with reading(self.db, "load recurring series", group_id):
                sibling_ids = [row.id for row in self.db.query(models.Appointment.id).filter(
                    models.Appointment.recurrence_group_id == group_id,
                    models.Appointment.id != appointment_id,
                ).order_by(models.Appointment.start_time, models.Appointment.id)]

            # Основная оплата уже сохранена; сбои соседей только попадают в отчет
            for sibling_id in sibling_ids:
                try:
                    self._settle(sibling_id, method, paid_at, final_price)
                    result.series.succeeded.append(sibling_id)
                except AgendaError as e:
                    result.series.add_failure(sibling_id, e)

            logging.info(f"Series {group_id} settlement: {len(result.series.succeeded)} ok, {len(result.series.failed)} failed")
            if result.series.failed:
                self.notifier.notify(ERROR, f"Payment saved, but {len(result.series.failed)} series appointments could not be updated")
                return result

        self.notifier.notify(SUCCESS, "Payment registered")
        return result

    def settle_many(self, appointment_ids: Iterable[int], method=DEFAULT_PAYMENT_METHOD) -> BatchResult:
        method = self._method(method)
        paid_at = self.clock()
        result = BatchResult()
        for appointment_id in appointment_ids:
            try:
                self._settle(appointment_id, method, paid_at)
                result.succeeded.append(appointment_id)
            except AgendaError as e:
                logging.warning(f"Settlement of appointment {appointment_id} failed: {e}")
                result.add_failure(appointment_id, e)

        logging.info(f"Batch settlement: {len(result.succeeded)} ok, {len(result.failed)} failed")
        if result.ok:
            self.notifier.notify(SUCCESS, f"{len(result.succeeded)} payments registered")
        else:
            self.notifier.notify(ERROR, f"{len(result.succeeded)} payments registered, {len(result.failed)} failed")
        return result

    def settle_all_for_client(self, client_id: int, method=DEFAULT_PAYMENT_METHOD,
                              appointment_ids: Optional[Iterable[int]] = None) -> BatchResult:
        pending_ids = [a.id for a in self.pending_appointments(client_id)]
        if appointment_ids is not None:
            wanted = set(appointment_ids)
            pending_ids = [aid for aid in pending_ids if aid in wanted]
        if not pending_ids:
            self.notifier.notify(INFO, "No pending payments for this client")
            return BatchResult()
        return self.settle_many(pending_ids, method)

    # ==========================================
    #              ИЗМЕНЕНИЕ ЦЕНЫ
    # ==========================================

    def update_line_price(self, appointment_id: int, new_price, service_id: Optional[int] = None) -> models.Appointment:
        """Смена цены снова открывает оплату: pending_payment / pending.

        Оплаченная запись с новой суммой требует повторной оплаты.
        """
        new_price = Decimal(new_price)
        if new_price < 0:
            raise ValidationError("Price cannot be negative", ["new_price"])
        appointment = self._get(appointment_id)

        with transaction(self.db, "update appointment price", appointment_id, self.notifier):
            if service_id is not None:
                line = next((l for l in appointment.lines if l.service_id == service_id), None)
                if line is None:
                    raise ValidationError(f"Service {service_id} is not part of appointment {appointment_id}", ["service_id"])
                line.final_price = new_price
                appointment.final_price = sum((Decimal(l.final_price or 0) for l in appointment.lines), Decimal("0"))
            else:
                appointment.final_price = new_price
            apply_pair(appointment, PENDING)
            appointment.payment_date = None

        logging.info(f"Appointment {appointment_id} price set to {appointment.final_price}, payment reopened")
        self.notifier.notify(SUCCESS, "Price updated, payment pending")
        return appointment

    def update_payment_details(self, appointment_id: int, status, payment_status, final_price) -> models.Appointment:
        final_price = Decimal(final_price)
        if final_price < 0:
            raise ValidationError("Price cannot be negative", ["final_price"])
        appointment = self._get(appointment_id)
        pair = resolve_edit(current_pair(appointment), status, payment_status)

        with transaction(self.db, "update payment", appointment_id, self.notifier):
            was_paid = appointment.payment_status == models.PaymentStatus.PAID.value
            apply_pair(appointment, pair)
            appointment.final_price = final_price
            if pair.payment_status == models.PaymentStatus.PAID and not was_paid:
                appointment.payment_date = self.clock()

        self.notifier.notify(SUCCESS, "Payment updated")
        return appointment
