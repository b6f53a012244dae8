import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

import models
from config import DEFAULT_SERVICE_DURATION
from schemas import AppointmentInput
from services.errors import DeletionResult, NotFound, ValidationError
from services.notifications import INFO, SUCCESS, LoggingNotifier, Notifier
from services.recurrence import generate_recurrence_dates
from services.session import reading, transaction
from services.status import SCHEDULED, UNSET, apply_pair, current_pair, resolve, resolve_edit


def parse_start(day, start_time: str) -> datetime:
    try:
        clock_time = datetime.strptime(start_time, "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid start time '{start_time}', expected HH:MM", ["start_time"])
    return datetime.combine(day, clock_time)


def service_duration(service) -> int:
    return service.duration_minutes or DEFAULT_SERVICE_DURATION


def price_lines(services, custom_prices) -> List[tuple]:
    """Пары (услуга, итоговая цена): своя цена, если задана, иначе из каталога."""
    lines = []
    for service in services:
        custom = custom_prices.get(service.id)
        price = Decimal(custom) if custom is not None else Decimal(service.price or 0)
        lines.append((service, price))
    return lines


class AppointmentManager:
    def __init__(self, db: Session, notifier: Optional[Notifier] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock or datetime.now

    # ==========================================
    #              ЧТЕНИЕ
    # ==========================================

    def get(self, appointment_id: int) -> models.Appointment:
        with reading(self.db, "load appointment", appointment_id):
            appointment = self.db.query(models.Appointment).options(
                selectinload(models.Appointment.lines)
            ).filter(models.Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFound("Appointment", appointment_id)
        return appointment

    def series_parent_id(self, appointment: models.Appointment) -> int:
        parent_id = appointment.series_parent_id
        if parent_id is None:
            raise ValidationError(f"Appointment {appointment.id} is not part of a recurring series")
        return parent_id

    def series_members(self, parent_id: int) -> List[models.Appointment]:
        with reading(self.db, "load recurring series", parent_id):
            return self.db.query(models.Appointment).filter(
                or_(models.Appointment.id == parent_id,
                    models.Appointment.parent_appointment_id == parent_id)
            ).order_by(models.Appointment.start_time, models.Appointment.id).all()

    # ==========================================
    #              СОЗДАНИЕ / ИЗМЕНЕНИЕ
    # ==========================================

    def _validate(self, data: AppointmentInput):
        missing = []
        if not data.client_id:
            missing.append("client_id")
        if not data.service_ids:
            missing.append("service_ids")
        if data.date is None:
            missing.append("date")
        if not data.start_time:
            missing.append("start_time")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)

        start = parse_start(data.date, data.start_time)

        negative = [sid for sid, price in data.custom_prices.items() if price is not None and price < 0]
        if negative:
            raise ValidationError(f"Negative price for services {negative}", ["custom_prices"])

        service_ids = list(dict.fromkeys(data.service_ids))
        with reading(self.db, "validate appointment", data.client_id):
            client = self.db.get(models.Client, data.client_id)
            found = self.db.query(models.Service).filter(models.Service.id.in_(service_ids)).all()
        if not client:
            raise ValidationError(f"Client {data.client_id} does not exist", ["client_id"])
        by_id = {s.id: s for s in found}
        unknown = [sid for sid in service_ids if sid not in by_id]
        if unknown:
            raise ValidationError(f"Unknown services {unknown}", ["service_ids"])

        return start, [by_id[sid] for sid in service_ids]

    def _fill(self, appointment, data, start, priced):
        duration = sum(service_duration(service) for service, _ in priced)
        appointment.client_id = data.client_id
        appointment.start_time = start
        appointment.end_time = start + timedelta(minutes=duration)
        appointment.notes = data.notes
        appointment.final_price = sum((price for _, price in priced), Decimal("0"))
        appointment.lines.extend(
            models.AppointmentServiceLine(service_id=service.id, final_price=price)
            for service, price in priced
        )
        return appointment

    def create(self, data: AppointmentInput) -> models.Appointment:
        start, services = self._validate(data)
        priced = price_lines(services, data.custom_prices)
        pair = resolve_edit(SCHEDULED, data.status, data.payment_status)
        dates = generate_recurrence_dates(start, data.recurrence, data.recurrence_days, data.recurrence_count)

        with transaction(self.db, "create appointment", data.client_id, self.notifier):
            appointment = self._fill(models.Appointment(lines=[]), data, start, priced)
            apply_pair(appointment, pair)
            if self._is_paid(pair):
                appointment.payment_date = self.clock()

            if dates:
                group_id = str(uuid.uuid4())
                self._mark_recurring(appointment, data, group_id)
                appointment.is_parent = True
                self.db.add(appointment)
                self.db.flush()

                for child_start in dates:
                    child = self._fill(models.Appointment(lines=[]), data, child_start, priced)
                    apply_pair(child, SCHEDULED)
                    self._mark_recurring(child, data, group_id)
                    child.parent_appointment_id = appointment.id
                    self.db.add(child)
            else:
                self.db.add(appointment)

        if dates:
            logging.info(f"Created recurring series {appointment.recurrence_group_id}: parent {appointment.id} + {len(dates)} children")
            self.notifier.notify(SUCCESS, f"Recurring appointment created with {len(dates) + 1} occurrences")
        else:
            logging.info(f"Created appointment {appointment.id} for client {appointment.client_id}")
            self.notifier.notify(SUCCESS, "Appointment created")
        return appointment

    @staticmethod
    def _mark_recurring(appointment, data, group_id):
        appointment.recurrence = data.recurrence.value
        appointment.recurrence_days = [day.value for day in data.recurrence_days]
        appointment.recurrence_count = data.recurrence_count
        appointment.recurrence_group_id = group_id
        appointment.is_parent = False

    @staticmethod
    def _is_paid(pair):
        return pair.payment_status is not None and pair.payment_status == models.PaymentStatus.PAID

    def update(self, appointment_id: int, data: AppointmentInput) -> models.Appointment:
        appointment = self.get(appointment_id)
        start, services = self._validate(data)
        priced = price_lines(services, data.custom_prices)
        pair = resolve_edit(current_pair(appointment), data.status, data.payment_status)

        with transaction(self.db, "update appointment", appointment_id, self.notifier):
            # Строки услуг заменяются целиком: сначала удаление, потом вставка
            appointment.lines.clear()
            self.db.flush()
            self._fill(appointment, data, start, priced)
            was_paid = appointment.payment_status == models.PaymentStatus.PAID.value
            apply_pair(appointment, pair)
            if self._is_paid(pair) and not was_paid:
                appointment.payment_date = self.clock()

        self.notifier.notify(SUCCESS, "Appointment updated")
        return appointment

    def change_status(self, appointment_id: int, status=UNSET, payment_status=UNSET) -> models.Appointment:
        appointment = self.get(appointment_id)
        pair = resolve(current_pair(appointment), status=status, payment_status=payment_status)

        with transaction(self.db, "change appointment status", appointment_id, self.notifier):
            was_paid = appointment.payment_status == models.PaymentStatus.PAID.value
            apply_pair(appointment, pair)
            if self._is_paid(pair) and not was_paid:
                appointment.payment_date = self.clock()

        self.notifier.notify(SUCCESS, "Appointment status updated")
        return appointment

    # ==========================================
    #              УДАЛЕНИЕ
    # ==========================================

    def _reparent(self, survivors: List[models.Appointment]) -> Optional[models.Appointment]:
        """Самая ранняя из оставшихся записей становится родителем серии."""
        if not survivors:
            return None
        ordered = sorted(survivors, key=lambda a: (a.start_time, a.id))
        new_parent = ordered[0]
        new_parent.is_parent = True
        new_parent.parent_appointment_id = None
        for child in ordered[1:]:
            child.is_parent = False
            child.parent_appointment_id = new_parent.id
        self.db.flush()
        logging.info(f"Appointment {new_parent.id} promoted to series parent ({len(ordered) - 1} children)")
        return new_parent

    def _delete_members(self, members, parent_id):
        # Сначала дети, потом родитель (внешний ключ на родителя)
        parent = None
        for member in members:
            if member.id == parent_id:
                parent = member
            else:
                self.db.delete(member)
        self.db.flush()
        if parent is not None:
            self.db.delete(parent)

    def delete_single(self, appointment_id: int) -> DeletionResult:
        appointment = self.get(appointment_id)
        result = DeletionResult(deleted_ids=[appointment_id])

        with transaction(self.db, "delete appointment", appointment_id, self.notifier):
            if appointment.is_parent:
                with reading(self.db, "load series children", appointment_id):
                    children = self.db.query(models.Appointment).filter(
                        models.Appointment.parent_appointment_id == appointment_id
                    ).all()
                new_parent = self._reparent(children)
                if new_parent is not None:
                    result.new_parent_id = new_parent.id
            self.db.delete(appointment)

        self.notifier.notify(SUCCESS, "Appointment deleted")
        return result

    def delete_future_in_series(self, appointment_id: int) -> DeletionResult:
        appointment = self.get(appointment_id)
        parent_id = self.series_parent_id(appointment)
        now = self.clock()
        members = self.series_members(parent_id)

        upcoming = [m for m in members if m.start_time >= now]
        # Оплаченные и завершенные записи не удаляем никогда
        eligible = [m for m in upcoming if not m.is_settled]
        result = DeletionResult(skipped_ids=[m.id for m in upcoming if m.is_settled])

        if not eligible:
            self.notifier.notify(INFO, "No future appointments eligible for deletion in this series")
            return result

        eligible_ids = {m.id for m in eligible}
        survivors = [m for m in members if m.id not in eligible_ids]

        with transaction(self.db, "delete future appointments in series", parent_id, self.notifier):
            if parent_id in eligible_ids:
                new_parent = self._reparent(survivors)
                if new_parent is not None:
                    result.new_parent_id = new_parent.id
            self._delete_members(eligible, parent_id)

        result.deleted_ids = sorted(eligible_ids)
        logging.info(f"Series {parent_id}: deleted {result.deleted_count} future appointments, kept {len(survivors)}")
        self.notifier.notify(SUCCESS, f"{result.deleted_count} future appointments deleted")
        return result

    def preview_series_deletion(self, appointment_id: int) -> dict:
        appointment = self.get(appointment_id)
        parent_id = self.series_parent_id(appointment)
        now = self.clock()
        members = self.series_members(parent_id)
        return {
            "parent_id": parent_id,
            "total": len(members),
            "future_deletable": sum(1 for m in members if m.start_time >= now and not m.is_settled),
            "settled": sum(1 for m in members if m.is_settled),
        }

    def delete_all_in_series(self, appointment_id: int) -> DeletionResult:
        appointment = self.get(appointment_id)
        parent_id = self.series_parent_id(appointment)
        members = self.series_members(parent_id)

        result = DeletionResult(deleted_ids=[m.id for m in members])
        result.settled_count = sum(1 for m in members if m.is_settled)
        if result.settled_count:
            result.warning = f"{result.settled_count} completed or paid appointments will be lost"
            logging.warning(f"Series {parent_id}: {result.warning}")

        with transaction(self.db, "delete recurring series", parent_id, self.notifier):
            self._delete_members(members, parent_id)

        self.notifier.notify(SUCCESS, f"{result.deleted_count} appointments deleted from series")
        return result
