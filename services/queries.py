from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

import models
from services.session import reading


def _with_details(query):
    return query.options(
        joinedload(models.Appointment.client),
        selectinload(models.Appointment.lines).joinedload(models.AppointmentServiceLine.service),
    )


def _money(values) -> Decimal:
    return sum((Decimal(v or 0) for v in values), Decimal("0"))


def list_appointments(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None,
                      status=None, payment_status=None, client_id: Optional[int] = None) -> List[models.Appointment]:
    with reading(db, "list appointments"):
        query = _with_details(db.query(models.Appointment))
        if start is not None:
            query = query.filter(models.Appointment.start_time >= start)
        if end is not None:
            query = query.filter(models.Appointment.start_time <= end)
        if status is not None:
            query = query.filter(models.Appointment.status == models.AppointmentStatus(status).value)
        if payment_status is not None:
            query = query.filter(models.Appointment.payment_status == models.PaymentStatus(payment_status).value)
        if client_id is not None:
            query = query.filter(models.Appointment.client_id == client_id)
        return query.order_by(models.Appointment.start_time, models.Appointment.id).all()


def day_agenda(db: Session, day: date) -> List[models.Appointment]:
    return list_appointments(db, start=datetime.combine(day, time.min), end=datetime.combine(day, time.max))


def client_history(db: Session, client_id: int, start_date: Optional[date] = None,
                   end_date: Optional[date] = None, tab: str = "all",
                   search: Optional[str] = None) -> List[models.Appointment]:
    """История клиента, новые записи сверху.

    tab: all / pending / paid. Поиск по названию услуги или заметкам.
    Конечная дата включительно.
    """
    with reading(db, "load client history", client_id):
        query = _with_details(db.query(models.Appointment)).filter(models.Appointment.client_id == client_id)
        if start_date is not None:
            query = query.filter(models.Appointment.start_time >= datetime.combine(start_date, time.min))
        if end_date is not None:
            query = query.filter(models.Appointment.start_time < datetime.combine(end_date + timedelta(days=1), time.min))
        appointments = query.order_by(models.Appointment.start_time.desc()).all()

    if tab == "pending":
        appointments = [a for a in appointments if a.payment_status == models.PaymentStatus.PENDING.value]
    elif tab == "paid":
        appointments = [a for a in appointments if a.payment_status == models.PaymentStatus.PAID.value]

    if search:
        needle = search.lower()
        appointments = [
            a for a in appointments
            if any(line.service and needle in line.service.name.lower() for line in a.lines)
            or (a.notes and needle in a.notes.lower())
        ]
    return appointments


def client_statistics(appointments) -> dict:
    appointments = list(appointments)
    paid = [a for a in appointments if a.payment_status == models.PaymentStatus.PAID.value]
    return {
        "total_appointments": len(appointments),
        "completed_appointments": sum(1 for a in appointments if a.status == models.AppointmentStatus.COMPLETED.value),
        "pending_payments": sum(1 for a in appointments if a.payment_status == models.PaymentStatus.PENDING.value),
        "total_spent": _money(a.final_price for a in paid),
    }


def search_clients(db: Session, term: Optional[str] = None) -> List[models.Client]:
    with reading(db, "search clients"):
        query = db.query(models.Client)
        if term:
            pattern = f"%{term}%"
            query = query.filter(or_(models.Client.name.ilike(pattern), models.Client.phone.ilike(pattern)))
        return query.order_by(models.Client.name).all()


def paid_appointments(db: Session, start: Optional[date] = None, end: Optional[date] = None,
                      method=None, min_amount: Optional[Decimal] = None,
                      max_amount: Optional[Decimal] = None) -> List[models.Appointment]:
    with reading(db, "list paid appointments"):
        query = _with_details(db.query(models.Appointment)).filter(
            models.Appointment.payment_status == models.PaymentStatus.PAID.value
        )
        if start is not None:
            query = query.filter(models.Appointment.start_time >= datetime.combine(start, time.min))
        if end is not None:
            query = query.filter(models.Appointment.start_time <= datetime.combine(end, time.max))
        if method is not None:
            query = query.filter(models.Appointment.payment_method == models.PaymentMethod(method).value)
        if min_amount is not None:
            query = query.filter(models.Appointment.final_price >= min_amount)
        if max_amount is not None:
            query = query.filter(models.Appointment.final_price <= max_amount)
        return query.order_by(models.Appointment.payment_date.desc(), models.Appointment.id.desc()).all()


def dashboard_summary(db: Session, today: date) -> dict:
    appointments_today = day_agenda(db, today)
    month_start = datetime.combine(today.replace(day=1), time.min)
    with reading(db, "load dashboard"):
        pending = db.query(models.Appointment.final_price).filter(
            models.Appointment.payment_status == models.PaymentStatus.PENDING.value
        ).all()
        paid_this_month = db.query(models.Appointment.final_price).filter(
            models.Appointment.payment_status == models.PaymentStatus.PAID.value,
            models.Appointment.payment_date >= month_start,
        ).all()

    by_status = {status.value: 0 for status in models.AppointmentStatus}
    for appointment in appointments_today:
        by_status[appointment.status] = by_status.get(appointment.status, 0) + 1

    return {
        "date": today,
        "appointments": appointments_today,
        "status_counts": by_status,
        "pending_total": _money(row.final_price for row in pending),
        "pending_count": len(pending),
        "paid_this_month": _money(row.final_price for row in paid_this_month),
    }
