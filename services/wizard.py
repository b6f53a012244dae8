"""Мастер записи: клиент -> услуги -> дата/время -> итог.

Состояние неизменяемое, каждый переход возвращает новое состояние.
"""
import enum
from datetime import date as date_type
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as SchemaError

from models import AppointmentStatus, PaymentStatus, Recurrence, Weekday
from schemas import AppointmentInput
from services.appointments import parse_start
from services.errors import ValidationError
from services.status import resolve, resolve_edit


class WizardStep(str, enum.Enum):
    CLIENT = "client"
    SERVICES = "services"
    DATETIME = "datetime"
    SUMMARY = "summary"


STEPS = list(WizardStep)


class WizardState(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: WizardStep = WizardStep.CLIENT
    client_id: Optional[int] = None
    service_ids: Tuple[int, ...] = ()
    date: Optional[date_type] = None
    start_time: str = "09:00"
    notes: str = ""
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    payment_status: Optional[PaymentStatus] = None
    # Пары (service_id, цена); словарь на входе превращается в пары
    custom_prices: Tuple[Tuple[int, Decimal], ...] = ()
    recurrence: Recurrence = Recurrence.NONE
    recurrence_days: Tuple[Weekday, ...] = ()
    recurrence_count: int = 1

    @field_validator("custom_prices", mode="before")
    @classmethod
    def prices_as_pairs(cls, value):
        if isinstance(value, dict):
            return tuple(value.items())
        return value


def reset(selected_date: Optional[date_type] = None) -> WizardState:
    return WizardState(date=selected_date or date_type.today())


def update(state: WizardState, **values) -> WizardState:
    if "step" in values:
        raise ValidationError("Use advance() or back() to change the step", ["step"])
    # Статус и оплата всегда меняются парой
    current = (state.status, state.payment_status)
    pair = None
    try:
        if "status" in values and "payment_status" in values:
            pair = resolve_edit(current, values["status"], values["payment_status"])
        elif "status" in values:
            pair = resolve(current, status=values["status"])
        elif "payment_status" in values:
            pair = resolve(current, payment_status=values["payment_status"])
    except ValueError as e:
        raise ValidationError(f"Unknown status value: {e}", ["status", "payment_status"]) from e
    if pair is not None:
        values["status"], values["payment_status"] = pair
    try:
        return WizardState.model_validate({**state.model_dump(), **values})
    except SchemaError as e:
        fields = [str(error["loc"][0]) for error in e.errors() if error["loc"]]
        raise ValidationError(f"Invalid wizard values: {', '.join(fields)}", fields) from e


def step_errors(state: WizardState) -> List[str]:
    if state.step == WizardStep.CLIENT:
        return [] if state.client_id else ["client_id"]
    if state.step == WizardStep.SERVICES:
        return [] if state.service_ids else ["service_ids"]
    if state.step == WizardStep.DATETIME:
        missing = []
        if state.date is None:
            missing.append("date")
        if not state.start_time:
            missing.append("start_time")
        else:
            try:
                parse_start(state.date or date_type.today(), state.start_time)
            except ValidationError:
                missing.append("start_time")
        return missing
    return []


def advance(state: WizardState) -> WizardState:
    if state.step == WizardStep.SUMMARY:
        raise ValidationError("Wizard is already at the summary step")
    missing = step_errors(state)
    if missing:
        raise ValidationError(f"Step '{state.step.value}' is incomplete: {', '.join(missing)}", missing)
    return state.model_copy(update={"step": STEPS[STEPS.index(state.step) + 1]})


def back(state: WizardState) -> WizardState:
    if state.step == WizardStep.CLIENT:
        raise ValidationError("Wizard is already at the first step")
    return state.model_copy(update={"step": STEPS[STEPS.index(state.step) - 1]})


def to_appointment_input(state: WizardState) -> AppointmentInput:
    if state.step != WizardStep.SUMMARY:
        raise ValidationError("Wizard must reach the summary step before submitting")
    return AppointmentInput(
        client_id=state.client_id,
        service_ids=list(state.service_ids),
        date=state.date,
        start_time=state.start_time,
        notes=state.notes or None,
        status=state.status,
        payment_status=state.payment_status,
        custom_prices=dict(state.custom_prices),
        recurrence=state.recurrence,
        recurrence_days=list(state.recurrence_days),
        recurrence_count=state.recurrence_count,
    )
