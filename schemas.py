from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional
from datetime import date as date_type, datetime
from decimal import Decimal

from models import AppointmentStatus, PaymentStatus, PaymentMethod, Recurrence, Weekday

# --- Базовая конфигурация, остальные модели ее наследуют ---
class BaseConfig(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _undefined_to_none(value):
    if value in ("", "undefined"):
        return None
    return value


# Дни недели - это множество: повтор дня не должен дублировать записи
def _unique(value):
    if isinstance(value, (list, tuple)):
        return list(dict.fromkeys(value))
    return value


# Услуги
class ServiceCreateSchema(BaseConfig):
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    duration_minutes: Optional[int] = Field(default=None, ge=0)

class ServiceUpdateSchema(ServiceCreateSchema):
    pass

# Клиенты (быстрое добавление = только имя)
class ClientCreateSchema(BaseConfig):
    name: str = Field(min_length=1)
    phone: Optional[str] = None

class ClientUpdateSchema(ClientCreateSchema):
    pass

# Записи
class AppointmentInput(BaseConfig):
    """Форма записи. Обязательные поля проверяет AppointmentManager,
    чтобы вернуть все пропуски одной ошибкой."""
    client_id: Optional[int] = None
    service_ids: List[int] = []
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    payment_status: Optional[PaymentStatus] = None
    custom_prices: Dict[int, Decimal] = {}
    recurrence: Recurrence = Recurrence.NONE
    recurrence_days: List[Weekday] = []
    recurrence_count: int = Field(default=1, ge=1)

    normalize_payment = field_validator("payment_status", mode="before")(_undefined_to_none)
    unique_days = field_validator("recurrence_days", mode="before")(_unique)

class StatusChangeSchema(BaseConfig):
    status: Optional[AppointmentStatus] = None
    payment_status: Optional[PaymentStatus] = None

    normalize_payment = field_validator("payment_status", mode="before")(_undefined_to_none)

class RecurrencePreviewSchema(BaseConfig):
    base_date: datetime
    recurrence: Recurrence
    weekdays: List[Weekday] = []
    occurrence_count: int = 1

    unique_days = field_validator("weekdays", mode="before")(_unique)

# Оплаты
class SettleSchema(BaseConfig):
    method: PaymentMethod = PaymentMethod.CASH
    update_whole_series: bool = False
    final_price: Optional[Decimal] = Field(default=None, ge=0)

class BatchSettleSchema(BaseConfig):
    appointment_ids: List[int]
    method: PaymentMethod = PaymentMethod.CASH

class ClientSettleSchema(BaseConfig):
    method: PaymentMethod = PaymentMethod.CASH
    appointment_ids: Optional[List[int]] = None

class PriceUpdateSchema(BaseConfig):
    new_price: Decimal
    service_id: Optional[int] = None

class PaymentEditSchema(BaseConfig):
    status: AppointmentStatus
    payment_status: Optional[PaymentStatus] = None
    final_price: Decimal = Field(ge=0)

    normalize_payment = field_validator("payment_status", mode="before")(_undefined_to_none)
