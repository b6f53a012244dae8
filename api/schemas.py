# api/schemas.py
from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, List, Optional
from datetime import date as date_type, datetime
from decimal import Decimal

class ServiceSchema(BaseModel):
    id: int; name: str; price: Decimal; duration_minutes: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)

class ClientSchema(BaseModel):
    id: int; name: str; phone: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class LineSchema(BaseModel):
    service_id: int; service_name: Optional[str] = None; final_price: Decimal
    model_config = ConfigDict(from_attributes=True)

class AppointmentSchema(BaseModel):
    id: int
    client_id: int
    client_name: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    payment_status: Optional[str] = None
    final_price: Decimal
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[datetime] = None
    recurrence: str
    recurrence_days: Optional[List[str]] = None
    recurrence_count: int
    recurrence_group_id: Optional[str] = None
    is_parent: bool
    parent_appointment_id: Optional[int] = None
    lines: List[LineSchema] = []
    model_config = ConfigDict(from_attributes=True)

class FailureSchema(BaseModel):
    id: Any; reason: str

class BatchResultSchema(BaseModel):
    succeeded: List[int]; failed: List[FailureSchema]; partial: bool; ok: bool
    model_config = ConfigDict(from_attributes=True)

class SettlementSchema(BaseModel):
    appointment: AppointmentSchema
    series: BatchResultSchema
    model_config = ConfigDict(from_attributes=True)

class DeletionSchema(BaseModel):
    deleted_ids: List[int]; skipped_ids: List[int]; new_parent_id: Optional[int] = None
    settled_count: int; warning: Optional[str] = None; deleted_count: int; nothing_to_do: bool
    model_config = ConfigDict(from_attributes=True)

class SeriesDeletionPreviewSchema(BaseModel):
    parent_id: int; total: int; future_deletable: int; settled: int

class PendingGroupSchema(BaseModel):
    client_id: int; client_name: str; client_phone: str; total_due: Decimal; count: int
    appointments: List[AppointmentSchema]
    model_config = ConfigDict(from_attributes=True)

class PaymentStatsSchema(BaseModel):
    pending_total: Decimal; paid_total: Decimal; pending_count: int; paid_count: int
    recent_payments: List[AppointmentSchema]
    model_config = ConfigDict(from_attributes=True)

class ClientStatisticsSchema(BaseModel):
    total_appointments: int; completed_appointments: int; pending_payments: int; total_spent: Decimal

class ClientHistorySchema(BaseModel):
    client: ClientSchema
    appointments: List[AppointmentSchema]
    statistics: ClientStatisticsSchema
    model_config = ConfigDict(from_attributes=True)

class DashboardSchema(BaseModel):
    date: date_type
    appointments: List[AppointmentSchema]
    status_counts: Dict[str, int]
    pending_total: Decimal; pending_count: int; paid_this_month: Decimal
    model_config = ConfigDict(from_attributes=True)
