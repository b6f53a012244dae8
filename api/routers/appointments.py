# api/routers/appointments.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Literal, Optional
from datetime import datetime

import schemas as forms
from api import schemas
from api.dependencies import authenticate_user, domain_errors, get_appointment_manager, get_db
from models import AppointmentStatus, PaymentStatus
from services import queries
from services.appointments import AppointmentManager
from services.recurrence import generate_recurrence_dates
from services.status import UNSET

router = APIRouter(
    prefix="/api/v1",
    tags=["Appointments"],
    dependencies=[Depends(authenticate_user)],
)

@router.get("/appointments", response_model=List[schemas.AppointmentSchema])
def get_appointments(start: Optional[datetime] = None, end: Optional[datetime] = None,
                     status: Optional[AppointmentStatus] = None, payment_status: Optional[PaymentStatus] = None,
                     client_id: Optional[int] = None, db: Session = Depends(get_db)):
    with domain_errors():
        return queries.list_appointments(db, start=start, end=end, status=status,
                                         payment_status=payment_status, client_id=client_id)

@router.get("/appointments/{appointment_id}", response_model=schemas.AppointmentSchema)
def get_appointment(appointment_id: int, manager: AppointmentManager = Depends(get_appointment_manager)):
    with domain_errors():
        return manager.get(appointment_id)

# Вся созданная серия, родитель первым
def created_series(manager: AppointmentManager, appointment):
    if appointment.is_parent:
        members = manager.series_members(appointment.id)
        return sorted(members, key=lambda a: not a.is_parent)
    return [appointment]

@router.post("/appointments", response_model=List[schemas.AppointmentSchema])
def create_appointment(data: forms.AppointmentInput, manager: AppointmentManager = Depends(get_appointment_manager)):
    with domain_errors():
        return created_series(manager, manager.create(data))

@router.put("/appointments/{appointment_id}", response_model=schemas.AppointmentSchema)
def update_appointment(appointment_id: int, data: forms.AppointmentInput,
                       manager: AppointmentManager = Depends(get_appointment_manager)):
    with domain_errors():
        return manager.update(appointment_id, data)

@router.patch("/appointments/{appointment_id}/status", response_model=schemas.AppointmentSchema)
def change_status(appointment_id: int, data: forms.StatusChangeSchema,
                  manager: AppointmentManager = Depends(get_appointment_manager)):
    provided = data.model_fields_set
    with domain_errors():
        return manager.change_status(
            appointment_id,
            status=data.status if "status" in provided and data.status is not None else UNSET,
            payment_status=data.payment_status if "payment_status" in provided else UNSET,
        )

@router.delete("/appointments/{appointment_id}", response_model=schemas.DeletionSchema)
def delete_appointment(appointment_id: int, scope: Literal["single", "future", "all"] = "single",
                       manager: AppointmentManager = Depends(get_appointment_manager)):
    with domain_errors():
        if scope == "future":
            return manager.delete_future_in_series(appointment_id)
        if scope == "all":
            return manager.delete_all_in_series(appointment_id)
        return manager.delete_single(appointment_id)

@router.get("/appointments/{appointment_id}/series-deletion", response_model=schemas.SeriesDeletionPreviewSchema)
def preview_series_deletion(appointment_id: int, manager: AppointmentManager = Depends(get_appointment_manager)):
    with domain_errors():
        return manager.preview_series_deletion(appointment_id)

@router.post("/recurrence/preview", response_model=List[datetime])
def preview_recurrence(data: forms.RecurrencePreviewSchema):
    return generate_recurrence_dates(data.base_date, data.recurrence, data.weekdays, data.occurrence_count)
