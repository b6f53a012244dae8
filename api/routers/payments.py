# api/routers/payments.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from decimal import Decimal

import schemas as forms
from api import schemas
from api.dependencies import (authenticate_user, domain_errors, get_appointment_manager,
                              get_db, get_payment_manager)
from models import PaymentMethod
from services import queries
from services.appointments import AppointmentManager
from services.payments import PaymentManager

router = APIRouter(
    prefix="/api/v1/payments",
    tags=["Payments"],
    dependencies=[Depends(authenticate_user)],
)

# ==========================================
#              СПИСКИ
# ==========================================

@router.get("/pending", response_model=List[schemas.PendingGroupSchema])
def get_pending(manager: PaymentManager = Depends(get_payment_manager)):
    with domain_errors():
        return manager.pending_by_client()

@router.get("/paid", response_model=List[schemas.AppointmentSchema])
def get_paid(start: Optional[date] = None, end: Optional[date] = None, method: Optional[PaymentMethod] = None,
             min_amount: Optional[Decimal] = None, max_amount: Optional[Decimal] = None,
             db: Session = Depends(get_db)):
    with domain_errors():
        return queries.paid_appointments(db, start=start, end=end, method=method,
                                         min_amount=min_amount, max_amount=max_amount)

@router.get("/stats", response_model=schemas.PaymentStatsSchema)
def get_stats(manager: PaymentManager = Depends(get_payment_manager)):
    with domain_errors():
        return manager.payment_stats()

# ==========================================
#              ОПЛАТА
# ==========================================

@router.post("/settle", response_model=schemas.BatchResultSchema)
def settle_batch(data: forms.BatchSettleSchema, manager: PaymentManager = Depends(get_payment_manager)):
    with domain_errors():
        return manager.settle_many(data.appointment_ids, data.method)

@router.post("/clients/{client_id}/settle", response_model=schemas.BatchResultSchema)
def settle_client(client_id: int, data: forms.ClientSettleSchema,
                  manager: PaymentManager = Depends(get_payment_manager)):
    with domain_errors():
        return manager.settle_all_for_client(client_id, data.method, data.appointment_ids)

@router.post("/{appointment_id}/settle", response_model=schemas.SettlementSchema)
def settle_appointment(appointment_id: int, data: forms.SettleSchema,
                       manager: PaymentManager = Depends(get_payment_manager),
                       appointments: AppointmentManager = Depends(get_appointment_manager)):
    with domain_errors():
        result = manager.settle_one(appointment_id, data.method, data.update_whole_series, data.final_price)
        return {"appointment": appointments.get(result.appointment_id), "series": result.series}

# ==========================================
#              ИЗМЕНЕНИЕ
# ==========================================

@router.patch("/{appointment_id}/price", response_model=schemas.AppointmentSchema)
def update_price(appointment_id: int, data: forms.PriceUpdateSchema,
                 manager: PaymentManager = Depends(get_payment_manager)):
    with domain_errors():
        return manager.update_line_price(appointment_id, data.new_price, data.service_id)

@router.put("/{appointment_id}", response_model=schemas.AppointmentSchema)
def update_payment(appointment_id: int, data: forms.PaymentEditSchema,
                   manager: PaymentManager = Depends(get_payment_manager)):
    with domain_errors():
        return manager.update_payment_details(appointment_id, data.status, data.payment_status, data.final_price)
