# api/routers/wizard.py
from fastapi import APIRouter, Body, Depends
from typing import Any, Dict, List, Optional
from datetime import date

from api import schemas
from api.dependencies import authenticate_user, domain_errors, get_appointment_manager, get_clock
from api.routers.appointments import created_series
from services import wizard
from services.appointments import AppointmentManager
from services.wizard import WizardState

# Клиент хранит состояние мастера у себя и присылает его с каждым шагом
router = APIRouter(
    prefix="/api/v1/appointments/wizard",
    tags=["Wizard"],
    dependencies=[Depends(authenticate_user)],
)

@router.post("/start", response_model=WizardState)
def start_wizard(day: Optional[date] = None, clock=Depends(get_clock)):
    return wizard.reset(day or clock().date())

@router.post("/update", response_model=WizardState)
def update_wizard(state: WizardState = Body(...), values: Dict[str, Any] = Body(default={})):
    with domain_errors():
        return wizard.update(state, **values)

@router.post("/advance", response_model=WizardState)
def advance_wizard(state: WizardState):
    with domain_errors():
        return wizard.advance(state)

@router.post("/back", response_model=WizardState)
def back_wizard(state: WizardState):
    with domain_errors():
        return wizard.back(state)

@router.post("/submit", response_model=List[schemas.AppointmentSchema])
def submit_wizard(state: WizardState, manager: AppointmentManager = Depends(get_appointment_manager)):
    with domain_errors():
        data = wizard.to_appointment_input(state)
        return created_series(manager, manager.create(data))
