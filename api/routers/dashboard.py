# api/routers/dashboard.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from api import schemas
from api.dependencies import authenticate_user, domain_errors, get_clock, get_db
from services import queries

router = APIRouter(
    prefix="/api/v1",
    tags=["Dashboard"],
    dependencies=[Depends(authenticate_user)],
)

@router.get("/dashboard", response_model=schemas.DashboardSchema)
def get_dashboard(day: Optional[date] = None, db: Session = Depends(get_db), clock=Depends(get_clock)):
    with domain_errors():
        return queries.dashboard_summary(db, day or clock().date())
