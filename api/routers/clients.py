# api/routers/clients.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Literal, Optional
from datetime import date
import logging

import models
import schemas as forms
from api import schemas
from api.dependencies import authenticate_user, domain_errors, get_db
from services import queries
from services.errors import NotFound
from services.session import reading, transaction

router = APIRouter(
    prefix="/api/v1",
    tags=["Clients"],
    dependencies=[Depends(authenticate_user)],
)

def _get_client(db: Session, client_id: int) -> models.Client:
    with reading(db, "load client", client_id):
        client = db.get(models.Client, client_id)
    if not client:
        raise NotFound("Client", client_id)
    return client

@router.get("/clients", response_model=List[schemas.ClientSchema])
def get_clients(search: Optional[str] = None, db: Session = Depends(get_db)):
    with domain_errors():
        return queries.search_clients(db, search)

@router.post("/clients", response_model=schemas.ClientSchema)
def create_client(data: forms.ClientCreateSchema, db: Session = Depends(get_db)):
    with domain_errors():
        client = models.Client(name=data.name.strip(), phone=data.phone or None)
        with transaction(db, "create client"):
            db.add(client)
        logging.info(f"Client '{client.name}' created with id {client.id}")
        return client

@router.put("/clients/{client_id}", response_model=schemas.ClientSchema)
def update_client(client_id: int, data: forms.ClientUpdateSchema, db: Session = Depends(get_db)):
    with domain_errors():
        client = _get_client(db, client_id)
        with transaction(db, "update client", client_id):
            client.name = data.name.strip()
            client.phone = data.phone or None
        return client

@router.delete("/clients/{client_id}")
def delete_client(client_id: int, db: Session = Depends(get_db)):
    with domain_errors():
        client = _get_client(db, client_id)
        with reading(db, "count client appointments", client_id):
            owned = db.query(models.Appointment).filter(models.Appointment.client_id == client_id).count()
        if owned:
            raise HTTPException(status_code=409, detail=f"Client {client_id} still has {owned} appointments")
        with transaction(db, "delete client", client_id):
            db.delete(client)
        logging.info(f"Client {client_id} deleted")
        return {"message": "Client deleted"}

@router.get("/clients/{client_id}/history", response_model=schemas.ClientHistorySchema)
def get_client_history(client_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None,
                       tab: Literal["all", "pending", "paid"] = "all", search: Optional[str] = None,
                       db: Session = Depends(get_db)):
    with domain_errors():
        client = _get_client(db, client_id)
        everything = queries.client_history(db, client_id)
        appointments = queries.client_history(db, client_id, start_date=start_date, end_date=end_date,
                                              tab=tab, search=search)
        return {
            "client": client,
            "appointments": appointments,
            "statistics": queries.client_statistics(everything),
        }
