# api/routers/catalog.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
import logging

import models
import schemas as forms
from api import schemas
from api.dependencies import authenticate_user, domain_errors, get_db
from services.errors import NotFound
from services.session import reading, transaction

router = APIRouter(
    prefix="/api/v1",
    tags=["Catalog"],
    dependencies=[Depends(authenticate_user)],
)

@router.get("/services", response_model=List[schemas.ServiceSchema])
def get_services(db: Session = Depends(get_db)):
    with domain_errors(), reading(db, "list services"):
        return db.query(models.Service).order_by(models.Service.name).all()

@router.post("/services", response_model=schemas.ServiceSchema)
def create_service(data: forms.ServiceCreateSchema, db: Session = Depends(get_db)):
    with domain_errors():
        service = models.Service(**data.model_dump())
        with transaction(db, "create service"):
            db.add(service)
        logging.info(f"Service '{service.name}' created with id {service.id}")
        return service

@router.put("/services/{service_id}", response_model=schemas.ServiceSchema)
def update_service(service_id: int, data: forms.ServiceUpdateSchema, db: Session = Depends(get_db)):
    with domain_errors():
        with reading(db, "load service", service_id):
            service = db.get(models.Service, service_id)
        if not service:
            raise NotFound("Service", service_id)
        # Существующие записи хранят свои цены, каталог на них не влияет
        with transaction(db, "update service", service_id):
            for field, value in data.model_dump().items():
                setattr(service, field, value)
        return service
