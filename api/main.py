# api/main.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from sqlalchemy.orm import Session

import models
from config import LOG_LEVEL
from database import SessionLocal, engine
from api.routers import appointments, catalog, clients, dashboard, payments, wizard

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')

# --- Создание начальных данных ---
def create_initial_data(db: Session):
    if db.query(models.Service).count() == 0:
        logging.info("Creating initial services data...")
        db.add_all([
            models.Service(name="Corte feminino", price=80, duration_minutes=60),
            models.Service(name="Manicure", price=35, duration_minutes=45),
            models.Service(name="Pedicure", price=40, duration_minutes=45),
            models.Service(name="Escova", price=50),
            models.Service(name="Limpeza de pele", price=120, duration_minutes=90),
        ])
        db.commit()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Создаем таблицы в БД
    models.Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        create_initial_data(db)
    yield

app = FastAPI(title="Salon Agenda API", lifespan=lifespan)

# Подключаем роутеры
app.include_router(catalog.router)
app.include_router(clients.router)
app.include_router(appointments.router)
app.include_router(wizard.router)
app.include_router(payments.router)
app.include_router(dashboard.router)

@app.get("/")
def read_root():
    return {"message": "Salon Agenda API is running"}
