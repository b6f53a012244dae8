import sys
import os
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Основной engine приложения тоже в памяти, Postgres для тестов не нужен
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Добавляем корень проекта в путь, чтобы видеть api/ и services/
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base
from api.main import app
from api.dependencies import get_clock, get_db, get_notifier
from services.appointments import AppointmentManager
from services.notifications import CollectingNotifier
from services.payments import PaymentManager
import models

# Используем базу в оперативной памяти для тестов (быстро и чисто)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# "Сейчас" во всех тестах: пятница, 1 марта 2024, 08:00
NOW = datetime(2024, 3, 1, 8, 0)


@pytest.fixture(scope="function")
def db_session():
    """Создает чистую БД для каждого теста"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def appointments(db_session, notifier, clock):
    return AppointmentManager(db_session, notifier=notifier, clock=clock)


@pytest.fixture
def payments(db_session, notifier, clock):
    return PaymentManager(db_session, notifier=notifier, clock=clock)


@pytest.fixture
def seed(db_session):
    """Два клиента и три услуги; у 'Escova' нет длительности."""
    ana = models.Client(name="Ana Souza", phone="11 99999-0001")
    bruno = models.Client(name="Bruno Lima", phone=None)
    corte = models.Service(name="Corte feminino", price=Decimal("80.00"), duration_minutes=60)
    manicure = models.Service(name="Manicure", price=Decimal("35.00"), duration_minutes=45)
    escova = models.Service(name="Escova", price=Decimal("50.00"), duration_minutes=None)
    db_session.add_all([ana, bruno, corte, manicure, escova])
    db_session.commit()
    return {
        "ana": ana.id, "bruno": bruno.id,
        "corte": corte.id, "manicure": manicure.id, "escova": escova.id,
    }


@pytest.fixture(scope="function")
def client(db_session, notifier, clock):
    """Создает тестовый клиент API с подмененной БД"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
