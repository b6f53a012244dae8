import enum
from sqlalchemy import (Column, Integer, String, Text, ForeignKey, Numeric,
                        DateTime, Boolean, JSON, CheckConstraint, func)
from sqlalchemy.orm import relationship
from database import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    PENDING_PAYMENT = "pending_payment"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# NULL в БД = "не определен"
class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    PIX = "pix"


class Recurrence(str, enum.Enum):
    NONE = "none"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class Weekday(str, enum.Enum):
    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"


# Единственные допустимые пары статус/оплата
CONSISTENT_PAIRS_SQL = (
    "(status IN ('scheduled', 'cancelled') AND payment_status IS NULL) OR "
    "(status = 'pending_payment' AND payment_status = 'pending') OR "
    "(status = 'completed' AND payment_status = 'paid')"
)


class Client(Base):
    __tablename__ = "clients"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    appointments = relationship("Appointment", back_populates="client")


class Service(Base):
    __tablename__ = "services"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=True)

    lines = relationship("AppointmentServiceLine", back_populates="service")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint(CONSISTENT_PAIRS_SQL, name="ck_appointments_status_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=AppointmentStatus.SCHEDULED.value)
    payment_status = Column(String(20), nullable=True)
    final_price = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    payment_method = Column(String(20), nullable=True)
    payment_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    # Повторяющиеся записи
    recurrence = Column(String(20), nullable=False, default=Recurrence.NONE.value)
    recurrence_days = Column(JSON, nullable=True)
    recurrence_count = Column(Integer, nullable=False, default=1)
    recurrence_group_id = Column(String(36), nullable=True, index=True)
    is_parent = Column(Boolean, nullable=False, default=False)
    parent_appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True, index=True)

    client = relationship("Client", back_populates="appointments")
    lines = relationship(
        "AppointmentServiceLine",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentServiceLine.id",
    )

    @property
    def series_parent_id(self):
        if self.parent_appointment_id is not None:
            return self.parent_appointment_id
        return self.id if self.is_parent else None

    @property
    def is_settled(self):
        return (self.status == AppointmentStatus.COMPLETED.value
                or self.payment_status == PaymentStatus.PAID.value)

    @property
    def client_name(self):
        return self.client.name if self.client else None


class AppointmentServiceLine(Base):
    __tablename__ = "appointment_services"
    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    final_price = Column(Numeric(10, 2), nullable=False, default=0)

    appointment = relationship("Appointment", back_populates="lines")
    service = relationship("Service", back_populates="lines")

    @property
    def service_name(self):
        return self.service.name if self.service else None
