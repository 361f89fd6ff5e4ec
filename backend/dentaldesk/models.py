import datetime
import enum
import uuid
from . import db


def new_uuid():
    return str(uuid.uuid4())


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


class TransactionKind(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


def _iso(value):
    return value.isoformat() if value is not None else None


class Account(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)
    first_name = db.Column(db.String(80), nullable=False, default="")
    last_name = db.Column(db.String(80), nullable=False, default="")
    clinic_name = db.Column(db.String(120), nullable=False, default="")
    role = db.Column(db.String(40), nullable=False, default="dentist")
    phone = db.Column(db.String(30), nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.datetime.utcnow,
                           onupdate=datetime.datetime.utcnow, nullable=False)

    patients = db.relationship("Patient", backref="owner", lazy=True, cascade="all, delete")
    appointments = db.relationship("Appointment", backref="owner", lazy=True, cascade="all, delete")
    transactions = db.relationship("Transaction", backref="owner", lazy=True, cascade="all, delete")

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "clinic_name": self.clinic_name,
            "role": self.role,
            "phone": self.phone,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Patient(db.Model):
    __tablename__ = "patients"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    last_name = db.Column(db.String(80), nullable=False)
    first_name = db.Column(db.String(80), nullable=False)
    birth_date = db.Column(db.Date)
    phone = db.Column(db.String(30), nullable=False)
    email = db.Column(db.String(120), nullable=False, default="")
    address = db.Column(db.String(200), nullable=False, default="")
    medical_history = db.Column(db.Text, nullable=False, default="")
    allergies = db.Column(db.Text, nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.datetime.utcnow,
                           onupdate=datetime.datetime.utcnow, nullable=False)

    appointments = db.relationship("Appointment", backref="patient", lazy=True, cascade="all, delete")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "birth_date": _iso(self.birth_date),
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "medical_history": self.medical_history,
            "allergies": self.allergies,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Appointment(db.Model):
    __tablename__ = "appointments"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    patient_id = db.Column(db.String(36), db.ForeignKey("patients.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(5), nullable=False)  # HH:MM
    duration = db.Column(db.Integer, nullable=False, default=30)
    consultation_type = db.Column(db.String(80), nullable=False, default="")
    status = db.Column(db.String(20), nullable=False, default=AppointmentStatus.PENDING.value)
    notes = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.datetime.utcnow,
                           onupdate=datetime.datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "patient_id": self.patient_id,
            "date": _iso(self.date),
            "time": self.time,
            "duration": self.duration,
            "consultation_type": self.consultation_type,
            "status": self.status,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    kind = db.Column(db.String(10), nullable=False)
    amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)  # EUR
    description = db.Column(db.String(255), nullable=False, default="")
    date = db.Column(db.Date, nullable=False)
    payment_mode = db.Column(db.String(40), nullable=False, default="")
    reference = db.Column(db.String(80), nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.datetime.utcnow,
                           onupdate=datetime.datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "kind": self.kind,
            "amount": float(self.amount),
            "description": self.description,
            "date": _iso(self.date),
            "payment_mode": self.payment_mode,
            "reference": self.reference,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class RevokedToken(db.Model):
    """Tokens encerrados via logout (jti do JWT)."""
    __tablename__ = "revoked_tokens"

    jti = db.Column(db.String(36), primary_key=True)
    user_id = db.Column(db.String(36), nullable=False)
    revoked_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, nullable=False)
