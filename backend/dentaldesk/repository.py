import datetime
import math
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from . import db
from .errors import NotAuthenticated, ValidationError
from .models import Account, Appointment, AppointmentStatus, Patient, Transaction, TransactionKind
from .results import Result

logger = logging.getLogger(__name__)

# Campos que nunca vêm do cliente
PROTECTED_FIELDS = {"id", "user_id", "created_at", "updated_at"}

MAX_AMOUNT = 10 ** 8


@dataclass(frozen=True)
class OwnerContext:
    """Identidade autenticada que é dona das linhas consultadas."""
    account_id: str

    @classmethod
    def from_identity(cls, account_id):
        if not account_id:
            raise NotAuthenticated("Usuário não autenticado.")
        return cls(account_id=str(account_id))


# -------------------------------
# Conversores de campos
# -------------------------------

def as_payload(data):
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("O corpo da requisição deve ser um objeto JSON.")
    return data


def as_text(value):
    return "" if value is None else str(value).strip()


def as_date(value):
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"Data inválida: {value!r} (use YYYY-MM-DD).")


def as_optional_date(value):
    if value in (None, ""):
        return None
    return as_date(value)


def as_time(value):
    raw = as_text(value)
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.datetime.strptime(raw, fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise ValidationError(f"Horário inválido: {value!r} (use HH:MM).")


def as_duration(value):
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Duração inválida: {value!r}.")
    if minutes <= 0:
        raise ValidationError("A duração deve ser positiva.")
    return minutes


def as_amount(value):
    if isinstance(value, bool):
        raise ValidationError(f"Montante inválido: {value!r}.")
    try:
        amount = round(float(value), 2)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Montante inválido: {value!r}.")
    if not math.isfinite(amount):
        raise ValidationError(f"Montante inválido: {value!r}.")
    if amount < 0:
        raise ValidationError("O montante não pode ser negativo.")
    # Numeric(10, 2)
    if amount >= MAX_AMOUNT:
        raise ValidationError(f"O montante deve ser menor que {MAX_AMOUNT:.0f}.")
    return amount


def as_status(value):
    try:
        return AppointmentStatus(as_text(value)).value
    except ValueError:
        allowed = ", ".join(s.value for s in AppointmentStatus)
        raise ValidationError(f"Status inválido: {value!r} (permitidos: {allowed}).")


def as_kind(value):
    try:
        return TransactionKind(as_text(value)).value
    except ValueError:
        raise ValidationError(f"Tipo inválido: {value!r} (permitidos: income, expense).")


class EntityRepository:
    """CRUD genérico com filtro obrigatório pelo dono da linha."""

    model = None
    label = ""
    fields = {}
    required = ()

    def ordering(self):
        return (self.model.created_at.desc(),)

    def _owned(self, ctx):
        return self.model.query.filter_by(user_id=ctx.account_id)

    def _clean(self, data, partial):
        data = as_payload(data)
        cleaned = {}
        for key, value in data.items():
            if key in PROTECTED_FIELDS or key not in self.fields:
                continue
            cleaned[key] = self.fields[key](value)

        if partial:
            missing = [f for f in self.required if f in cleaned and cleaned[f] in ("", None)]
        else:
            missing = [f for f in self.required if cleaned.get(f) in ("", None)]
        if missing:
            raise ValidationError("Campos obrigatórios ausentes: " + ", ".join(missing))
        return cleaned

    def _fail(self, operation, ctx, exc, fallback):
        logger.exception(f"[{self.label}.{operation}] Falha para user_id={ctx.account_id}: {exc}")
        db.session.rollback()
        return Result.failure(f"Erro ao acessar {self.label}.", fallback)

    def get_all(self, ctx):
        try:
            rows = self._owned(ctx).order_by(*self.ordering()).all()
            return Result.success(rows)
        except SQLAlchemyError as e:
            return self._fail("get_all", ctx, e, [])

    def get_by_id(self, ctx, row_id):
        try:
            row = self._owned(ctx).filter_by(id=row_id).first()
            if row is None:
                return Result.missing()
            return Result.success(row)
        except SQLAlchemyError as e:
            return self._fail("get_by_id", ctx, e, None)

    def create(self, ctx, data):
        fields = self._clean(data, partial=False)
        try:
            row = self.model(**fields)
            row.user_id = ctx.account_id
            db.session.add(row)
            db.session.commit()
            return Result.success(row)
        except SQLAlchemyError as e:
            return self._fail("create", ctx, e, None)

    def update(self, ctx, row_id, changes):
        fields = self._clean(changes, partial=True)
        try:
            row = self._owned(ctx).filter_by(id=row_id).first()
            if row is None:
                return Result.missing()
            for key, value in fields.items():
                setattr(row, key, value)
            db.session.commit()
            return Result.success(row)
        except SQLAlchemyError as e:
            return self._fail("update", ctx, e, None)

    def delete(self, ctx, row_id):
        try:
            row = self._owned(ctx).filter_by(id=row_id).first()
            if row is None:
                return Result.missing(False)
            db.session.delete(row)
            db.session.commit()
            return Result.success(True)
        except SQLAlchemyError as e:
            return self._fail("delete", ctx, e, False)


class PatientRepository(EntityRepository):
    model = Patient
    label = "patients"
    fields = {
        "last_name": as_text,
        "first_name": as_text,
        "birth_date": as_optional_date,
        "phone": as_text,
        "email": as_text,
        "address": as_text,
        "medical_history": as_text,
        "allergies": as_text,
        "notes": as_text,
    }
    required = ("last_name", "first_name", "phone")


class AppointmentRepository(EntityRepository):
    model = Appointment
    label = "appointments"
    fields = {
        "patient_id": as_text,
        "date": as_date,
        "time": as_time,
        "duration": as_duration,
        "consultation_type": as_text,
        "status": as_status,
        "notes": as_text,
    }
    required = ("patient_id", "date", "time")

    def ordering(self):
        return (Appointment.date.asc(), Appointment.time.asc())


class TransactionRepository(EntityRepository):
    model = Transaction
    label = "transactions"
    fields = {
        "kind": as_kind,
        "amount": as_amount,
        "description": as_text,
        "date": as_date,
        "payment_mode": as_text,
        "reference": as_text,
    }
    required = ("kind", "amount", "date")

    def ordering(self):
        return (Transaction.date.desc(), Transaction.created_at.desc())

    def get_by_date_range(self, ctx, start, end):
        """Transações com data entre start e end (inclusive)."""
        start, end = as_date(start), as_date(end)
        try:
            rows = (
                self._owned(ctx)
                .filter(Transaction.date >= start, Transaction.date <= end)
                .order_by(*self.ordering())
                .all()
            )
            return Result.success(rows)
        except SQLAlchemyError as e:
            return self._fail("get_by_date_range", ctx, e, [])


class AccountRepository:
    """Perfil da conta autenticada (tabela users)."""

    profile_fields = {
        "first_name": as_text,
        "last_name": as_text,
        "clinic_name": as_text,
        "phone": as_text,
    }

    def get_current(self, ctx):
        try:
            account = db.session.get(Account, ctx.account_id)
            if account is None:
                return Result.missing()
            return Result.success(account)
        except SQLAlchemyError as e:
            logger.exception(f"[users.get_current] Falha para user_id={ctx.account_id}: {e}")
            db.session.rollback()
            return Result.failure("Erro ao carregar o perfil.")

    def update_profile(self, ctx, changes):
        changes = as_payload(changes)
        fields = {k: conv(changes[k]) for k, conv in self.profile_fields.items() if k in changes}
        try:
            account = db.session.get(Account, ctx.account_id)
            if account is None:
                return Result.missing()
            for key, value in fields.items():
                setattr(account, key, value)
            db.session.commit()
            return Result.success(account)
        except SQLAlchemyError as e:
            logger.exception(f"[users.update_profile] Falha para user_id={ctx.account_id}: {e}")
            db.session.rollback()
            return Result.failure("Erro ao atualizar o perfil.")


patients = PatientRepository()
appointments = AppointmentRepository()
transactions = TransactionRepository()
accounts = AccountRepository()
