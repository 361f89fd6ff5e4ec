import datetime
import logging
import math
from dataclasses import asdict, dataclass

import pytz
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .models import Appointment, AppointmentStatus, Patient, Transaction, TransactionKind
from .results import Result

logger = logging.getLogger(__name__)


# -------------------------------
# Datas e janelas mensais
# -------------------------------

def clinic_today(tz_name="UTC"):
    """Data de hoje no fuso horário da clínica."""
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Fuso horário desconhecido '{tz_name}', usando UTC.")
        tz = pytz.UTC
    return datetime.datetime.now(tz).date()


def month_window(day):
    """[primeiro dia do mês, primeiro dia do mês seguinte)"""
    start = day.replace(day=1)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def previous_month_window(day):
    start, _ = month_window(day)
    return month_window(start - datetime.timedelta(days=1))


def _midnight(day):
    return datetime.datetime.combine(day, datetime.time.min)


# -------------------------------
# Percentuais
# -------------------------------

def growth_percentage(current, previous):
    """Variação percentual; 0 quando o período anterior é 0 (inclusive se o atual > 0)."""
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def round_percent(value):
    # arredondamento "half up", igual ao do front-end
    return int(math.floor(value + 0.5))


def attendance_rate(completed, total):
    if total == 0:
        return 0.0
    return completed / total * 100


# -------------------------------
# Estatísticas do painel
# -------------------------------

@dataclass(frozen=True)
class DashboardStats:
    total_patients: int = 0
    today_appointments: int = 0
    monthly_revenue: float = 0.0
    attendance_rate: float = 0.0
    patient_growth: int = 0
    revenue_growth: int = 0
    appointment_growth: int = 0

    def to_dict(self):
        return asdict(self)


def build_dashboard_stats(today, patient_dates, appointment_rows, revenue_rows):
    """
    Calcula as estatísticas a partir de linhas já carregadas cobrindo o mês
    anterior e o mês corrente.
    - patient_dates: datas de criação dos pacientes
    - appointment_rows: pares (data, status)
    - revenue_rows: pares (data, montante) apenas de receitas
    """
    cur_start, cur_end = month_window(today)
    prev_start, prev_end = previous_month_window(today)

    def in_current(d):
        return cur_start <= d < cur_end

    def in_previous(d):
        return prev_start <= d < prev_end

    current_patients = sum(1 for d in patient_dates if in_current(d))
    previous_patients = sum(1 for d in patient_dates if in_previous(d))

    current_appts = [(d, s) for d, s in appointment_rows if in_current(d)]
    previous_appts = sum(1 for d, _ in appointment_rows if in_previous(d))
    completed = sum(1 for _, s in current_appts if s == AppointmentStatus.COMPLETED.value)
    today_count = sum(1 for d, _ in current_appts if d == today)

    revenue = round(sum(float(a) for d, a in revenue_rows if in_current(d)), 2)
    previous_revenue = round(sum(float(a) for d, a in revenue_rows if in_previous(d)), 2)

    return DashboardStats(
        total_patients=current_patients,
        today_appointments=today_count,
        monthly_revenue=revenue,
        attendance_rate=round(attendance_rate(completed, len(current_appts)), 1),
        patient_growth=round_percent(growth_percentage(current_patients, previous_patients)),
        revenue_growth=round_percent(growth_percentage(revenue, previous_revenue)),
        appointment_growth=round_percent(growth_percentage(len(current_appts), previous_appts)),
    )


def compute_dashboard_stats(ctx, today):
    """
    Estatísticas do mês de `today` comparadas ao mês anterior.
    Uma consulta por tabela cobre os dois meses, na mesma transação,
    para que os dois períodos venham do mesmo retrato dos dados.
    """
    prev_start, _ = previous_month_window(today)
    _, cur_end = month_window(today)

    try:
        patient_dates = [
            created.date()
            for (created,) in db.session.query(Patient.created_at)
            .filter(
                Patient.user_id == ctx.account_id,
                Patient.created_at >= _midnight(prev_start),
                Patient.created_at < _midnight(cur_end),
            )
            .all()
        ]
        appointment_rows = [
            (row.date, row.status)
            for row in db.session.query(Appointment.date, Appointment.status)
            .filter(
                Appointment.user_id == ctx.account_id,
                Appointment.date >= prev_start,
                Appointment.date < cur_end,
            )
            .all()
        ]
        revenue_rows = [
            (row.date, row.amount)
            for row in db.session.query(Transaction.date, Transaction.amount)
            .filter(
                Transaction.user_id == ctx.account_id,
                Transaction.kind == TransactionKind.INCOME.value,
                Transaction.date >= prev_start,
                Transaction.date < cur_end,
            )
            .all()
        ]
    except SQLAlchemyError as e:
        logger.exception(f"[dashboard.stats] Falha para user_id={ctx.account_id}: {e}")
        db.session.rollback()
        return Result.failure("Erro ao carregar dados do painel.", DashboardStats())

    return Result.success(build_dashboard_stats(today, patient_dates, appointment_rows, revenue_rows))


# -------------------------------
# Listas do painel
# -------------------------------

def upcoming_appointments(appointments, today, days=7, limit=5):
    """Consultas de hoje até today+days, exceto canceladas, da mais próxima para a mais distante."""
    horizon = today + datetime.timedelta(days=days)
    upcoming = [
        a for a in appointments
        if today <= a.date <= horizon and a.status != AppointmentStatus.CANCELLED.value
    ]
    upcoming.sort(key=lambda a: (a.date, a.time))
    return upcoming[:limit]


def _as_datetime(value):
    if isinstance(value, datetime.datetime):
        return value
    return _midnight(value)


def recent_activity(patients, transactions, limit=5):
    """Últimos pacientes (3) e transações (2), do mais novo para o mais antigo."""
    activities = [
        {
            "type": "patient",
            "title": f"Novo paciente: {p.first_name} {p.last_name}",
            "date": _as_datetime(p.created_at),
        }
        for p in patients[:3]
    ]
    for t in transactions[:2]:
        label = "Receita" if t.kind == TransactionKind.INCOME.value else "Despesa"
        activities.append({
            "type": "finance",
            "title": f"{label}: {float(t.amount):.2f} €",
            "date": _as_datetime(t.date),
        })

    activities.sort(key=lambda a: a["date"], reverse=True)
    return [dict(a, date=a["date"].isoformat()) for a in activities[:limit]]


# -------------------------------
# Finanças
# -------------------------------

def _total(transactions, kind):
    return round(sum(float(t.amount) for t in transactions if t.kind == kind.value), 2)


def finance_summary(current, previous):
    """Receitas, despesas e lucro de um período, com crescimento em relação ao período anterior."""
    income = _total(current, TransactionKind.INCOME)
    expenses = _total(current, TransactionKind.EXPENSE)
    profit = round(income - expenses, 2)

    prev_income = _total(previous, TransactionKind.INCOME)
    prev_expenses = _total(previous, TransactionKind.EXPENSE)
    prev_profit = round(prev_income - prev_expenses, 2)

    # lucro pode ser negativo: divide pelo valor absoluto
    profit_growth = (profit - prev_profit) / abs(prev_profit) * 100 if prev_profit else 0.0

    return {
        "total_income": income,
        "total_expenses": expenses,
        "profit": profit,
        "income_growth": round_percent(growth_percentage(income, prev_income)),
        "expense_growth": round_percent(growth_percentage(expenses, prev_expenses)),
        "profit_growth": round_percent(profit_growth),
    }


def split_by_month(transactions, day):
    """Separa transações em (mês de `day`, mês anterior)."""
    cur_start, cur_end = month_window(day)
    prev_start, prev_end = previous_month_window(day)
    current = [t for t in transactions if cur_start <= t.date < cur_end]
    previous = [t for t in transactions if prev_start <= t.date < prev_end]
    return current, previous


# -------------------------------
# Filtros das listagens
# -------------------------------

def filter_patients(patients, term):
    term = (term or "").strip()
    if not term:
        return list(patients)
    lowered = term.lower()
    return [
        p for p in patients
        if lowered in (p.last_name or "").lower()
        or lowered in (p.first_name or "").lower()
        or lowered in (p.email or "").lower()
        or term in (p.phone or "")
    ]


def filter_transactions(transactions, kind=None, term=None):
    filtered = list(transactions)
    if kind and kind != "all":
        filtered = [t for t in filtered if t.kind == kind]
    term = (term or "").strip().lower()
    if term:
        filtered = [
            t for t in filtered
            if term in (t.description or "").lower() or term in (t.kind or "").lower()
        ]
    return filtered


def appointments_on(appointments, day):
    return sorted((a for a in appointments if a.date == day), key=lambda a: a.time)
