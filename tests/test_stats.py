from datetime import date, datetime

from dentaldesk import db
from dentaldesk.models import Appointment, Patient, Transaction
from dentaldesk.stats import (
    DashboardStats,
    attendance_rate,
    compute_dashboard_stats,
    filter_patients,
    filter_transactions,
    finance_summary,
    growth_percentage,
    month_window,
    previous_month_window,
    recent_activity,
    round_percent,
    upcoming_appointments,
)


def test_growth_is_zero_when_previous_period_is_zero():
    assert growth_percentage(500, 0) == 0
    assert growth_percentage(0, 0) == 0
    assert growth_percentage(12, None) == 0


def test_revenue_growth_scenario():
    assert round_percent(growth_percentage(1200, 1000)) == 20
    assert round_percent(growth_percentage(500, 0)) == 0
    assert round_percent(growth_percentage(800, 1000)) == -20


def test_round_percent_rounds_half_up():
    assert round_percent(12.5) == 13
    assert round_percent(-12.5) == -12
    assert round_percent(33.33) == 33


def test_attendance_rate_without_appointments_is_zero():
    assert attendance_rate(0, 0) == 0
    assert attendance_rate(3, 4) == 75.0


def test_month_windows_roll_over_the_year():
    assert month_window(date(2026, 12, 19)) == (date(2026, 12, 1), date(2027, 1, 1))
    assert previous_month_window(date(2027, 1, 5)) == (date(2026, 12, 1), date(2027, 1, 1))
    assert previous_month_window(date(2026, 3, 31)) == (date(2026, 2, 1), date(2026, 3, 1))


def test_upcoming_excludes_cancelled_and_orders_soonest_first():
    today = date(2026, 3, 10)
    appts = [
        Appointment(date=date(2026, 3, 14), time="10:00", status="confirmed"),
        Appointment(date=date(2026, 3, 12), time="09:00", status="cancelled"),
        Appointment(date=date(2026, 3, 11), time="16:00", status="confirmed"),
        Appointment(date=date(2026, 3, 11), time="08:30", status="pending"),
        Appointment(date=date(2026, 3, 9), time="08:30", status="confirmed"),
        Appointment(date=date(2026, 3, 18), time="08:30", status="confirmed"),
    ]

    upcoming = upcoming_appointments(appts, today)

    assert [(a.date.day, a.time) for a in upcoming] == [(11, "08:30"), (11, "16:00"), (14, "10:00")]
    assert all(a.status != "cancelled" for a in upcoming)


def test_upcoming_is_limited_to_five():
    today = date(2026, 3, 10)
    appts = [Appointment(date=date(2026, 3, 10 + i), time="09:00", status="confirmed") for i in range(7)]
    assert len(upcoming_appointments(appts, today)) == 5


def test_finance_summary_compares_with_previous_period():
    current = [
        Transaction(kind="income", amount=1200, date=date(2026, 3, 2)),
        Transaction(kind="expense", amount=200, date=date(2026, 3, 3)),
    ]
    previous = [
        Transaction(kind="income", amount=1000, date=date(2026, 2, 2)),
        Transaction(kind="expense", amount=500, date=date(2026, 2, 3)),
    ]

    summary = finance_summary(current, previous)

    assert summary["total_income"] == 1200
    assert summary["total_expenses"] == 200
    assert summary["profit"] == 1000
    assert summary["income_growth"] == 20
    assert summary["expense_growth"] == -60
    assert summary["profit_growth"] == 100


def test_finance_summary_without_history_has_no_growth():
    summary = finance_summary([Transaction(kind="income", amount=500, date=date(2026, 3, 2))], [])
    assert summary["income_growth"] == 0
    assert summary["profit_growth"] == 0


def test_list_filters():
    people = [
        Patient(last_name="Dupont", first_name="Jeanne", email="jd@example.com", phone="0611"),
        Patient(last_name="Bernard", first_name="Luc", email="luc@example.com", phone="0722"),
    ]
    assert [p.last_name for p in filter_patients(people, "dup")] == ["Dupont"]
    assert [p.last_name for p in filter_patients(people, "0722")] == ["Bernard"]
    assert len(filter_patients(people, "")) == 2

    entries = [
        Transaction(kind="income", amount=80, description="Détartrage", date=date(2026, 3, 1)),
        Transaction(kind="expense", amount=40, description="Gants", date=date(2026, 3, 1)),
    ]
    assert [t.description for t in filter_transactions(entries, "expense")] == ["Gants"]
    assert [t.description for t in filter_transactions(entries, "all", "détar")] == ["Détartrage"]


def test_recent_activity_merges_newest_first():
    people = [Patient(first_name="Jeanne", last_name="Dupont", created_at=datetime(2026, 3, 5, 10, 0))]
    entries = [Transaction(kind="income", amount=80, date=date(2026, 3, 6))]

    activity = recent_activity(people, entries)

    assert [a["type"] for a in activity] == ["finance", "patient"]
    assert activity[0]["title"] == "Receita: 80.00 €"


def _seed_month(ctx, other_ctx):
    p1 = Patient(user_id=ctx.account_id, last_name="A", first_name="A", phone="1", created_at=datetime(2026, 3, 2, 9))
    p2 = Patient(user_id=ctx.account_id, last_name="B", first_name="B", phone="2", created_at=datetime(2026, 3, 14, 18))
    p3 = Patient(user_id=ctx.account_id, last_name="C", first_name="C", phone="3", created_at=datetime(2026, 2, 10, 9))
    intruder = Patient(user_id=other_ctx.account_id, last_name="X", first_name="X", phone="9",
                       created_at=datetime(2026, 3, 3, 9))
    db.session.add_all([p1, p2, p3, intruder])
    db.session.flush()

    def appt(day, status, owner=ctx):
        return Appointment(user_id=owner.account_id, patient_id=p1.id, date=day, time="09:00", status=status)

    db.session.add_all([
        appt(date(2026, 3, 15), "completed"),
        appt(date(2026, 3, 15), "pending"),
        appt(date(2026, 3, 20), "completed"),
        appt(date(2026, 3, 22), "cancelled"),
        appt(date(2026, 2, 11), "completed"),
        appt(date(2026, 2, 12), "completed"),
        appt(date(2026, 3, 15), "completed", owner=other_ctx),
    ])

    def tx(kind, amount, day, owner=ctx):
        return Transaction(user_id=owner.account_id, kind=kind, amount=amount, date=day)

    db.session.add_all([
        tx("income", 700, date(2026, 3, 1)),
        tx("income", 500, date(2026, 3, 31)),
        tx("expense", 300, date(2026, 3, 5)),
        tx("income", 1000, date(2026, 2, 28)),
        tx("income", 9999, date(2026, 3, 10), owner=other_ctx),
    ])
    db.session.commit()


def test_compute_dashboard_stats(ctx, other_ctx):
    _seed_month(ctx, other_ctx)

    result = compute_dashboard_stats(ctx, date(2026, 3, 15))

    assert result.ok
    stats = result.value
    assert stats.total_patients == 2
    assert stats.patient_growth == 100
    assert stats.today_appointments == 2
    assert stats.attendance_rate == 50.0
    assert stats.appointment_growth == 100
    assert stats.monthly_revenue == 1200
    assert stats.revenue_growth == 20


def test_compute_dashboard_stats_with_no_data_is_all_zero(ctx):
    result = compute_dashboard_stats(ctx, date(2026, 3, 15))
    assert result.ok
    assert result.value == DashboardStats()


def test_compute_dashboard_stats_failure_returns_zeros(ctx, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(db.session, "query", broken)

    result = compute_dashboard_stats(ctx, date(2026, 3, 15))

    assert result.failed
    assert result.value.to_dict() == DashboardStats().to_dict()
