from flask import current_app
from flask_restx import Namespace, Resource
from .repository import appointments, patients, transactions
from .session import token_required
from .stats import clinic_today, compute_dashboard_stats, recent_activity, upcoming_appointments

dashboard_ns = Namespace("dashboard", description="Painel do consultório")


@dashboard_ns.route("/")
class Dashboard(Resource):
    @token_required
    def get(ctx, self):
        """
        Estatísticas do mês, próximas consultas (7 dias) e atividade recente.
        Se alguma consulta falhar, os valores vêm zerados/vazios e "status" é "partial".
        """
        today = clinic_today(current_app.config["CLINIC_TIMEZONE"])

        stats = compute_dashboard_stats(ctx, today)
        appts = appointments.get_all(ctx)
        recent_patients = patients.get_all(ctx)
        recent_transactions = transactions.get_all(ctx)

        results = (stats, appts, recent_patients, recent_transactions)
        errors = [r.error for r in results if not r.ok]

        return {
            "status": "success" if not errors else "partial",
            "errors": errors,
            "today": today.isoformat(),
            "stats": stats.value.to_dict(),
            "upcoming_appointments": [a.to_dict() for a in upcoming_appointments(appts.value, today)],
            "recent_activity": recent_activity(recent_patients.value, recent_transactions.value),
        }, 200
