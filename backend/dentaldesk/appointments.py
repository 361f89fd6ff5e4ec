from flask import request
from flask_restx import Namespace, fields, Resource
from .errors import ValidationError
from .models import AppointmentStatus
from .repository import appointments, as_date
from .session import token_required
from .stats import appointments_on

appointments_ns = Namespace("appointments", description="Agenda de consultas")

appointment_model = appointments_ns.model("Appointment", {
    "patient_id": fields.String(required=True, description="ID do paciente"),
    "date": fields.String(required=True, description="Data da consulta (YYYY-MM-DD)"),
    "time": fields.String(required=True, description="Horário (HH:MM)"),
    "duration": fields.Integer(description="Duração em minutos", default=30),
    "consultation_type": fields.String(description="Tipo de consulta"),
    "status": fields.String(description="Status", enum=[s.value for s in AppointmentStatus]),
    "notes": fields.String(description="Observações"),
})

status_model = appointments_ns.model("AppointmentStatus", {
    "status": fields.String(required=True, enum=[s.value for s in AppointmentStatus]),
})


def error_response(result):
    if result.not_found:
        return {"status": "error", "message": "Consulta não encontrada."}, 404
    return {"status": "error", "message": result.error}, 500


@appointments_ns.route("/")
class AppointmentList(Resource):
    @token_required
    def get(ctx, self):
        """
        Lista as consultas por data crescente. Com ?date=YYYY-MM-DD,
        apenas as do dia, ordenadas por horário.
        """
        result = appointments.get_all(ctx)
        if not result.ok:
            return error_response(result)

        rows = result.value
        day = request.args.get("date")
        if day:
            try:
                rows = appointments_on(rows, as_date(day))
            except ValidationError as e:
                return {"status": "error", "message": str(e)}, 400

        return {
            "status": "success",
            "appointments": [a.to_dict() for a in rows],
            "count": len(rows),
        }, 200

    @token_required
    @appointments_ns.expect(appointment_model, validate=True)
    def post(ctx, self):
        """
        Registra uma nova consulta (sem verificação de conflito de horário).
        """
        try:
            result = appointments.create(ctx, request.get_json())
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 201


@appointments_ns.route("/<string:appointment_id>")
class AppointmentDetail(Resource):
    @token_required
    def get(ctx, self, appointment_id):
        result = appointments.get_by_id(ctx, appointment_id)
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 200

    @token_required
    @appointments_ns.expect(appointment_model, validate=False)
    def put(ctx, self, appointment_id):
        """
        Atualiza uma consulta (JSON parcial permitido).
        """
        try:
            result = appointments.update(ctx, appointment_id, request.get_json() or {})
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 200

    @token_required
    def delete(ctx, self, appointment_id):
        result = appointments.delete(ctx, appointment_id)
        if not result.ok:
            return error_response(result)
        return {"message": "Consulta excluída com sucesso!"}, 200


@appointments_ns.route("/<string:appointment_id>/status")
class AppointmentStatusUpdate(Resource):
    @token_required
    @appointments_ns.expect(status_model, validate=True)
    def patch(ctx, self, appointment_id):
        """
        Atualização rápida do status.
        """
        data = request.get_json()
        try:
            result = appointments.update(ctx, appointment_id, {"status": data["status"]})
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 200
