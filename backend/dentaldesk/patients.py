from flask import request
from flask_restx import Namespace, fields, Resource
from .errors import ValidationError
from .repository import patients
from .session import token_required
from .stats import filter_patients

patients_ns = Namespace("patients", description="Gerenciamento de pacientes")

patient_model = patients_ns.model("Patient", {
    "last_name": fields.String(required=True, description="Sobrenome"),
    "first_name": fields.String(required=True, description="Nome"),
    "phone": fields.String(required=True, description="Telefone"),
    "birth_date": fields.String(description="Data de nascimento (YYYY-MM-DD)"),
    "email": fields.String(description="E-mail do paciente"),
    "address": fields.String(description="Endereço"),
    "medical_history": fields.String(description="Antecedentes médicos"),
    "allergies": fields.String(description="Alergias"),
    "notes": fields.String(description="Observações"),
})


def error_response(result):
    if result.not_found:
        return {"status": "error", "message": "Paciente não encontrado."}, 404
    return {"status": "error", "message": result.error}, 500


@patients_ns.route("/")
class PatientList(Resource):
    @token_required
    def get(ctx, self):
        """
        Listagem de pacientes do usuário autenticado, com busca opcional:
        /api/patients/?search=dupont
        """
        result = patients.get_all(ctx)
        if not result.ok:
            return error_response(result)

        rows = filter_patients(result.value, request.args.get("search", "", type=str))
        return {
            "status": "success",
            "patients": [p.to_dict() for p in rows],
            "count": len(rows),
        }, 200

    @token_required
    @patients_ns.expect(patient_model, validate=True)
    def post(ctx, self):
        """
        Cria um novo paciente para o usuário autenticado.
        """
        try:
            result = patients.create(ctx, request.get_json())
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 201


@patients_ns.route("/<string:patient_id>")
class PatientDetail(Resource):
    @token_required
    def get(ctx, self, patient_id):
        """
        Busca um paciente específico, apenas se pertencer ao usuário autenticado.
        """
        result = patients.get_by_id(ctx, patient_id)
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 200

    @token_required
    @patients_ns.expect(patient_model, validate=False)
    def put(ctx, self, patient_id):
        """
        Atualiza dados de um paciente (JSON parcial permitido).
        """
        try:
            result = patients.update(ctx, patient_id, request.get_json() or {})
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 200

    @token_required
    def delete(ctx, self, patient_id):
        """
        Exclui um paciente (e suas consultas).
        """
        result = patients.delete(ctx, patient_id)
        if not result.ok:
            return error_response(result)
        return {"message": "Paciente excluído com sucesso!"}, 200
