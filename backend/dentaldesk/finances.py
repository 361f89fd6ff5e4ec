import datetime
import re
from flask import current_app, request
from flask_restx import Namespace, fields, Resource
from .errors import ValidationError
from .models import TransactionKind
from .repository import as_date, transactions
from .session import token_required
from .stats import clinic_today, filter_transactions, finance_summary, month_window, previous_month_window, split_by_month

finances_ns = Namespace("finances", description="Receitas e despesas")

MONTH_RE = re.compile(r"^\d{4}-\d{2}$")

transaction_model = finances_ns.model("Transaction", {
    "kind": fields.String(required=True, enum=[k.value for k in TransactionKind], description="income ou expense"),
    "amount": fields.Float(required=True, description="Montante em EUR"),
    "date": fields.String(required=True, description="Data da transação (YYYY-MM-DD)"),
    "description": fields.String(description="Descrição"),
    "payment_mode": fields.String(description="Forma de pagamento"),
    "reference": fields.String(description="Referência"),
})


def error_response(result):
    if result.not_found:
        return {"status": "error", "message": "Transação não encontrada."}, 404
    return {"status": "error", "message": result.error}, 500


@finances_ns.route("/")
class TransactionList(Resource):
    @token_required
    def get(ctx, self):
        """
        Lista as transações (data decrescente). Filtros opcionais:
        ?kind=income|expense&search=texto&start=YYYY-MM-DD&end=YYYY-MM-DD
        """
        start = request.args.get("start")
        end = request.args.get("end")
        try:
            if start or end:
                if not (start and end):
                    return {"status": "error", "message": "Informe start e end juntos."}, 400
                result = transactions.get_by_date_range(ctx, start, end)
            else:
                result = transactions.get_all(ctx)
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if not result.ok:
            return error_response(result)

        rows = filter_transactions(result.value, request.args.get("kind"), request.args.get("search"))
        return {
            "status": "success",
            "transactions": [t.to_dict() for t in rows],
            "count": len(rows),
        }, 200

    @token_required
    @finances_ns.expect(transaction_model, validate=True)
    def post(ctx, self):
        try:
            result = transactions.create(ctx, request.get_json())
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 201


@finances_ns.route("/summary")
class TransactionSummary(Resource):
    @token_required
    def get(ctx, self):
        """
        Receitas, despesas e lucro do mês (?month=YYYY-MM, padrão: mês corrente)
        comparados ao mês anterior.
        """
        month = request.args.get("month")
        if month and not MONTH_RE.match(month):
            return {"status": "error", "message": "Mês inválido (use YYYY-MM)."}, 400
        try:
            day = as_date(f"{month}-01") if month else clinic_today(current_app.config["CLINIC_TIMEZONE"])
        except ValidationError:
            return {"status": "error", "message": "Mês inválido (use YYYY-MM)."}, 400

        prev_start, _ = previous_month_window(day)
        cur_start, cur_end = month_window(day)
        result = transactions.get_by_date_range(ctx, prev_start, cur_end - datetime.timedelta(days=1))
        if not result.ok:
            return error_response(result)

        current, previous = split_by_month(result.value, day)
        return {
            "status": "success",
            "month": cur_start.strftime("%Y-%m"),
            "summary": finance_summary(current, previous),
        }, 200


@finances_ns.route("/<string:transaction_id>")
class TransactionDetail(Resource):
    @token_required
    def get(ctx, self, transaction_id):
        result = transactions.get_by_id(ctx, transaction_id)
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 200

    @token_required
    @finances_ns.expect(transaction_model, validate=False)
    def put(ctx, self, transaction_id):
        """
        Atualiza uma transação (JSON parcial permitido).
        """
        try:
            result = transactions.update(ctx, transaction_id, request.get_json() or {})
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if not result.ok:
            return error_response(result)
        return result.value.to_dict(), 200

    @token_required
    def delete(ctx, self, transaction_id):
        result = transactions.delete(ctx, transaction_id)
        if not result.ok:
            return error_response(result)
        return {"message": "Transação excluída com sucesso!"}, 200
