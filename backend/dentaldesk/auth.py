import logging
from flask import current_app, request
from flask_restx import Namespace, fields, Resource
from sqlalchemy.exc import SQLAlchemyError
from .errors import ValidationError
from .models import Account
from . import db, bcrypt, limiter
from .repository import accounts
from .session import (
    AuthEvent,
    SessionGate,
    SessionState,
    create_access_token,
    token_from_request,
    token_required,
    unauthenticated_response,
)

logger = logging.getLogger(__name__)

auth_ns = Namespace("auth", description="Autenticação, sessão e perfil")

register_model = auth_ns.model("Register", {
    "email": fields.String(required=True, description="E-mail válido"),
    "password": fields.String(required=True, description="Senha com mínimo de 6 caracteres"),
    "first_name": fields.String(description="Nome"),
    "last_name": fields.String(description="Sobrenome"),
    "clinic_name": fields.String(description="Nome do consultório"),
    "phone": fields.String(description="Telefone"),
})

login_model = auth_ns.model("Login", {
    "email": fields.String(required=True, description="E-mail cadastrado"),
    "password": fields.String(required=True, description="Senha"),
})

profile_model = auth_ns.model("Profile", {
    "first_name": fields.String(description="Nome"),
    "last_name": fields.String(description="Sobrenome"),
    "clinic_name": fields.String(description="Nome do consultório"),
    "phone": fields.String(description="Telefone"),
})


def _login_limit():
    return current_app.config.get("LOGIN_RATE_LIMIT", "10 per minute")


@auth_ns.route("/register")
class Register(Resource):
    @auth_ns.expect(register_model, validate=True)
    def post(self):
        data = request.get_json()
        email = data["email"].strip().lower()
        if len(data["password"]) < 6:
            return {"message": "A senha deve ter no mínimo 6 caracteres."}, 400
        if Account.query.filter_by(email=email).first():
            return {"message": "E-mail já cadastrado!"}, 400

        hashed_pw = bcrypt.generate_password_hash(data["password"]).decode("utf-8")
        account = Account(
            email=email,
            password_hash=hashed_pw,
            first_name=(data.get("first_name") or "").strip(),
            last_name=(data.get("last_name") or "").strip(),
            clinic_name=(data.get("clinic_name") or "").strip(),
            phone=(data.get("phone") or "").strip(),
        )
        try:
            db.session.add(account)
            db.session.commit()
            return {"message": "Conta criada com sucesso!", "id": account.id}, 201
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception(f"[auth.register] Falha para email={email}: {e}")
            return {"message": "Erro ao criar a conta."}, 500


@auth_ns.route("/login")
class Login(Resource):
    decorators = [limiter.limit(_login_limit, methods=["POST"])]

    @auth_ns.expect(login_model, validate=True)
    def post(self):
        data = request.get_json()
        account = Account.query.filter_by(email=data["email"].strip().lower()).first()
        if not account or not bcrypt.check_password_hash(account.password_hash, data["password"]):
            return {"message": "E-mail ou senha inválidos!"}, 401

        return {
            "token": create_access_token(account),
            "user": account.to_dict(),
        }, 200


@auth_ns.route("/logout")
class Logout(Resource):
    def post(self):
        """
        Encerra a sessão: o token atual passa a ser recusado.
        """
        gate = SessionGate()
        if gate.check(token_from_request()) is not SessionState.AUTHENTICATED:
            return unauthenticated_response()
        if gate.on_auth_event(AuthEvent.SIGNED_OUT) is not SessionState.UNAUTHENTICATED:
            return {"status": "error", "message": "Não foi possível encerrar a sessão."}, 500
        return {"message": "Sessão encerrada."}, 200


@auth_ns.route("/me")
class Me(Resource):
    @token_required
    def get(ctx, self):
        """
        Perfil da conta autenticada.
        """
        result = accounts.get_current(ctx)
        if result.not_found:
            return unauthenticated_response()
        if not result.ok:
            return {"status": "error", "message": result.error}, 500
        return result.value.to_dict(), 200

    @token_required
    @auth_ns.expect(profile_model, validate=False)
    def put(ctx, self):
        """
        Atualiza o perfil (JSON parcial permitido). E-mail, papel e senha não mudam por aqui.
        """
        try:
            result = accounts.update_profile(ctx, request.get_json() or {})
        except ValidationError as e:
            return {"status": "error", "message": str(e)}, 400
        if result.not_found:
            return unauthenticated_response()
        if not result.ok:
            return {"status": "error", "message": result.error}, 500
        return result.value.to_dict(), 200
