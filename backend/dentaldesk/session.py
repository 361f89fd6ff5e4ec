"""
Sessão autenticada: emissão de tokens JWT e o "portão" que protege as rotas.

O portão passa por três estados: LOADING -> AUTHENTICATED | UNAUTHENTICATED.
Qualquer falha na verificação é tratada como ausência de sessão.
"""
import datetime
import enum
import logging
import uuid
from functools import wraps

import jwt
from flask import current_app, request
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .errors import NotAuthenticated
from .models import Account, RevokedToken
from .repository import OwnerContext

logger = logging.getLogger(__name__)

JWT_ALG = "HS256"


class SessionState(str, enum.Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class AuthEvent(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


def create_access_token(account):
    now = datetime.datetime.utcnow()
    payload = {
        "sub": account.id,
        "email": account.email,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm=JWT_ALG)


def decode_token(token):
    return jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=[JWT_ALG])


def token_from_request():
    """Lê o token de 'Authorization: Bearer ...' ou do header 'x-access-token'."""
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip().strip('"').strip("'") or None
    token = request.headers.get("x-access-token")
    return token.strip() if token else None


class SessionGate:
    """Estado da sessão de uma requisição."""

    def __init__(self):
        self.state = SessionState.LOADING
        self.account = None
        self.claims = None

    @property
    def context(self):
        if self.state is not SessionState.AUTHENTICATED:
            raise NotAuthenticated("Usuário não autenticado.")
        return OwnerContext.from_identity(self.account.id)

    def _sign_out(self):
        self.state = SessionState.UNAUTHENTICATED
        self.account = None
        self.claims = None
        return self.state

    def _resolve(self, token):
        if not token:
            return None, None
        try:
            claims = decode_token(token)
            jti = claims.get("jti")
            if not jti or not claims.get("sub") or db.session.get(RevokedToken, jti) is not None:
                return None, None
            account = db.session.get(Account, claims.get("sub"))
        except jwt.PyJWTError as e:
            logger.info(f"[session] Token rejeitado: {e}")
            return None, None
        except SQLAlchemyError as e:
            logger.exception(f"[session] Falha ao verificar a sessão: {e}")
            db.session.rollback()
            return None, None
        if account is None:
            return None, None
        return account, claims

    def check(self, token):
        """Verificação inicial da sessão (LOADING -> AUTHENTICATED | UNAUTHENTICATED)."""
        account, claims = self._resolve(token)
        if account is None:
            return self._sign_out()
        self.state = SessionState.AUTHENTICATED
        self.account = account
        self.claims = claims
        return self.state

    def on_auth_event(self, event, token=None):
        if AuthEvent(event) is AuthEvent.SIGNED_OUT:
            # Se a revogação falhar o token continua válido: a sessão não muda
            if self.claims and self.claims.get("jti") and not revoke(self.claims):
                return self.state
            return self._sign_out()
        # SIGNED_IN
        return self.check(token)


def revoke(claims):
    """Registra o jti como revogado. Retorna False se o banco recusar a gravação."""
    try:
        if db.session.get(RevokedToken, claims["jti"]) is None:
            db.session.add(RevokedToken(jti=claims["jti"], user_id=claims.get("sub", "")))
            db.session.commit()
        return True
    except SQLAlchemyError as e:
        logger.exception(f"[session] Falha ao revogar token: {e}")
        db.session.rollback()
        return False


def unauthenticated_response(message="Sessão ausente ou expirada."):
    return {"message": message, "redirect": current_app.config.get("SIGN_IN_URL", "/sign-in")}, 401


def token_required(f):
    """Decorator para rotas protegidas: injeta o OwnerContext do usuário autenticado."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        gate = SessionGate()
        if gate.check(token_from_request()) is not SessionState.AUTHENTICATED:
            return unauthenticated_response()
        return f(gate.context, *args, **kwargs)
    return wrapper
