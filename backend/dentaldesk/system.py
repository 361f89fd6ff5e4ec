import logging
from flask import current_app
from flask_restx import Namespace, Resource
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from config import check_environment
from . import db

logger = logging.getLogger(__name__)

system_ns = Namespace("system", description="Estado da configuração")


@system_ns.route("/status")
class Status(Resource):
    def get(self):
        """
        Indica quais variáveis estão definidas (sem expor valores) e se o banco responde.
        """
        missing_required, missing_optional = check_environment(current_app.config)
        missing = set(missing_required) | set(missing_optional)

        try:
            db.session.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as e:
            logger.exception(f"[system.status] Banco indisponível: {e}")
            db.session.rollback()
            database = "error"

        return {
            "settings": {
                "DATABASE_URL": "DATABASE_URL" not in missing,
                "SECRET_KEY": "SECRET_KEY" not in missing,
                "SERVICE_ROLE_KEY": "SERVICE_ROLE_KEY" not in missing,
            },
            "database": database,
        }, 200 if database == "ok" else 503
