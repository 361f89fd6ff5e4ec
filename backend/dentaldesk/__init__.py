import os
import logging
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_restx import Api
from config import DevConfig, ProdConfig, check_environment, invalid_settings, token_lifetime

from .errors import ConfigurationError, ValidationError

db = SQLAlchemy()
migrate = Migrate()
bcrypt = Bcrypt()
cors = CORS()
limiter = Limiter(key_func=get_remote_address)

logger = logging.getLogger(__name__)


def create_app(config_object=None):
    app = Flask(__name__)
    if config_object is None:
        env = os.getenv("FLASK_ENV", "development")
        config_object = ProdConfig if env == "production" else DevConfig
    app.config.from_object(config_object)

    from .logging_setup import setup_logging
    setup_logging(app)

    # Falha imediata se a configuração obrigatória estiver incompleta
    missing_required, missing_optional = check_environment(app.config)
    invalid = invalid_settings(app.config)
    if missing_required or invalid:
        logger.error(f"Configuração incompleta: ausentes={missing_required} inválidas={invalid}")
        raise ConfigurationError(missing_required, invalid)
    if missing_optional:
        logger.warning(f"Variáveis de ambiente opcionais ausentes: {missing_optional}")
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = token_lifetime(app.config)

    # Inicializa extensões
    db.init_app(app)
    migrate.init_app(app, db)
    bcrypt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    limiter.init_app(app)

    # Configurar RESTX (Swagger)
    api = Api(
        app,
        version="1.0",
        title="DentalDesk API",
        description="Pacientes, consultas e finanças do consultório odontológico",
        doc="/api/docs",
    )

    @api.errorhandler(ValidationError)
    def handle_validation_error(error):
        return {"status": "error", "message": str(error)}, 400

    # Registrar namespaces
    from .auth import auth_ns
    from .patients import patients_ns
    from .appointments import appointments_ns
    from .finances import finances_ns
    from .dashboard import dashboard_ns
    from .system import system_ns

    api.add_namespace(auth_ns, path="/api/auth")
    api.add_namespace(patients_ns, path="/api/patients")
    api.add_namespace(appointments_ns, path="/api/appointments")
    api.add_namespace(finances_ns, path="/api/finances")
    api.add_namespace(dashboard_ns, path="/api/dashboard")
    api.add_namespace(system_ns, path="/api/system")

    with app.app_context():
        from . import models  # noqa: F401
        # Em produção, prefira as migrações (flask db upgrade)
        db.create_all()

    return app
