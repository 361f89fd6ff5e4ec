import os
import datetime
from dotenv import load_dotenv

load_dotenv()

REQUIRED_SETTINGS = ("SQLALCHEMY_DATABASE_URI", "SECRET_KEY")
OPTIONAL_SETTINGS = ("SERVICE_ROLE_KEY",)

# Nome das variáveis de ambiente correspondentes a cada chave de configuração
ENV_NAMES = {
    "SQLALCHEMY_DATABASE_URI": "DATABASE_URL",
    "SECRET_KEY": "SECRET_KEY",
    "SERVICE_ROLE_KEY": "SERVICE_ROLE_KEY",
}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY")
    SERVICE_ROLE_KEY = os.getenv("SERVICE_ROLE_KEY")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Convertido em JWT_ACCESS_TOKEN_EXPIRES por create_app
    JWT_EXPIRES_HOURS = os.getenv("JWT_EXPIRES_HOURS", "24")
    CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "Europe/Paris")
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_TO_FILE = True
    SIGN_IN_URL = "/sign-in"
    RATELIMIT_ENABLED = True
    LOGIN_RATE_LIMIT = "10 per minute"


class DevConfig(Config):
    DEBUG = True


class ProdConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    SERVICE_ROLE_KEY = None
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_TO_FILE = False
    RATELIMIT_ENABLED = False
    CLINIC_TIMEZONE = "UTC"
    JWT_EXPIRES_HOURS = "24"


def _get(settings, key):
    if isinstance(settings, dict):
        return settings.get(key)
    return getattr(settings, key, None)


def check_environment(settings):
    """
    Retorna (obrigatorias_faltando, opcionais_faltando) com os nomes das variáveis de ambiente.
    `settings` pode ser uma classe de configuração ou um dict (ex.: app.config).
    """
    missing_required = [ENV_NAMES[k] for k in REQUIRED_SETTINGS if not _get(settings, k)]
    missing_optional = [ENV_NAMES[k] for k in OPTIONAL_SETTINGS if not _get(settings, k)]
    return missing_required, missing_optional


def token_lifetime(settings):
    """Validade do token a partir de JWT_EXPIRES_HOURS, ou None se o valor não for um inteiro positivo."""
    try:
        hours = int(_get(settings, "JWT_EXPIRES_HOURS"))
        lifetime = datetime.timedelta(hours=hours)
    except (TypeError, ValueError, OverflowError):
        return None
    return lifetime if hours > 0 else None


def invalid_settings(settings):
    """Variáveis de ambiente presentes mas com valor inutilizável."""
    return [] if token_lifetime(settings) is not None else ["JWT_EXPIRES_HOURS"]
