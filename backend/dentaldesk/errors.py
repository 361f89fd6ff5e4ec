class ConfigurationError(RuntimeError):
    """Configuração obrigatória ausente ou inválida: a aplicação não pode iniciar."""

    def __init__(self, missing, invalid=()):
        self.missing = list(missing)
        self.invalid = list(invalid)
        problems = []
        if self.missing:
            problems.append("Variáveis de ambiente obrigatórias ausentes: " + ", ".join(self.missing) + ".")
        if self.invalid:
            problems.append("Variáveis de ambiente com valor inválido: " + ", ".join(self.invalid) + ".")
        super().__init__(
            " ".join(problems)
            + " Defina-as no arquivo .env (DATABASE_URL, SECRET_KEY e, opcionalmente, SERVICE_ROLE_KEY"
            " e JWT_EXPIRES_HOURS em horas)."
        )


class NotAuthenticated(Exception):
    """Nenhuma sessão ativa para a requisição."""


class ValidationError(ValueError):
    """Payload inválido enviado pelo cliente."""
