import enum
from dataclasses import dataclass


class Outcome(str, enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Result:
    """
    Resultado de uma operação de acesso a dados.
    Em caso de falha, `value` mantém o valor neutro (lista vazia, None, False, zeros),
    mas `ok` permite distinguir "sem registros" de "falha na consulta".
    """
    outcome: Outcome
    value: object = None
    error: str = None

    @property
    def ok(self):
        return self.outcome is Outcome.OK

    @property
    def not_found(self):
        return self.outcome is Outcome.NOT_FOUND

    @property
    def failed(self):
        return self.outcome is Outcome.FAILED

    @classmethod
    def success(cls, value):
        return cls(Outcome.OK, value)

    @classmethod
    def missing(cls, fallback=None):
        return cls(Outcome.NOT_FOUND, fallback, "Registro não encontrado.")

    @classmethod
    def failure(cls, error, fallback=None):
        return cls(Outcome.FAILED, fallback, error)
