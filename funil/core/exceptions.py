"""
Exceptions customizadas do Funil Kanban.

Cada exception carrega `message` e `details`; os handlers em
funil.api.error_handlers convertem para o envelope {error, data}.
"""
from typing import Any, Optional


class FunilException(Exception):
    """Base exception para todos os erros do sistema."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Any = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.details = details
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigurationError(FunilException):
    """Account id ou token do Chatwoot ausentes."""

    status_code = 400


class ValidationError(FunilException):
    """Erro de validacao de dados de entrada."""

    status_code = 400


class RemoteApiError(FunilException):
    """
    Resposta nao-2xx (ou falha de transporte) da API do Chatwoot.

    Attributes:
        status: HTTP status devolvido pelo Chatwoot (504 timeout, 502 conexao)
        data: corpo da resposta ja parseado, ou {"raw": texto}
    """

    def __init__(
        self,
        status: int,
        data: Any = None,
        message: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.status = status
        self.data = data
        super().__init__(
            message or f"Chatwoot API error: {status}",
            details=data,
            original_error=original_error,
        )

    @property
    def status_code(self) -> int:
        if 400 <= self.status <= 599:
            return self.status
        return 500


class MoveInProgressError(FunilException):
    """Ja existe uma movimentacao em andamento para o contato."""

    status_code = 409

    def __init__(self, contact_id: str):
        self.contact_id = contact_id
        super().__init__(
            f"Movimentacao em andamento para o contato {contact_id}",
            details={"contactId": contact_id},
        )
