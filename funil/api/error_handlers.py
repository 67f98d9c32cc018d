"""
Exception handlers para FastAPI.

Todos os erros saem no envelope {error, data} que o board exibe:
`error` é a mensagem, `data` o detalhe (corpo do Chatwoot, campos
ausentes, etc).
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from funil.core.exceptions import FunilException, RemoteApiError
from funil.core.tracing import get_trace_prefix

logger = logging.getLogger(__name__)


def envelope_erro(message: str, data=None, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "data": data})


async def funil_exception_handler(request: Request, exc: FunilException) -> JSONResponse:
    """Handler para todas as exceptions customizadas."""
    status_code = exc.status_code
    error_type = exc.__class__.__name__

    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"{get_trace_prefix()}{error_type}: {exc.message}",
        extra={"error_type": error_type, "path": request.url.path, "status": status_code},
    )

    data = exc.data if isinstance(exc, RemoteApiError) else exc.details
    return envelope_erro(exc.message, data, status_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body/query invalidos viram 400 no mesmo envelope."""
    logger.warning(f"{get_trace_prefix()}Request invalido em {request.url.path}: {exc.errors()}")
    return envelope_erro("Requisicao invalida", jsonable_errors(exc), 400)


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler para exceptions nao tratadas."""
    logger.exception(f"{get_trace_prefix()}Erro nao tratado: {exc}", extra={"path": request.url.path})
    return envelope_erro("Erro interno do servidor", None, 500)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Registra todos os exception handlers no app FastAPI.

    Usage:
        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(FunilException, funil_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
