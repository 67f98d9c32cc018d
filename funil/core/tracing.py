"""
Tracing - correlation ID por requisição.

O TracingMiddleware define o trace_id no início de cada request; a partir
daí ele é propagado por context var para todas as coroutines da
movimentação e aparece nos logs.

Uso:
    from funil.core.tracing import get_trace_prefix

    logger.info(f"{get_trace_prefix()}Movendo contato {contact_id}")
"""
import uuid
from contextvars import ContextVar
from typing import Optional

TRACE_HEADER = "X-Trace-ID"

# Context var para propagar trace_id através de código async
_trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def generate_trace_id() -> str:
    """
    Gera novo trace ID.

    Returns:
        Os primeiros 8 caracteres hex de um UUID4
    """
    return uuid.uuid4().hex[:8]


def set_trace_id(trace_id: str) -> None:
    """Define trace ID para o contexto atual."""
    _trace_id_var.set(trace_id)


def get_trace_id() -> Optional[str]:
    """Retorna trace ID do contexto atual, ou None."""
    return _trace_id_var.get()


def clear_trace_id() -> None:
    """Limpa trace ID do contexto (fim do request)."""
    _trace_id_var.set(None)


class TraceContext:
    """
    Context manager para trace ID fora de requests HTTP (scripts, testes).

    Uso:
        with TraceContext() as trace_id:
            await mover.move_contact(...)
    """

    def __init__(self, trace_id: Optional[str] = None):
        self._trace_id = trace_id or generate_trace_id()
        self._token = None

    def __enter__(self) -> str:
        self._token = _trace_id_var.set(self._trace_id)
        return self._trace_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _trace_id_var.reset(self._token)
        return False


def get_trace_prefix() -> str:
    """
    Retorna prefixo formatado para logs.

    Returns:
        "[trace_id] " ou "" se não houver trace
    """
    trace_id = get_trace_id()
    if trace_id:
        return f"[{trace_id}] "
    return ""
