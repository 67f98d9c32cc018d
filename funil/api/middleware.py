"""
Middlewares da API.
"""
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from funil.core.tracing import (
    TRACE_HEADER,
    clear_trace_id,
    generate_trace_id,
    set_trace_id,
)

logger = logging.getLogger(__name__)


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Middleware que adiciona trace_id a cada request.

    - Usa o header X-Trace-ID se vier do cliente, senão gera um novo
    - Propaga via context var (logs da movimentação saem com o mesmo id)
    - Devolve o id no header X-Trace-ID da response
    - Loga método, path, status e duração
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = request.headers.get(TRACE_HEADER) or generate_trace_id()
        set_trace_id(trace_id)
        request.state.trace_id = trace_id

        start_time = time.time()

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            logger.info(
                f"[{trace_id}] {request.method} {request.url.path} "
                f"→ {response.status_code} ({int(duration * 1000)}ms)"
            )

            response.headers[TRACE_HEADER] = trace_id
            return response

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"[{trace_id}] {request.method} {request.url.path} "
                f"→ ERROR ({int(duration * 1000)}ms): {e}"
            )
            raise

        finally:
            clear_trace_id()
