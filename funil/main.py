"""
Funil Kanban - API Principal

Backend do board de funil de vendas sobre o Chatwoot.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from funil.api.error_handlers import register_exception_handlers
from funil.api.middleware import TracingMiddleware
from funil.api.routes import contatos, sistema
from funil.core.config import ChatwootConfig, Settings, get_settings
from funil.core.contact_lock import ContactLocks
from funil.core.logging import setup_logging
from funil.services.http_client import close_http_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gerencia startup e shutdown da aplicação."""
    settings = app.state.settings
    config = app.state.chatwoot_config
    logger.info(
        f"Iniciando {settings.APP_NAME} (chatwoot={config.base_url}, "
        f"account={config.account_id or '-'}, labels={settings.LABEL_STRATEGY})"
    )
    if not config.configurado:
        logger.warning(f"Chatwoot sem configuração: {', '.join(config.faltando)}")
    yield
    await close_http_client()
    logger.info(f"Encerrando {settings.APP_NAME}...")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Cria o app FastAPI.

    Args:
        settings: configurações explícitas (testes); padrão lê do ambiente

    Returns:
        App com rotas, middlewares e handlers registrados
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Board de funil de vendas sincronizado com o Chatwoot",
        version="0.1.0",
        lifespan=lifespan,
        # Swagger só fora de produção
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        openapi_url=None if settings.is_production else "/openapi.json",
    )

    # Estado resolvido uma única vez por processo
    app.state.settings = settings
    app.state.chatwoot_config = ChatwootConfig.from_settings(settings)
    app.state.contact_locks = ContactLocks()
    app.state.started_at = datetime.now(timezone.utc).isoformat()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TracingMiddleware)

    register_exception_handlers(app)

    app.include_router(sistema.router)
    app.include_router(contatos.router)

    return app


setup_logging(get_settings().ENVIRONMENT, get_settings().LOG_LEVEL)

app = create_app()
