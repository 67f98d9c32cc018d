"""
Rotas de health check e diagnóstico do deploy.

- /health: liveness (texto "ok")
- /api/version: quando o processo subiu e qual commit está rodando
- /api/config: configuração do Chatwoot sem expor o token
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from funil.api.dependencies import get_app_settings, get_chatwoot_config
from funil.core.config import ChatwootConfig, Settings

router = APIRouter(tags=["Sistema"])


@router.get("/health", response_class=PlainTextResponse)
async def health_check():
    return "ok"


@router.get("/api/version")
async def version(request: Request, settings: Settings = Depends(get_app_settings)):
    return {
        "startedAt": request.app.state.started_at,
        "git": {"railway": settings.RAILWAY_GIT_COMMIT_SHA or None},
    }


@router.get("/api/config")
async def config_status(config: ChatwootConfig = Depends(get_chatwoot_config)):
    return {
        "baseUrl": config.base_url,
        "accountId": config.account_id or None,
        "hasToken": bool(config.api_token),
    }
