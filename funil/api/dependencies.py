"""
Dependências FastAPI compartilhadas pelas rotas.

A configuração do Chatwoot é montada uma vez no create_app e guardada em
app.state; aqui ela só é validada e combinada com o http client singleton.
"""
from fastapi import Depends, Request

from funil.core.config import ChatwootConfig, Settings
from funil.core.contact_lock import ContactLocks
from funil.services.chatwoot import ChatwootClient
from funil.services.http_client import get_http_client
from funil.services.movimentacao import StageMover


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_chatwoot_config(request: Request) -> ChatwootConfig:
    return request.app.state.chatwoot_config


async def get_chatwoot_client(
    config: ChatwootConfig = Depends(get_chatwoot_config),
) -> ChatwootClient:
    """
    Cliente do Chatwoot para a rota.

    Raises:
        ConfigurationError: account id ou token ausentes (400, sem chamar o Chatwoot)
    """
    config.validar()
    return ChatwootClient(config, await get_http_client())


def get_contact_locks(request: Request) -> ContactLocks:
    return request.app.state.contact_locks


async def get_stage_mover(
    client: ChatwootClient = Depends(get_chatwoot_client),
    settings: Settings = Depends(get_app_settings),
    locks: ContactLocks = Depends(get_contact_locks),
) -> StageMover:
    return StageMover(
        client,
        estrategia=settings.LABEL_STRATEGY,
        limite_conversas=settings.MAX_CONVERSATIONS_PER_MOVE,
        locks=locks,
    )
