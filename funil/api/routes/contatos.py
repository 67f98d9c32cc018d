"""
Endpoints do board: listagem de contatos e movimentação entre estágios.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from funil.api.dependencies import get_app_settings, get_chatwoot_client, get_stage_mover
from funil.core.config import Settings
from funil.schemas.contato import MoveRequest
from funil.services.chatwoot import ChatwootClient
from funil.services.contatos import listar_contatos
from funil.services.movimentacao import StageMover

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/contacts", tags=["Contatos"])


@router.get("")
async def get_contacts(
    per_page: Optional[int] = Query(default=None),
    max_pages: Optional[int] = Query(default=None),
    q: Optional[str] = Query(default=None),
    client: ChatwootClient = Depends(get_chatwoot_client),
    settings: Settings = Depends(get_app_settings),
):
    """
    Lista todos os contatos da conta para montar o board.

    Erros do Chatwoot saem como {error, data} com o status original.
    """
    contatos = await listar_contatos(
        client,
        query=q,
        per_page=per_page,
        max_pages=max_pages,
        per_page_padrao=settings.CONTACTS_PER_PAGE,
        max_pages_padrao=settings.CONTACTS_MAX_PAGES,
    )
    return {"contacts": [c.model_dump() for c in contatos]}


@router.put("/{contact_id}/move")
async def move_contact(
    contact_id: str,
    body: MoveRequest,
    mover: StageMover = Depends(get_stage_mover),
):
    """
    Move o contato para outro estágio do funil.

    Body: {"stage": "Proposta", "previousStage": "Análise"}

    Em caso de falha o board deve voltar o card para o estágio anterior:
    o revert do servidor é best-effort.
    """
    resultado = await mover.move_contact(contact_id, body.stage, body.previous_stage)
    return resultado.model_dump(by_alias=True)
