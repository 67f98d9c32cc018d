"""
Schemas do board: projeção de contato e contrato da movimentação.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContatoInbox(BaseModel):
    """Vínculo do contato com uma inbox (usado para achar o chat id)."""

    source_id: Optional[str] = None
    inbox_id: Optional[int] = None


class ContatoBoard(BaseModel):
    """Contato achatado para exibição no board (nunca o schema cru do Chatwoot)."""

    id: str
    name: Optional[str] = None
    identifier: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    contact_inboxes: list[ContatoInbox] = Field(default_factory=list)
    custom_attributes: dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[float] = None
    stage: str  # funil_de_vendas ou "Sem funil"


class MoveRequest(BaseModel):
    """Body de PUT /api/contacts/{id}/move."""

    model_config = ConfigDict(populate_by_name=True)

    stage: Optional[str] = ""
    previous_stage: Optional[str] = Field(default=None, alias="previousStage")


class ConversaLabels(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(alias="conversationId")
    labels: list[str] = Field(default_factory=list)


class MoveResult(BaseModel):
    """Resultado de uma movimentação concluída."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    stage: str
    label: str
    labels: list[str] = Field(default_factory=list)
    conversations: list[ConversaLabels] = Field(default_factory=list)
