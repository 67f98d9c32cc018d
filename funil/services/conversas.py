"""
Seleção das conversas que recebem a label do estágio.

Política:
- conversas abertas (status presente e != "resolved") têm prioridade:
  até `limite` delas, da mais recente para a mais antiga
- sem conversa aberta: só a mais recente do contato
- sem conversas: nada

O limite mantém a movimentação com no máximo N escritas de label por
conversa; threads abertas mais antigas podem ficar sem a label.
"""
from typing import Any, Optional

from funil.core.utils import to_str, to_timestamp

LIMITE_CONVERSAS = 5
STATUS_RESOLVIDA = "resolved"

# Campos de recência do Chatwoot, em ordem de preferência
_CAMPOS_RECENCIA = ("last_activity_at", "updated_at", "timestamp", "created_at")


def recencia(conversa: dict) -> float:
    """Timestamp de atividade mais relevante da conversa (0 se desconhecido)."""
    for campo in _CAMPOS_RECENCIA:
        valor = to_timestamp(conversa.get(campo))
        if valor is not None:
            return valor
    return 0.0


def esta_aberta(conversa: dict) -> bool:
    status = to_str(conversa.get("status"))
    return status is not None and status.lower() != STATUS_RESOLVIDA


def _id_conversa(conversa: Any) -> Optional[str]:
    if not isinstance(conversa, dict):
        return None
    return to_str(conversa.get("id"))


def select_conversations(conversas: Any, limite: int = LIMITE_CONVERSAS) -> list[str]:
    """
    Escolhe os ids de conversa que devem receber a label do novo estágio.

    Args:
        conversas: payload de /contacts/:id/conversations
        limite: máximo de conversas abertas atualizadas

    Returns:
        Ids (string), sem duplicatas, da mais recente para a mais antiga
    """
    if not isinstance(conversas, list):
        return []

    validas = [c for c in conversas if _id_conversa(c)]
    # sorted é estável: empates mantêm a ordem do Chatwoot
    ordenadas = sorted(validas, key=recencia, reverse=True)
    abertas = [c for c in ordenadas if esta_aberta(c)]

    candidatas = abertas if abertas else ordenadas[:1]
    limite = max(1, limite)

    ids: list[str] = []
    for conversa in candidatas:
        conversation_id = _id_conversa(conversa)
        if conversation_id in ids:
            continue
        ids.append(conversation_id)
        if len(ids) >= limite:
            break
    return ids
