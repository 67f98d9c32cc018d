"""
Listagem de contatos do Chatwoot para o board.

Percorre a paginação de GET /contacts e devolve a projeção achatada
(ContatoBoard) de cada contato.
"""
import logging
import re
from typing import Any, Optional

from funil.core.tracing import get_trace_prefix
from funil.core.utils import safe_payload, to_int, to_str, to_timestamp
from funil.schemas.contato import ContatoBoard, ContatoInbox
from funil.services.chatwoot import ChatwootClient
from funil.services.labels import estagio_do_contato

logger = logging.getLogger(__name__)

PER_PAGE_MAX = 100
MAX_PAGES_TETO = 200


def _limitar(value: Any, padrao: int, minimo: int, maximo: int) -> int:
    numero = to_int(value)
    if numero is None:
        numero = padrao
    return max(minimo, min(maximo, numero))


def achatar_contato(raw: dict) -> Optional[ContatoBoard]:
    """
    Converte o contato cru do Chatwoot na projeção do board.

    Returns:
        ContatoBoard, ou None se o contato não tiver id
    """
    if not isinstance(raw, dict):
        return None
    contact_id = to_str(raw.get("id"))
    if not contact_id:
        return None

    inboxes = []
    for item in raw.get("contact_inboxes") or []:
        if not isinstance(item, dict):
            continue
        inbox = item.get("inbox") if isinstance(item.get("inbox"), dict) else {}
        inboxes.append(ContatoInbox(
            source_id=to_str(item.get("source_id")),
            inbox_id=to_int(item.get("inbox_id", inbox.get("id"))),
        ))

    custom_attributes = raw.get("custom_attributes")
    if not isinstance(custom_attributes, dict):
        custom_attributes = {}

    updated_at = to_timestamp(raw.get("updated_at"))
    if updated_at is None:
        updated_at = to_timestamp(raw.get("last_activity_at"))

    return ContatoBoard(
        id=contact_id,
        name=to_str(raw.get("name")),
        identifier=to_str(raw.get("identifier")),
        email=to_str(raw.get("email")),
        phone_number=to_str(raw.get("phone_number")),
        contact_inboxes=inboxes,
        custom_attributes=custom_attributes,
        updated_at=updated_at,
        stage=estagio_do_contato(custom_attributes),
    )


def _proxima_pagina(meta: dict, pagina: int, lidos: int, tamanho: int, per_page: int) -> Optional[int]:
    """
    Decide a próxima página a partir do meta do Chatwoot.

    Preferência: next_page, current_page/total_pages, count (linhas cruas
    já lidas); sem meta, para quando a página veio menor que per_page.
    """
    if "next_page" in meta:
        proxima = to_int(meta.get("next_page"))
        if proxima is None or proxima <= pagina:
            return None
        return proxima

    atual = to_int(meta.get("current_page"))
    total = to_int(meta.get("total_pages"))
    if atual is not None and total is not None:
        return atual + 1 if atual < total else None

    count = to_int(meta.get("count"))
    if count is not None:
        return pagina + 1 if lidos < count else None

    if tamanho < per_page:
        return None
    return pagina + 1


async def listar_contatos(
    client: ChatwootClient,
    query: Optional[str] = None,
    per_page: Any = None,
    max_pages: Any = None,
    per_page_padrao: int = 50,
    max_pages_padrao: int = 50,
) -> list[ContatoBoard]:
    """
    Materializa todos os contatos da conta.

    Args:
        client: cliente do Chatwoot
        query: filtro repassado como ?q= (opcional)
        per_page: tamanho da página (1..100)
        max_pages: teto de páginas (1..200), protege contra loop infinito

    Returns:
        Contatos na ordem devolvida pelo Chatwoot

    Raises:
        RemoteApiError: se qualquer página falhar
    """
    per_page = _limitar(per_page, per_page_padrao, 1, PER_PAGE_MAX)
    max_pages = _limitar(max_pages, max_pages_padrao, 1, MAX_PAGES_TETO)
    query = to_str(query)

    contatos: list[ContatoBoard] = []
    pagina = 1
    paginas_lidas = 0
    linhas_lidas = 0

    while pagina is not None and paginas_lidas < max_pages:
        data = await client.listar_contatos(pagina, per_page, query)
        paginas_lidas += 1

        payload = safe_payload(data)
        linhas_lidas += len(payload)
        for raw in payload:
            contato = achatar_contato(raw)
            if contato:
                contatos.append(contato)

        if not payload:
            break

        meta = data.get("meta") if isinstance(data, dict) else None
        pagina = _proxima_pagina(
            meta if isinstance(meta, dict) else {},
            pagina,
            linhas_lidas,
            len(payload),
            per_page,
        )

    logger.info(
        f"{get_trace_prefix()}Contatos carregados: {len(contatos)} "
        f"({paginas_lidas} paginas, per_page={per_page})"
    )
    return contatos


def normalizar_nome(nome: Any) -> str:
    return re.sub(r"\s+", " ", str(nome or "").strip().lower())


def escolher_contato_por_nome(contatos: list[ContatoBoard], nome: str) -> Optional[ContatoBoard]:
    """
    Contato com nome exato (ignorando caixa e espaços); o mais recente vence.
    """
    alvo = normalizar_nome(nome)
    candidatos = [c for c in contatos if normalizar_nome(c.name) == alvo]
    if not candidatos:
        return None
    return max(candidatos, key=lambda c: c.updated_at or 0)
