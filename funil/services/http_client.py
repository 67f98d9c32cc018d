"""
Conexão HTTP compartilhada com o Chatwoot.

Um único httpx.AsyncClient por processo: o board lista contatos e move
cards contra o mesmo host, então as conexões ficam abertas entre requests.
Criado sob demanda pela dependência get_chatwoot_client e fechado no
lifespan do app.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_client: Optional[httpx.AsyncClient] = None

# Teto de segurança; cada chamada do ChatwootClient passa o próprio timeout
TIMEOUT_PADRAO = httpx.Timeout(connect=10.0, read=30.0, write=30.0, pool=5.0)

# Uma movimentação faz no máximo ~14 chamadas sequenciais
LIMITES = httpx.Limits(max_connections=50, max_keepalive_connections=10, keepalive_expiry=30.0)


async def get_http_client() -> httpx.AsyncClient:
    """Cliente compartilhado, criado na primeira chamada (HTTP/2)."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            timeout=TIMEOUT_PADRAO,
            limits=LIMITES,
            http2=True,
            headers={"User-Agent": "Funil-Kanban/1.0"},
            follow_redirects=True,
        )
        logger.info("Cliente HTTP do Chatwoot criado")
    return _client


async def close_http_client() -> None:
    """Fecha o cliente compartilhado; chamar de novo é inofensivo."""
    global _client
    if _client is None:
        return
    await _client.aclose()
    _client = None
    logger.info("Cliente HTTP do Chatwoot fechado")
