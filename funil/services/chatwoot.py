"""
Cliente da API REST do Chatwoot.

Todas as chamadas levam o api_access_token e corpo JSON. Respostas nao-2xx
viram RemoteApiError com o status e o corpo devolvidos pelo Chatwoot.
Nao ha retry aqui: quem chama decide o que fazer com a falha.
"""
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from funil.core.config import ChatwootConfig
from funil.core.exceptions import RemoteApiError
from funil.core.tracing import get_trace_prefix
from funil.services.labels import ATRIBUTO_FUNIL

logger = logging.getLogger(__name__)


def _id(value: Any) -> str:
    return quote(str(value), safe="")


def parse_body(text: str) -> Any:
    """
    Parse tolerante do corpo de resposta.

    Corpo vazio vira None; JSON invalido vira {"raw": texto}.
    """
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


class ChatwootClient:
    """
    Cliente autenticado para uma conta do Chatwoot.

    Args:
        config: credenciais resolvidas no startup
        http: httpx.AsyncClient compartilhado (ver funil.services.http_client)
    """

    def __init__(self, config: ChatwootConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http

    @property
    def headers(self) -> dict:
        return {
            "api_access_token": self.config.api_token,
            "Content-Type": "application/json",
        }

    def url(self, path: str) -> str:
        """URL absoluta para um path relativo a conta (ex: "/contacts/42")."""
        return (
            f"{self.config.base_url.rstrip('/')}/api/v1/accounts/"
            f"{_id(self.config.account_id)}{path}"
        )

    async def call_api(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        params: Optional[dict] = None,
    ) -> Any:
        """
        Executa uma chamada na API do Chatwoot.

        Args:
            path: path relativo a conta, ex: "/contacts/42/labels"
            method: verbo HTTP
            body: payload serializado como JSON (opcional)
            params: query string (opcional)

        Returns:
            Corpo parseado (dict/list), None se vazio, ou {"raw": texto}

        Raises:
            RemoteApiError: status nao-2xx, timeout (504) ou erro de conexao (502)
        """
        url = self.url(path)
        content = json.dumps(body) if body is not None else None

        try:
            response = await self.http.request(
                method,
                url,
                content=content,
                params=params,
                headers=self.headers,
                timeout=self.config.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{get_trace_prefix()}Timeout Chatwoot {method} {path}: {e}")
            raise RemoteApiError(
                504,
                {"error": "timeout", "path": path},
                message="Chatwoot API timeout",
                original_error=e,
            )
        except httpx.RequestError as e:
            logger.warning(f"{get_trace_prefix()}Erro de conexao Chatwoot {method} {path}: {e}")
            raise RemoteApiError(
                502,
                {"error": "connection", "path": path, "detail": str(e)},
                message="Chatwoot API connection error",
                original_error=e,
            )

        data = parse_body(response.text)

        if not 200 <= response.status_code < 300:
            logger.warning(
                f"{get_trace_prefix()}Chatwoot {method} {path} -> {response.status_code}"
            )
            raise RemoteApiError(response.status_code, data)

        logger.debug(f"{get_trace_prefix()}Chatwoot {method} {path} -> {response.status_code}")
        return data

    # ------------------------------------------------------------------
    # Contatos
    # ------------------------------------------------------------------

    async def listar_contatos(self, page: int, per_page: int, query: Optional[str] = None) -> Any:
        params = {"page": page, "per_page": per_page}
        if query:
            params["q"] = query
        return await self.call_api("/contacts", params=params)

    async def atualizar_atributos_contato(self, contact_id: Any, custom_attributes: dict) -> Any:
        return await self.call_api(
            f"/contacts/{_id(contact_id)}",
            method="PUT",
            body={"custom_attributes": custom_attributes},
        )

    async def atualizar_funil_contato(self, contact_id: Any, valor: str) -> Any:
        """Grava custom_attributes.funil_de_vendas do contato."""
        return await self.atualizar_atributos_contato(contact_id, {ATRIBUTO_FUNIL: valor})

    async def buscar_labels_contato(self, contact_id: Any) -> Any:
        return await self.call_api(f"/contacts/{_id(contact_id)}/labels")

    async def definir_labels_contato(self, contact_id: Any, labels: list[str]) -> Any:
        return await self.call_api(
            f"/contacts/{_id(contact_id)}/labels",
            method="POST",
            body={"labels": labels},
        )

    async def buscar_conversas_contato(self, contact_id: Any) -> Any:
        return await self.call_api(f"/contacts/{_id(contact_id)}/conversations")

    # ------------------------------------------------------------------
    # Conversas
    # ------------------------------------------------------------------

    async def buscar_labels_conversa(self, conversation_id: Any) -> Any:
        return await self.call_api(f"/conversations/{_id(conversation_id)}/labels")

    async def definir_labels_conversa(self, conversation_id: Any, labels: list[str]) -> Any:
        return await self.call_api(
            f"/conversations/{_id(conversation_id)}/labels",
            method="POST",
            body={"labels": labels},
        )
