"""
Configuração global de testes - Fixtures compartilhadas.

O Chatwoot é simulado em memória (FakeChatwoot), entrando no lugar do
httpx.AsyncClient que o ChatwootClient recebe. Cada chamada fica
registrada em `fake.calls` para as asserções de ordem e de vazamento.
"""

import asyncio
import json
from typing import Any, Optional
from unittest.mock import MagicMock
from urllib.parse import unquote, urlsplit

import pytest

from funil.core.config import ChatwootConfig, Settings
from funil.services.chatwoot import ChatwootClient

ACCOUNT_ID = "1"
PREFIXO_CONTA = f"/api/v1/accounts/{ACCOUNT_ID}"


# =============================================================================
# MOCK FACTORIES
# =============================================================================


def criar_mock_http_response(
    status_code: int = 200,
    json_data: Any = None,
    text: Optional[str] = None,
) -> MagicMock:
    """
    Cria mock de resposta HTTP (httpx.Response).

    Args:
        status_code: HTTP status code
        json_data: corpo JSON (serializado em .text)
        text: texto cru, usado quando json_data é None
    """
    mock = MagicMock()
    mock.status_code = status_code
    if text is None:
        text = json.dumps(json_data) if json_data is not None else ""
    mock.text = text
    mock.is_success = 200 <= status_code < 300
    return mock


class FakeChatwoot:
    """
    Chatwoot em memória: contatos, conversas e labels de uma conta.

    Uso:
        fake.falhar("POST", "/conversations/101/labels", 500, {"error": "boom"})
        await mover.move_contact("42", "Proposta", "Análise")
        fake.calls  # [(method, path, body), ...]
    """

    def __init__(self):
        self.contacts: dict[str, dict] = {}
        self.contact_labels: dict[str, list[str]] = {}
        self.conversations: dict[str, list[dict]] = {}
        self.conversation_labels: dict[str, list[str]] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.params: list[Optional[dict]] = []
        self.falhas: dict[tuple[str, str], tuple[int, Any]] = {}
        self.bloqueio: Optional[asyncio.Event] = None

    def adicionar_contato(self, contact_id, name, funil=None, labels=None, conversas=None, **extra):
        contact_id = str(contact_id)
        custom_attributes = {}
        if funil is not None:
            custom_attributes["funil_de_vendas"] = funil
        self.contacts[contact_id] = {
            "id": int(contact_id),
            "name": name,
            "custom_attributes": custom_attributes,
            **extra,
        }
        self.contact_labels[contact_id] = list(labels or [])
        self.conversations[contact_id] = []
        for conversa in conversas or []:
            conversa = dict(conversa)
            conversation_labels = conversa.pop("labels", [])
            self.conversations[contact_id].append(conversa)
            self.conversation_labels[str(conversa["id"])] = list(conversation_labels)

    def falhar(self, method: str, path: str, status: int = 500, body: Any = None):
        self.falhas[(method, path)] = (status, body if body is not None else {"error": "falha simulada"})

    def paths(self, method: Optional[str] = None) -> list[str]:
        return [path for m, path, _ in self.calls if method is None or m == method]

    async def request(self, method, url, content=None, params=None, headers=None, timeout=None):
        if self.bloqueio is not None:
            await self.bloqueio.wait()

        path = unquote(urlsplit(str(url)).path)
        assert path.startswith(PREFIXO_CONTA), path
        path = path[len(PREFIXO_CONTA):]
        body = json.loads(content) if content else None
        self.calls.append((method, path, body))
        self.params.append(params)

        if (method, path) in self.falhas:
            status, erro = self.falhas[(method, path)]
            return criar_mock_http_response(status, erro)

        status, data = self._rotear(method, path, body, params or {})
        return criar_mock_http_response(status, data)

    def _rotear(self, method, path, body, params):
        partes = path.strip("/").split("/")

        if partes == ["contacts"] and method == "GET":
            page = int(params.get("page", 1))
            per_page = int(params.get("per_page", 15))
            todos = list(self.contacts.values())
            inicio = (page - 1) * per_page
            return 200, {
                "payload": todos[inicio:inicio + per_page],
                "meta": {"count": len(todos), "current_page": page},
            }

        if len(partes) >= 2 and partes[0] == "contacts":
            contact_id = partes[1]
            if contact_id not in self.contacts:
                return 404, {"error": "Resource could not be found"}

            if len(partes) == 2 and method == "PUT":
                contato = self.contacts[contact_id]
                contato["custom_attributes"] = {
                    **contato["custom_attributes"],
                    **(body or {}).get("custom_attributes", {}),
                }
                return 200, {"payload": contato}

            if partes[2:] == ["labels"]:
                if method == "POST":
                    self.contact_labels[contact_id] = list(body["labels"])
                return 200, {"payload": list(self.contact_labels[contact_id])}

            if partes[2:] == ["conversations"] and method == "GET":
                return 200, {"payload": list(self.conversations[contact_id])}

        if len(partes) == 3 and partes[0] == "conversations" and partes[2] == "labels":
            conversation_id = partes[1]
            if conversation_id not in self.conversation_labels:
                return 404, {"error": "Resource could not be found"}
            if method == "POST":
                self.conversation_labels[conversation_id] = list(body["labels"])
            return 200, {"payload": list(self.conversation_labels[conversation_id])}

        return 404, {"error": "Resource could not be found"}


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def chatwoot_config():
    return ChatwootConfig(
        base_url="https://chatwoot.test",
        account_id=ACCOUNT_ID,
        api_token="token-teste",
        timeout=5.0,
    )


@pytest.fixture
def fake_chatwoot():
    """
    Conta com o contato 42 (Rafael, em "Análise") e o contato 7 (Maria).

    Conversas do 42:
    - 100 aberta, atividade 300
    - 101 resolvida, atividade 500
    - 102 pendente, atividade 200
    """
    fake = FakeChatwoot()
    fake.adicionar_contato(
        42,
        "Rafael Dos Anjos",
        funil="Análise",
        labels=["analise", "vip"],
        conversas=[
            {"id": 100, "status": "open", "last_activity_at": 300, "labels": ["analise"]},
            {"id": 101, "status": "resolved", "last_activity_at": 500, "labels": ["analise", "urgente"]},
            {"id": 102, "status": "pending", "last_activity_at": 200, "labels": []},
        ],
    )
    fake.adicionar_contato(
        7,
        "Maria Souza",
        funil="Proposta",
        labels=["proposta"],
        conversas=[{"id": 700, "status": "open", "last_activity_at": 10, "labels": ["proposta"]}],
    )
    return fake


@pytest.fixture
def chatwoot_client(chatwoot_config, fake_chatwoot):
    return ChatwootClient(chatwoot_config, fake_chatwoot)


@pytest.fixture
def settings():
    """Settings isoladas do ambiente/.env da máquina."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="development",
        CHATWOOT_BASE_URL="https://chatwoot.test",
        CHATWOOT_ACCOUNT_ID=ACCOUNT_ID,
        CHATWOOT_API_ACCESS_TOKEN="token-teste",
        RAILWAY_GIT_COMMIT_SHA="abc1234",
    )
