"""
Testes da movimentação de contatos entre estágios (StageMover).
"""
import asyncio
import logging

import pytest

from funil.core.contact_lock import ContactLocks
from funil.core.exceptions import MoveInProgressError, RemoteApiError, ValidationError
from funil.services.movimentacao import StageMover


@pytest.fixture
def mover(chatwoot_client):
    return StageMover(chatwoot_client, locks=ContactLocks())


class TestMoveContactHappyPath:
    """Movimentação completa com o Chatwoot aceitando tudo."""

    @pytest.mark.asyncio
    async def test_merge_troca_label_do_estagio(self, mover, fake_chatwoot):
        resultado = await mover.move_contact("42", "Proposta", "Análise")

        assert resultado.ok is True
        assert resultado.stage == "Proposta"
        assert resultado.label == "proposta"
        assert resultado.labels == ["vip", "proposta"]

        assert fake_chatwoot.contacts["42"]["custom_attributes"]["funil_de_vendas"] == "Proposta"
        assert fake_chatwoot.contact_labels["42"] == ["vip", "proposta"]

        # 100 (open) e 102 (pending) recebem a label; 101 está resolvida
        assert fake_chatwoot.conversation_labels["100"] == ["proposta"]
        assert fake_chatwoot.conversation_labels["102"] == ["proposta"]
        assert fake_chatwoot.conversation_labels["101"] == ["analise", "urgente"]

        assert [c.conversation_id for c in resultado.conversations] == ["100", "102"]

    @pytest.mark.asyncio
    async def test_ordem_das_chamadas(self, mover, fake_chatwoot):
        await mover.move_contact("42", "Proposta", "Análise")

        assert [(m, p) for m, p, _ in fake_chatwoot.calls] == [
            ("PUT", "/contacts/42"),
            ("GET", "/contacts/42/labels"),
            ("POST", "/contacts/42/labels"),
            ("GET", "/contacts/42/conversations"),
            ("GET", "/conversations/100/labels"),
            ("POST", "/conversations/100/labels"),
            ("GET", "/conversations/102/labels"),
            ("POST", "/conversations/102/labels"),
        ]

    @pytest.mark.asyncio
    async def test_sem_estagio_anterior_so_adiciona(self, mover, fake_chatwoot):
        resultado = await mover.move_contact("42", "Proposta")

        assert resultado.labels == ["analise", "vip", "proposta"]
        assert fake_chatwoot.conversation_labels["100"] == ["analise", "proposta"]

    @pytest.mark.asyncio
    async def test_replace(self, chatwoot_client, fake_chatwoot):
        mover = StageMover(chatwoot_client, estrategia="replace")

        resultado = await mover.move_contact("42", "Proposta", "Análise")

        assert resultado.labels == ["proposta"]
        assert fake_chatwoot.contact_labels["42"] == ["proposta"]
        assert fake_chatwoot.conversation_labels["100"] == ["proposta"]
        assert fake_chatwoot.conversation_labels["102"] == ["proposta"]
        # replace não lê as labels atuais
        assert not any(p.endswith("/labels") for p in fake_chatwoot.paths("GET"))

    @pytest.mark.asyncio
    async def test_mover_para_sem_funil(self, mover, fake_chatwoot):
        resultado = await mover.move_contact("42", "Sem funil", "Análise")

        assert resultado.stage == "Sem funil"
        assert resultado.label == "sem_funil"
        assert fake_chatwoot.contacts["42"]["custom_attributes"]["funil_de_vendas"] == ""
        assert fake_chatwoot.contact_labels["42"] == ["vip", "sem_funil"]

    @pytest.mark.asyncio
    async def test_estagio_vazio_vira_sem_funil(self, mover, fake_chatwoot):
        resultado = await mover.move_contact("42", "  ", "Análise")

        assert resultado.stage == "Sem funil"
        assert fake_chatwoot.calls[0] == ("PUT", "/contacts/42", {"custom_attributes": {"funil_de_vendas": ""}})

    @pytest.mark.asyncio
    async def test_atributo_guarda_texto_de_exibicao(self, mover, fake_chatwoot):
        await mover.move_contact("42", " Proposta Enviada! ", "Análise")

        assert fake_chatwoot.contacts["42"]["custom_attributes"]["funil_de_vendas"] == "Proposta Enviada!"
        assert "proposta_enviada" in fake_chatwoot.contact_labels["42"]

    @pytest.mark.asyncio
    async def test_contato_sem_conversas(self, mover, fake_chatwoot):
        fake_chatwoot.adicionar_contato(9, "Sem Conversa", funil="Novo")

        resultado = await mover.move_contact(9, "Proposta", "Novo")

        assert resultado.conversations == []
        assert fake_chatwoot.paths() == [
            "/contacts/9",
            "/contacts/9/labels",
            "/contacts/9/labels",
            "/contacts/9/conversations",
        ]

    @pytest.mark.asyncio
    async def test_sem_aberta_usa_a_mais_recente(self, mover, fake_chatwoot):
        fake_chatwoot.adicionar_contato(
            9,
            "Fechado",
            conversas=[
                {"id": 900, "status": "resolved", "updated_at": 10},
                {"id": 901, "status": "resolved", "updated_at": 20},
            ],
        )

        resultado = await mover.move_contact("9", "Ganho")

        assert [c.conversation_id for c in resultado.conversations] == ["901"]
        assert fake_chatwoot.conversation_labels["900"] == []

    @pytest.mark.asyncio
    async def test_resposta_serializada_com_alias(self, mover):
        resultado = await mover.move_contact("42", "Proposta", "Análise")

        dump = resultado.model_dump(by_alias=True)
        assert dump["conversations"][0] == {"conversationId": "100", "labels": ["proposta"]}


class TestMoveContactRevert:
    """Falha no meio da movimentação e revert best-effort."""

    @pytest.mark.asyncio
    async def test_falha_na_label_da_conversa_reverte(self, mover, fake_chatwoot):
        fake_chatwoot.falhar("POST", "/conversations/102/labels", 500, {"error": "boom"})

        with pytest.raises(RemoteApiError) as exc_info:
            await mover.move_contact("42", "Proposta", "Análise")

        # Erro original, não o do revert
        assert exc_info.value.status == 500
        assert exc_info.value.data == {"error": "boom"}

        puts = [body for m, p, body in fake_chatwoot.calls if m == "PUT"]
        assert puts == [
            {"custom_attributes": {"funil_de_vendas": "Proposta"}},
            {"custom_attributes": {"funil_de_vendas": "Análise"}},
        ]
        assert fake_chatwoot.contacts["42"]["custom_attributes"]["funil_de_vendas"] == "Análise"
        assert fake_chatwoot.contact_labels["42"] == ["vip", "analise"]
        assert fake_chatwoot.conversation_labels["100"] == ["analise"]

    @pytest.mark.asyncio
    async def test_falha_antes_da_selecao_nao_toca_conversas(self, mover, fake_chatwoot):
        fake_chatwoot.falhar("POST", "/contacts/42/labels", 422, {"message": "invalid"})

        with pytest.raises(RemoteApiError) as exc_info:
            await mover.move_contact("42", "Proposta", "Análise")

        assert exc_info.value.status == 422
        assert not any("conversation" in p for p in fake_chatwoot.paths())
        assert fake_chatwoot.contacts["42"]["custom_attributes"]["funil_de_vendas"] == "Análise"

    @pytest.mark.asyncio
    async def test_sem_estagio_anterior_nao_reverte(self, mover, fake_chatwoot):
        fake_chatwoot.falhar("POST", "/conversations/100/labels")

        with pytest.raises(RemoteApiError):
            await mover.move_contact("42", "Proposta")

        assert fake_chatwoot.paths("PUT") == ["/contacts/42"]
        assert fake_chatwoot.calls[-1][:2] == ("POST", "/conversations/100/labels")

    @pytest.mark.asyncio
    async def test_falha_no_revert_e_engolida(self, mover, fake_chatwoot, caplog):
        """O revert tenta de novo a conversa que falhou; o erro do revert só é logado."""
        fake_chatwoot.falhar("GET", "/conversations/100/labels", 503, {"error": "indisponivel"})
        caplog.set_level(logging.WARNING)

        with pytest.raises(RemoteApiError) as exc_info:
            await mover.move_contact("42", "Proposta", "Análise")

        assert exc_info.value.status == 503
        assert fake_chatwoot.paths("GET").count("/conversations/100/labels") == 2
        # A etapa que falhou não impede as demais
        assert fake_chatwoot.contacts["42"]["custom_attributes"]["funil_de_vendas"] == "Análise"
        assert "Revert falhou" in caplog.text

    @pytest.mark.asyncio
    async def test_lock_liberado_apos_falha(self, mover, fake_chatwoot):
        fake_chatwoot.falhar("GET", "/contacts/42/conversations")

        with pytest.raises(RemoteApiError):
            await mover.move_contact("42", "Proposta", "Análise")

        assert not mover.locks.em_andamento("42")


class TestMoveContactIsolamento:
    @pytest.mark.asyncio
    async def test_nao_toca_outro_contato(self, mover, fake_chatwoot):
        await mover.move_contact("42", "Proposta", "Análise")

        for path in fake_chatwoot.paths():
            assert "/contacts/7" not in path
            assert "/conversations/700" not in path
        assert fake_chatwoot.contact_labels["7"] == ["proposta"]
        assert fake_chatwoot.conversation_labels["700"] == ["proposta"]

    @pytest.mark.asyncio
    async def test_revert_nao_toca_outro_contato(self, mover, fake_chatwoot):
        fake_chatwoot.falhar("POST", "/conversations/100/labels")

        with pytest.raises(RemoteApiError):
            await mover.move_contact("42", "Proposta", "Análise")

        assert all("7" not in p.split("/") and "700" not in p.split("/") for p in fake_chatwoot.paths())

    @pytest.mark.asyncio
    async def test_contact_id_vazio(self, mover, fake_chatwoot):
        with pytest.raises(ValidationError):
            await mover.move_contact("  ", "Proposta")

        assert fake_chatwoot.calls == []


class TestMoveContactConcorrencia:
    @pytest.mark.asyncio
    async def test_segunda_movimentacao_do_mesmo_contato_rejeitada(self, mover, fake_chatwoot):
        fake_chatwoot.bloqueio = asyncio.Event()

        primeira = asyncio.create_task(mover.move_contact("42", "Proposta", "Análise"))
        await asyncio.sleep(0)

        with pytest.raises(MoveInProgressError):
            await mover.move_contact("42", "Ganho", "Análise")

        fake_chatwoot.bloqueio.set()
        resultado = await primeira

        assert resultado.stage == "Proposta"
        assert fake_chatwoot.contacts["42"]["custom_attributes"]["funil_de_vendas"] == "Proposta"
        assert not mover.locks.em_andamento("42")

    @pytest.mark.asyncio
    async def test_contatos_diferentes_nao_se_bloqueiam(self, mover, fake_chatwoot):
        fake_chatwoot.bloqueio = asyncio.Event()

        primeira = asyncio.create_task(mover.move_contact("42", "Proposta", "Análise"))
        segunda = asyncio.create_task(mover.move_contact("7", "Ganho", "Proposta"))
        await asyncio.sleep(0)

        fake_chatwoot.bloqueio.set()
        resultados = await asyncio.gather(primeira, segunda)

        assert [r.stage for r in resultados] == ["Proposta", "Ganho"]
