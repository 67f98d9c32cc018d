"""
Movimentação de contato entre estágios do funil.

Uma movimentação mantém três estados remotos do Chatwoot alinhados:
1. custom_attributes.funil_de_vendas do contato
2. labels do contato
3. labels das conversas selecionadas do contato

O Chatwoot só garante atomicidade por recurso, então as etapas rodam em
sequência (cada chamada espera a anterior) e, se uma falhar, as seguintes
não rodam. Quando o estágio anterior é conhecido, é feito um revert
best-effort: atributo, labels do contato e labels das conversas já
selecionadas voltam para o estágio anterior. Falhas do revert só são
logadas; quem chamou recebe sempre o erro original.
"""
import logging
from functools import partial
from typing import Any, Optional

from funil.core.contact_lock import ContactLocks
from funil.core.exceptions import ValidationError
from funil.core.tracing import get_trace_prefix
from funil.core.utils import safe_payload, to_str
from funil.schemas.contato import ConversaLabels, MoveResult
from funil.services.chatwoot import ChatwootClient
from funil.services.conversas import LIMITE_CONVERSAS, select_conversations
from funil.services.labels import (
    ESTRATEGIA_MERGE,
    ESTRATEGIA_REPLACE,
    extrair_labels,
    normalizar_estagio,
    reconciliar_labels,
    slugify,
    valor_atributo,
)

logger = logging.getLogger(__name__)


def _labels_da_resposta(resposta: Any, calculadas: list[str]) -> list[str]:
    """Labels devolvidas pelo POST; as calculadas se o corpo não trouxer lista."""
    if isinstance(resposta, dict) and isinstance(resposta.get("payload"), list):
        return extrair_labels(resposta)
    return calculadas


class StageMover:
    """
    Orquestra a movimentação de um contato.

    Args:
        client: cliente do Chatwoot
        estrategia: "merge" (padrão) ou "replace" para as labels
        limite_conversas: máximo de conversas abertas que recebem a label
        locks: registro de contatos em movimentação; None desliga a serialização
    """

    def __init__(
        self,
        client: ChatwootClient,
        estrategia: str = ESTRATEGIA_MERGE,
        limite_conversas: int = LIMITE_CONVERSAS,
        locks: Optional[ContactLocks] = None,
    ):
        self.client = client
        self.estrategia = estrategia
        self.limite_conversas = limite_conversas
        self.locks = locks

    async def move_contact(
        self,
        contact_id: Any,
        new_stage: Optional[str],
        previous_stage: Optional[str] = None,
    ) -> MoveResult:
        """
        Move o contato para `new_stage`.

        Args:
            contact_id: id do contato no Chatwoot
            new_stage: estágio de destino (texto livre; vazio = "Sem funil")
            previous_stage: estágio de origem; habilita remoção da label
                antiga e o revert em caso de falha

        Returns:
            MoveResult com labels finais do contato e das conversas

        Raises:
            ValidationError: contact_id vazio
            MoveInProgressError: já existe movimentação para o contato
            RemoteApiError: primeira falha do Chatwoot (após tentar o revert)
        """
        contact_id = to_str(contact_id)
        if not contact_id:
            raise ValidationError("contactId obrigatorio", details={"contactId": contact_id})

        if self.locks is None:
            return await self._mover(contact_id, new_stage, previous_stage)

        async with self.locks.lock(contact_id):
            return await self._mover(contact_id, new_stage, previous_stage)

    async def _mover(
        self,
        contact_id: str,
        new_stage: Optional[str],
        previous_stage: Optional[str],
    ) -> MoveResult:
        prefixo = get_trace_prefix()
        estagio = normalizar_estagio(new_stage)
        label = slugify(new_stage)
        label_anterior = slugify(previous_stage) if previous_stage is not None else None

        logger.info(
            f"{prefixo}Movendo contato {contact_id}: "
            f"{previous_stage!r} -> {estagio!r} (label={label}, estrategia={self.estrategia})"
        )

        selecionadas: Optional[list[str]] = None
        try:
            # 1. Atributo do funil
            await self.client.atualizar_funil_contato(contact_id, valor_atributo(new_stage))

            # 2. Labels do contato
            labels = await self._reconciliar_contato(contact_id, label, label_anterior)

            # 3. Conversas do contato
            conversas = safe_payload(await self.client.buscar_conversas_contato(contact_id))
            selecionadas = select_conversations(conversas, self.limite_conversas)
            logger.info(
                f"{prefixo}Contato {contact_id}: {len(conversas)} conversas, "
                f"selecionadas={selecionadas}"
            )

            # 4. Labels das conversas selecionadas
            resultado_conversas = []
            for conversation_id in selecionadas:
                labels_conversa = await self._reconciliar_conversa(
                    conversation_id, label, label_anterior
                )
                resultado_conversas.append(
                    ConversaLabels(conversation_id=conversation_id, labels=labels_conversa)
                )
        except Exception as e:
            logger.error(f"{prefixo}Falha ao mover contato {contact_id} para {estagio!r}: {e}")
            if previous_stage is not None:
                await self._reverter(contact_id, previous_stage, label, label_anterior, selecionadas)
            raise

        logger.info(f"{prefixo}Contato {contact_id} movido para {estagio!r}")
        return MoveResult(
            stage=estagio,
            label=label,
            labels=labels,
            conversations=resultado_conversas,
        )

    async def _reconciliar(self, buscar, definir, resource_id: str, adicionar: str, remover: Optional[str]) -> list[str]:
        if self.estrategia == ESTRATEGIA_REPLACE:
            atuais: list[str] = []
        else:
            atuais = extrair_labels(await buscar(resource_id))

        novas = reconciliar_labels(atuais, adicionar, remover, self.estrategia)
        resposta = await definir(resource_id, novas)
        return _labels_da_resposta(resposta, novas)

    async def _reconciliar_contato(self, contact_id: str, adicionar: str, remover: Optional[str]) -> list[str]:
        return await self._reconciliar(
            self.client.buscar_labels_contato,
            self.client.definir_labels_contato,
            contact_id,
            adicionar,
            remover,
        )

    async def _reconciliar_conversa(self, conversation_id: str, adicionar: str, remover: Optional[str]) -> list[str]:
        return await self._reconciliar(
            self.client.buscar_labels_conversa,
            self.client.definir_labels_conversa,
            conversation_id,
            adicionar,
            remover,
        )

    async def _reverter(
        self,
        contact_id: str,
        previous_stage: str,
        label: str,
        label_anterior: str,
        selecionadas: Optional[list[str]],
    ) -> None:
        """
        Revert best-effort: cada etapa é independente e falhas são só logadas.

        As conversas só são revertidas se a seleção chegou a acontecer.
        """
        prefixo = get_trace_prefix()
        logger.warning(
            f"{prefixo}Revertendo contato {contact_id} para {normalizar_estagio(previous_stage)!r}"
        )

        etapas = [
            ("atributo", partial(
                self.client.atualizar_funil_contato, contact_id, valor_atributo(previous_stage)
            )),
            ("labels do contato", partial(
                self._reconciliar_contato, contact_id, label_anterior, label
            )),
        ]
        for conversation_id in selecionadas or []:
            etapas.append((f"labels da conversa {conversation_id}", partial(
                self._reconciliar_conversa, conversation_id, label_anterior, label
            )))

        for nome, etapa in etapas:
            try:
                await etapa()
            except Exception as e:
                logger.warning(f"{prefixo}Revert falhou ({nome}) contato {contact_id}: {e}")
