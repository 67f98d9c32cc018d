"""
Lock por contato - serializa movimentações do mesmo contato.

A API do Chatwoot só é atômica por recurso; duas movimentações do mesmo
contato intercaladas deixariam atributo e labels apontando para estágios
diferentes. Este lock vive no processo (um event loop) e rejeita uma
segunda movimentação enquanto a primeira não terminar.

Uso:
    locks = ContactLocks()

    async with locks.lock(contact_id):
        await mover.move_contact(...)
"""
import logging

from funil.core.exceptions import MoveInProgressError

logger = logging.getLogger(__name__)


class ContactLock:
    """
    Lock de um contato dentro de um ContactLocks.

    Não bloqueante: se o contato já está ocupado, __aenter__ levanta
    MoveInProgressError em vez de esperar.
    """

    def __init__(self, registry: "ContactLocks", contact_id: str):
        self.registry = registry
        self.contact_id = contact_id
        self._acquired = False

    def acquire(self) -> bool:
        """
        Tenta adquirir o lock.

        Returns:
            True se adquiriu, False se o contato já está em movimentação
        """
        if self.contact_id in self.registry._ocupados:
            return False
        self.registry._ocupados.add(self.contact_id)
        self._acquired = True
        logger.debug(f"[ContactLock] Lock adquirido: {self.contact_id}")
        return True

    def release(self) -> None:
        if not self._acquired:
            return
        self.registry._ocupados.discard(self.contact_id)
        self._acquired = False
        logger.debug(f"[ContactLock] Lock liberado: {self.contact_id}")

    async def __aenter__(self) -> "ContactLock":
        if not self.acquire():
            logger.warning(f"[ContactLock] Movimentacao concorrente rejeitada: {self.contact_id}")
            raise MoveInProgressError(self.contact_id)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


class ContactLocks:
    """Registro dos contatos com movimentação em andamento."""

    def __init__(self):
        self._ocupados: set[str] = set()

    def lock(self, contact_id) -> ContactLock:
        return ContactLock(self, str(contact_id))

    def em_andamento(self, contact_id) -> bool:
        return str(contact_id) in self._ocupados
