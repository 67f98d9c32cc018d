#!/usr/bin/env python3
"""
Move um contato de estagio pelo servidor do Funil Kanban.

Procura o contato por nome exato (ignorando caixa e espacos; o mais
recente vence) em /api/contacts e chama /api/contacts/{id}/move, o mesmo
caminho usado pelo board. Com --revert, devolve o contato ao estagio
original no final, util para validar um deploy sem deixar rastro.

Uso:
    python scripts/mover_contato.py "Rafael Dos Anjos" "Análise"
    python scripts/mover_contato.py "Rafael Dos Anjos" "Proposta" --revert
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent))

from funil.schemas.contato import ContatoBoard  # noqa: E402
from funil.services.chatwoot import parse_body  # noqa: E402
from funil.services.contatos import escolher_contato_por_nome  # noqa: E402


class FalhaServidor(Exception):
    def __init__(self, status: int, data):
        self.status = status
        self.data = data
        erro = data.get("error") if isinstance(data, dict) else data
        super().__init__(f"HTTP {status}: {erro}")


async def chamar(client: httpx.AsyncClient, method: str, path: str, **kwargs):
    response = await client.request(method, path, **kwargs)
    data = parse_body(response.text)
    if not response.is_success:
        raise FalhaServidor(response.status_code, data)
    return data


async def mover(client: httpx.AsyncClient, contact_id: str, stage: str, previous: str) -> dict:
    print(f"Movendo contato {contact_id}: {previous!r} -> {stage!r}")
    resultado = await chamar(
        client,
        "PUT",
        f"/api/contacts/{contact_id}/move",
        json={"stage": stage, "previousStage": previous},
    )
    print(f"  labels do contato: {resultado.get('labels')}")
    for conversa in resultado.get("conversations") or []:
        print(f"  conversa {conversa.get('conversationId')}: {conversa.get('labels')}")
    if not resultado.get("conversations"):
        print("  nenhuma conversa atualizada")
    return resultado


async def main(base_url: str, nome: str, stage: str, revert: bool) -> int:
    async with httpx.AsyncClient(base_url=base_url, timeout=120.0) as client:
        body = await chamar(client, "GET", "/api/contacts")
        contatos = [ContatoBoard(**c) for c in body.get("contacts") or []]

        contato = escolher_contato_por_nome(contatos, nome)
        if contato is None:
            print(f"[ERRO] Contato nao encontrado por nome exato: {nome!r}")
            return 1

        print(f"Contato id={contato.id} name={contato.name!r} estagio atual={contato.stage!r}")
        original = contato.stage

        await mover(client, contato.id, stage, original)

        if revert:
            await mover(client, contato.id, original, stage)

    print("OK. Confira as labels na UI do Chatwoot.")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Move um contato de estagio no funil")
    parser.add_argument("nome", help="Nome exato do contato")
    parser.add_argument("stage", help="Estagio de destino (ex: Análise)")
    parser.add_argument("--revert", action="store_true", help="Volta ao estagio original no final")
    parser.add_argument("--base-url", default="http://localhost:8000", help="URL do servidor")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(main(args.base_url.rstrip("/"), args.nome, args.stage, args.revert)))
    except FalhaServidor as e:
        print(f"[ERRO] {e}")
        if e.data is not None:
            print(f"Resposta: {json.dumps(e.data, ensure_ascii=False)}")
        sys.exit(1)
    except httpx.HTTPError as e:
        print(f"[ERRO] Servidor inacessivel: {e}")
        sys.exit(1)
