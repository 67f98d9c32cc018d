#!/usr/bin/env python3
"""
Smoke test contra um servidor do Funil Kanban ja rodando.

Confere /api/version, /api/config e /api/contacts e mostra os estagios
com mais contatos.

Uso:
    uvicorn funil.main:app --port 8000 &
    python scripts/smoke.py
    python scripts/smoke.py --base-url https://funil.exemplo.com --top 20
"""
import argparse
import asyncio
import sys
from collections import Counter
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent))

from funil.core.utils import to_str  # noqa: E402
from funil.services.chatwoot import parse_body  # noqa: E402


async def get_json(client: httpx.AsyncClient, path: str, **params) -> tuple[int, object]:
    response = await client.get(path, params=params or None)
    return response.status_code, parse_body(response.text)


def agrupar_estagios(contatos: list) -> list[tuple[str, int]]:
    """Contagem por estagio, do maior para o menor."""
    contagem = Counter(
        to_str(c.get("stage")) or "Sem funil" for c in contatos if isinstance(c, dict)
    )
    return contagem.most_common()


async def main(base_url: str, top: int) -> int:
    async with httpx.AsyncClient(base_url=base_url, timeout=120.0) as client:
        status, version = await get_json(client, "/api/version")
        print(f"VERSION status={status}")
        if isinstance(version, dict):
            railway = (version.get("git") or {}).get("railway")
            print(f"VERSION startedAt={version.get('startedAt')} railwaySha={railway}")

        status, config = await get_json(client, "/api/config")
        print(f"CONFIG status={status}")
        if isinstance(config, dict):
            print(
                f"CONFIG baseUrl={config.get('baseUrl')} accountId={config.get('accountId')} "
                f"hasToken={config.get('hasToken')}"
            )

        status, body = await get_json(client, "/api/contacts", per_page=50, max_pages=50)
        print(f"CONTACTS status={status}")
        if status != 200:
            erro = body.get("error") if isinstance(body, dict) else body
            print(f"CONTACTS_ERROR {erro}")
            return 2

        contatos = body.get("contacts") if isinstance(body, dict) else None
        contatos = contatos if isinstance(contatos, list) else []
        print(f"CONTACTS count={len(contatos)}")

        print("TOP_STAGES")
        for nome, quantidade in agrupar_estagios(contatos)[:top]:
            print(f"- {nome}: {quantidade}")

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Smoke test do Funil Kanban")
    parser.add_argument("--base-url", default="http://localhost:8000", help="URL do servidor")
    parser.add_argument("--top", type=int, default=15, help="Quantos estagios mostrar")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(main(args.base_url.rstrip("/"), args.top)))
    except httpx.HTTPError as e:
        print(f"[ERRO] Servidor inacessivel: {e}")
        sys.exit(1)
