#!/usr/bin/env python3
"""
Verifica se as variaveis do Chatwoot estao configuradas.

Aceita os nomes alternativos herdados dos deploys antigos
(CHATWOOT_URL, CHATWOOT_ACCOUNT, CHATWOOT_API_TOKEN, CHATWOOT_TOKEN).

Uso:
    python scripts/check_env.py
"""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Carregar .env
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

# Variavel -> nomes aceitos, em ordem de prioridade
REQUIRED = {
    "CHATWOOT_ACCOUNT_ID": ["CHATWOOT_ACCOUNT_ID", "CHATWOOT_ACCOUNT"],
    "CHATWOOT_API_ACCESS_TOKEN": [
        "CHATWOOT_API_ACCESS_TOKEN",
        "CHATWOOT_API_TOKEN",
        "CHATWOOT_TOKEN",
    ],
}

OPTIONAL = {
    "CHATWOOT_BASE_URL": ["CHATWOOT_BASE_URL", "CHATWOOT_URL"],
    "LABEL_STRATEGY": ["LABEL_STRATEGY"],
    "RAILWAY_GIT_COMMIT_SHA": ["RAILWAY_GIT_COMMIT_SHA"],
}

SENSIVEIS = {"CHATWOOT_API_ACCESS_TOKEN"}


def ler(nomes: list[str]) -> tuple[str, str]:
    """Primeiro nome com valor nao vazio e o valor (sem espacos)."""
    for nome in nomes:
        value = (os.getenv(nome) or "").strip()
        if value:
            return nome, value
    return "", ""


def mascarar(var: str, value: str) -> str:
    if var in SENSIVEIS:
        return value[:4] + "..." if len(value) > 4 else "***"
    return value


def check():
    print("Verificando variaveis do Chatwoot...\n")

    errors = []
    warnings = []

    print("Obrigatorias:")
    for var, nomes in REQUIRED.items():
        origem, value = ler(nomes)
        if value:
            alias = f" (via {origem})" if origem != var else ""
            print(f"  [OK] {var} = {mascarar(var, value)}{alias}")
        else:
            print(f"  [ERRO] {var} = NAO CONFIGURADA")
            errors.append(var)

    print("\nOpcionais:")
    for var, nomes in OPTIONAL.items():
        origem, value = ler(nomes)
        if value:
            alias = f" (via {origem})" if origem != var else ""
            print(f"  [OK] {var} = {value}{alias}")
        else:
            print(f"  [AVISO] {var} = nao configurada (usando padrao)")
            warnings.append(var)

    print("\n" + "=" * 50)
    if errors:
        print(f"[FALHOU] {len(errors)} variaveis obrigatorias faltando")
        print(f"   Faltam: {', '.join(errors)}")
        return False
    elif warnings:
        print(f"[OK com avisos] {len(warnings)} opcionais faltando")
        return True
    else:
        print("[TUDO OK]")
        return True


if __name__ == "__main__":
    success = check()
    sys.exit(0 if success else 1)
