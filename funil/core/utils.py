"""
Helpers para leitura segura de respostas do Chatwoot.

O Chatwoot devolve ids como int, timestamps como epoch ou ISO-8601 e
às vezes campos nulos; estas funções nunca levantam exceção.
"""

from datetime import datetime
from typing import Any, Optional


def safe_payload(data: Any) -> list:
    """
    Lista em data["payload"], ou [] se ausente/inválida.

    Example:
        safe_payload({"payload": [{"id": 1}]})  # [{"id": 1}]
        safe_payload({"raw": "<html>"})          # []
    """
    if isinstance(data, dict):
        payload = data.get("payload")
        if isinstance(payload, list):
            return payload
        # /contacts/:id/conversations às vezes vem como {payload: {conversations: [...]}}
        if isinstance(payload, dict) and isinstance(payload.get("conversations"), list):
            return payload["conversations"]
    if isinstance(data, list):
        return data
    return []


def to_int(value: Any) -> Optional[int]:
    """Converte para int; None se não for um número."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def to_str(value: Any) -> Optional[str]:
    """String sem espaços nas pontas; None se vazia."""
    if value is None:
        return None
    texto = str(value).strip()
    return texto or None


def to_timestamp(value: Any) -> Optional[float]:
    """
    Converte epoch (int/float/str numérica) ou ISO-8601 para epoch em segundos.

    Returns:
        float ou None se não for possível interpretar
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    texto = str(value).strip()
    if not texto:
        return None
    try:
        return float(texto)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(texto.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None
