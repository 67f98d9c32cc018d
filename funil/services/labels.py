"""
Normalização de estágios do funil e reconciliação de labels.

O estágio tem duas formas:
- exibição: texto livre digitado pelo usuário ("Análise", "Proposta enviada"),
  gravado em custom_attributes.funil_de_vendas e usado como título da coluna
- label: slug ascii minúsculo ("analise", "proposta_enviada") usado como
  label do Chatwoot no contato e nas conversas
"""
import re
import unicodedata
from typing import Any, Iterable, Optional

SEM_FUNIL = "Sem funil"
SEM_FUNIL_LABEL = "sem_funil"
ATRIBUTO_FUNIL = "funil_de_vendas"

ESTRATEGIA_MERGE = "merge"
ESTRATEGIA_REPLACE = "replace"

_LABEL_SIMPLES = re.compile(r"^[A-Za-z0-9_-]+$")
_FORA_DO_SLUG = re.compile(r"[^A-Za-z0-9_-]+")
_UNDERSCORES = re.compile(r"_+")


def _texto(value: Any) -> str:
    if value is None:
        return ""
    try:
        return str(value).strip()
    except Exception:
        return ""


def slugify(stage: Any) -> str:
    """
    Converte o nome de exibição de um estágio no label do Chatwoot.

    Nunca levanta exceção; vazio/None vira "sem_funil".

    Examples:
        slugify("Análise") -> "analise"
        slugify("Proposta Enviada!") -> "proposta_enviada"
        slugify("") -> "sem_funil"
    """
    raw = _texto(stage)
    if not raw:
        return SEM_FUNIL_LABEL
    if _LABEL_SIMPLES.match(raw):
        return raw.lower()

    decomposto = unicodedata.normalize("NFKD", raw)
    ascii_ = "".join(ch for ch in decomposto if not unicodedata.combining(ch))
    ascii_ = _FORA_DO_SLUG.sub("_", ascii_)
    ascii_ = _UNDERSCORES.sub("_", ascii_).strip("_")
    return (ascii_ or SEM_FUNIL_LABEL).lower()


def normalizar_estagio(stage: Any) -> str:
    """Estágio de exibição: texto sem espaços nas pontas ou "Sem funil"."""
    return _texto(stage) or SEM_FUNIL


def valor_atributo(stage: Any) -> str:
    """
    Valor gravado em funil_de_vendas.

    Guarda o texto de exibição como digitado; o sentinela "Sem funil"
    nunca é gravado literalmente (vira string vazia).
    """
    raw = _texto(stage)
    if raw.casefold() == SEM_FUNIL.casefold():
        return ""
    return raw


def estagio_do_contato(custom_attributes: Optional[dict]) -> str:
    """Estágio exibido no board para um contato."""
    if not isinstance(custom_attributes, dict):
        return SEM_FUNIL
    return normalizar_estagio(custom_attributes.get(ATRIBUTO_FUNIL))


def extrair_labels(data: Any) -> list[str]:
    """
    Lê a lista de labels de uma resposta {payload: [...]} do Chatwoot.

    Aceita strings ou objetos {title|name}; ignora o resto.
    """
    payload = data.get("payload") if isinstance(data, dict) else data
    if not isinstance(payload, list):
        return []

    labels = []
    for item in payload:
        if isinstance(item, dict):
            item = item.get("title") or item.get("name")
        texto = _texto(item)
        if texto:
            labels.append(texto)
    return labels


def reconciliar_labels(
    atuais: Iterable[str],
    adicionar: str,
    remover: Optional[str] = None,
    estrategia: str = ESTRATEGIA_MERGE,
) -> list[str]:
    """
    Calcula o novo conjunto de labels de um contato ou conversa.

    Args:
        atuais: labels existentes no Chatwoot
        adicionar: slug do estágio de destino
        remover: slug do estágio anterior (ignorado se igual a `adicionar`)
        estrategia: "merge" preserva labels não relacionadas ao funil,
            "replace" deixa apenas o estágio de destino

    Returns:
        Lista ordenada, sem duplicatas, contendo `adicionar`
    """
    if estrategia == ESTRATEGIA_REPLACE:
        return [adicionar]

    resultado: list[str] = []
    for label in atuais or []:
        label = _texto(label)
        if not label or label in resultado:
            continue
        if remover and label == remover and remover != adicionar:
            continue
        resultado.append(label)

    if adicionar not in resultado:
        resultado.append(adicionar)
    return resultado
