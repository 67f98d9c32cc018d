"""
Configurações da aplicação.
Carrega variáveis de ambiente (e .env) uma única vez no startup.
"""
from dataclasses import dataclass
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from funil.core.exceptions import ConfigurationError

DEFAULT_CHATWOOT_URL = "https://app.chatwoot.com"

ESTRATEGIAS_LABEL = ("merge", "replace")


class Settings(BaseSettings):
    """Configurações carregadas do ambiente/.env"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignora variáveis extras do .env
        populate_by_name=True,
    )

    # App
    APP_NAME: str = "Funil Kanban"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"

    # Chatwoot - nomes alternativos herdados dos deploys antigos
    CHATWOOT_BASE_URL: str = Field(
        default=DEFAULT_CHATWOOT_URL,
        validation_alias=AliasChoices("CHATWOOT_BASE_URL", "CHATWOOT_URL"),
    )
    CHATWOOT_ACCOUNT_ID: str = Field(
        default="",
        validation_alias=AliasChoices("CHATWOOT_ACCOUNT_ID", "CHATWOOT_ACCOUNT"),
    )
    CHATWOOT_API_ACCESS_TOKEN: str = Field(
        default="",
        validation_alias=AliasChoices(
            "CHATWOOT_API_ACCESS_TOKEN",
            "CHATWOOT_API_TOKEN",
            "CHATWOOT_TOKEN",
        ),
    )
    CHATWOOT_TIMEOUT_SECONDS: float = 15.0

    # Movimentação entre estágios
    LABEL_STRATEGY: str = "merge"  # "merge" preserva labels manuais, "replace" deixa só o estágio
    MAX_CONVERSATIONS_PER_MOVE: int = 5

    # Listagem de contatos
    CONTACTS_PER_PAGE: int = 50
    CONTACTS_MAX_PAGES: int = 50

    # Deploy (Railway)
    RAILWAY_GIT_COMMIT_SHA: str = ""

    @field_validator(
        "CHATWOOT_BASE_URL",
        "CHATWOOT_ACCOUNT_ID",
        "CHATWOOT_API_ACCESS_TOKEN",
        mode="before",
    )
    @classmethod
    def _strip(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("CHATWOOT_BASE_URL")
    @classmethod
    def _base_url_padrao(cls, value: str) -> str:
        return (value or DEFAULT_CHATWOOT_URL).rstrip("/")

    @field_validator("LABEL_STRATEGY")
    @classmethod
    def _estrategia_valida(cls, value: str) -> str:
        value = (value or "merge").strip().lower()
        if value not in ESTRATEGIAS_LABEL:
            raise ValueError(f"LABEL_STRATEGY deve ser um de {ESTRATEGIAS_LABEL}")
        return value

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Retorna lista de origens CORS permitidas."""
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@dataclass(frozen=True)
class ChatwootConfig:
    """
    Credenciais do Chatwoot resolvidas uma vez no startup.

    Passada por referência para quem precisa falar com o Chatwoot,
    em vez de cada módulo ler o ambiente por conta própria.
    """

    base_url: str
    account_id: str
    api_token: str
    timeout: float = 15.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatwootConfig":
        return cls(
            base_url=settings.CHATWOOT_BASE_URL,
            account_id=settings.CHATWOOT_ACCOUNT_ID,
            api_token=settings.CHATWOOT_API_ACCESS_TOKEN,
            timeout=settings.CHATWOOT_TIMEOUT_SECONDS,
        )

    @property
    def faltando(self) -> list[str]:
        """Nomes das variáveis obrigatórias ausentes."""
        faltando = []
        if not self.account_id:
            faltando.append("CHATWOOT_ACCOUNT_ID")
        if not self.api_token:
            faltando.append("CHATWOOT_API_ACCESS_TOKEN")
        return faltando

    @property
    def configurado(self) -> bool:
        return bool(self.base_url) and not self.faltando

    def validar(self) -> None:
        """
        Falha rápido se faltar account id ou token.

        Raises:
            ConfigurationError: com a lista de variáveis ausentes
        """
        if self.faltando:
            raise ConfigurationError(
                f"Configuração ausente: {', '.join(self.faltando)}",
                details={"missing": self.faltando},
            )


@lru_cache()
def get_settings() -> Settings:
    """Retorna instância cacheada das configurações."""
    return Settings()
