from pathlib import Path
from typing import List, Optional
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    project_name: str = "MedSearch Evidence Pipeline"
    log_level: str = "INFO"

    # Optional provider keys raise per-provider rate limits when present
    ncbi_api_key: Optional[SecretStr] = Field(default=None, description="NCBI E-utilities API key")
    semantic_scholar_api_key: Optional[SecretStr] = Field(default=None, description="Semantic Scholar API key")

    # Inbound API surface
    cors_origins: List[str] = ["http://localhost:4200", "http://localhost:3000", "*"]
    search_rate_limit: str = "10/minute"

    redis_host: str = "localhost"
    redis_port: int = 6379
    search_cache_ttl_minutes: int = 60

    # API contact email used in User-Agent headers for polite API access
    api_contact_email: str = Field(
        default="researcher@example.com",
        description="Email for API contact/User-Agent (update with your real email)"
    )

    @property
    def API_CONTACT_EMAIL(self) -> str:
        return self.api_contact_email

    @property
    def NCBI_API_KEY(self) -> Optional[str]:
        if self.ncbi_api_key:
            return self.ncbi_api_key.get_secret_value()
        return None

    @property
    def SEMANTIC_SCHOLAR_API_KEY(self) -> Optional[str]:
        if self.semantic_scholar_api_key:
            return self.semantic_scholar_api_key.get_secret_value()
        return None

    @property
    def PROJECT_NAME(self) -> str:
        return self.project_name

    @property
    def LOG_LEVEL(self) -> str:
        return self.log_level

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return self.cors_origins

    @property
    def SEARCH_RATE_LIMIT(self) -> str:
        return self.search_rate_limit

    @property
    def REDIS_HOST(self) -> str:
        return self.redis_host

    @property
    def REDIS_PORT(self) -> int:
        return self.redis_port

    @property
    def SEARCH_CACHE_TTL_MINUTES(self) -> int:
        return self.search_cache_ttl_minutes


settings = Settings()
