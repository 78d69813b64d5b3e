"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EvidenceMode(str, Enum):
    """Where account evidence comes from."""

    HTTP = "http"
    SAMPLE = "sample"


class ProofMode(str, Enum):
    """Proof system backend."""

    MOCK = "mock"
    SNARKJS = "snarkjs"


class EvidenceSettings(BaseSettings):
    """Evidence source (bank data endpoint) configuration."""

    model_config = SettingsConfigDict(env_prefix="EVIDENCE_")

    mode: EvidenceMode = EvidenceMode.SAMPLE
    source_url: str = "https://api.nubank.com.br/api/banks"
    access_token: SecretStr = SecretStr("")

    # Timeouts
    connect_timeout: float = 10.0
    read_timeout: float = 30.0

    user_agent: str = "zkvip/0.1 (balance attestation)"


class ProofSettings(BaseSettings):
    """Proof system configuration."""

    model_config = SettingsConfigDict(env_prefix="PROOF_")

    mode: ProofMode = ProofMode.MOCK
    build_dir: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent / "circuits" / "build"
    )
    circuit_name: str = "balance_threshold"


class AttestationSettings(BaseSettings):
    """Attestation pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="ATTESTATION_")

    # Trusted configuration input: 1 BRL ~ 0.18 WLD
    default_exchange_rate: Decimal = Field(default=Decimal("0.18"), gt=0)

    # Proof synthesis progress is remapped into [proof_progress_start, 100)
    proof_progress_start: int = Field(default=70, ge=7, le=99)

    progress_buffer_size: int = Field(default=32, ge=1)


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServicePorts(BaseSettings):
    """Service port configuration."""

    admission: int = Field(default=8010, alias="ADMISSION_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Pipeline
    evidence: EvidenceSettings = Field(default_factory=EvidenceSettings)
    proof: ProofSettings = Field(default_factory=ProofSettings)
    attestation: AttestationSettings = Field(default_factory=AttestationSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
