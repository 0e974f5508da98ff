"""
Application configuration using pydantic-settings.

All settings are loaded from environment variables or .env file.

Nested config（如 RiskBandConfig）使用 ``__`` 分隔符：
    RISK__LOW_ABOVE=90
    STATS__PROTECTED_FROM=80
"""
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RiskBandConfig(BaseModel):
    """Per-device risk bands.

    score > low_above → LOW，medium_from <= score <= low_above → MEDIUM，
    其餘為 CRITICAL。邊界 90 屬於 MEDIUM。
    """

    low_above: int = 90
    medium_from: int = 50


class StatsConfig(BaseModel):
    """Global audit statistics thresholds (leaf devices only)."""

    protected_from: int = 80
    critical_below: int = 50


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Application
    app_name: str = Field(
        default="ATLAS",
        description="Application name",
    )
    app_debug: bool = Field(default=False, description="Debug mode")
    api_prefix: str = Field(default="/api/v1", description="API prefix")

    # Compliance vocabulary
    compliance_truthy_values: str = Field(
        default="sim,yes,true,ativo,active,on,ligado,1,ok,compliant,conformidade,conforme",
        description="逗號分隔的合規值（不分大小寫）",
    )

    @property
    def compliance_truthy_set(self) -> set[str]:
        """解析為 set，供 compliance calculator 使用。"""
        return {
            s.strip().lower()
            for s in self.compliance_truthy_values.split(",")
            if s.strip()
        }

    # Risk / statistics thresholds
    risk: RiskBandConfig = RiskBandConfig()
    stats: StatsConfig = StatsConfig()

    # Topology defaults (new pops / nodes)
    pop_id_prefix: str = Field(default="pop", description="New POP id prefix")
    node_id_prefix: str = Field(default="node", description="New node id prefix")
    default_pop_name: str = Field(default="New POP")
    default_pop_city: str = Field(default="City")
    default_node_ip: str = Field(default="0.0.0.0")

    # Startup document (empty = start with an empty workspace)
    initial_document_path: str = Field(
        default="",
        description="Raw document loaded into the workspace on startup",
    )

    # Audit columns fallback (used when no schema attribute is marked for security)
    audit_columns_path: str = Field(
        default="config/audit_columns.yaml",
        description="YAML file with the default audit columns",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance (Singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
