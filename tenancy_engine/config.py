"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Jurisdiction
    default_region: str | None = None
    local_timezone: str = "Pacific/Auckland"
    summer_blackout_enabled: bool = True  # 25 Dec - 15 Jan are not working days
    holiday_table_path: str | None = None  # JSON file replacing the built-in table

    # Service
    service_name: str = "tenancy-engine"
    log_level: str = "INFO"


settings = Settings()
