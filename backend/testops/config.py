import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_CONFIG_PATH = os.getenv("TESTOPS_CONFIG", "config.toml")
_ENV_PATH = os.getenv("TESTOPS_ENV", ".env")


class SchedulingSettings(BaseModel):
    initial_delay_seconds: float = 10
    readiness_retry_delay_seconds: float = 15
    report_retry_delay_seconds: float = 5
    max_attempts: int = Field(default=3, ge=1)
    invoke_timeout_seconds: float = 300
    allow_overlapping_runs: bool = False


class SMTPSettings(BaseModel):
    host: str = "smtp.gmail.com"
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    use_ssl: bool = False
    from_name: str = "Test Automation System"
    from_address: Optional[str] = None
    timeout_seconds: float = 60


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        toml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
    )

    database_url: str = "sqlite:///./testops.db"
    host: str = "0.0.0.0"
    port: int = 8000
    api_token: Optional[str] = None

    # Base URL of the test execution endpoints that scheduled runs call into
    test_run_api_base: str = "http://localhost:8000/api"

    scheduling: SchedulingSettings = Field(default_factory=SchedulingSettings)
    smtp: SMTPSettings = Field(default_factory=SMTPSettings)

    logs_dir: Path = Field(default=Path("logs"))
    storage_path: Path = Field(default=Path("storage"))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > config.toml > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
