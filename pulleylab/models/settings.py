"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_DIR = Path(__file__).resolve().parents[2]
_ENV_FILE = _PROJECT_DIR / ".env"


def _expand_origin(value: str) -> list[str]:
    origin = value.rstrip("/")
    if origin in {"http://localhost", "http://127.0.0.1"}:
        return [f"{origin}:3000", origin]
    return [origin]


class Settings(BaseSettings):
    # ===== Core =====
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # ===== Frame scheduler =====
    SIM_MAX_FRAME_DT_S: float = Field(0.05, gt=0.0)  # 20 fps floor keeps explicit Euler stable
    SIM_DEFAULT_TIME_SCALE: float = Field(1.0, gt=0.0)
    SIM_MIN_TIME_SCALE: float = Field(0.1, gt=0.0)
    SIM_MAX_TIME_SCALE: float = Field(4.0, gt=0.0)
    SIM_HISTORY_SAMPLE_S: float = Field(0.05, gt=0.0)  # 20 Hz graphs
    SIM_HISTORY_WINDOW: int = Field(100, gt=0)

    # ===== Stateless stepping API =====
    SIM_DEFAULT_DT_S: float = Field(0.016, gt=0.0)  # 60 fps
    SIM_MAX_STEPS_PER_REQUEST: int = Field(2000, gt=0)

    # ===== Presets =====
    SIM_DEFAULT_ATWOOD_PRESET: str = "default"
    SIM_DEFAULT_SANDBOX_PRESET: str = "empty"

    # ===== Frontend & CORS =====
    FRONTEND_ORIGIN: str | None = Field(
        default=None, validation_alias="FRONTEND_ORIGIN"
    )
    CORS_ALLOW_ORIGINS: list[str] = Field(default_factory=list)

    model_config = SettingsConfigDict(env_file=_ENV_FILE, extra="ignore")

    @field_validator("CORS_ALLOW_ORIGINS", mode="before")
    @classmethod
    def _populate_cors(cls, value: list[str] | None, info: ValidationInfo) -> list[str]:
        origins: list[str] = []

        if value:
            for origin in value:
                origins.extend(_expand_origin(origin))

        frontend_origin = info.data.get("FRONTEND_ORIGIN") if info.data else None
        if isinstance(frontend_origin, str) and frontend_origin.strip():
            origins.extend(_expand_origin(frontend_origin))

        return list(dict.fromkeys(origins)) or _expand_origin("http://localhost")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings = get_settings()
