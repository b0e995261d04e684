"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "docflow_user"
    POSTGRES_PASSWORD: str = "docflow_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "docflow_db"

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Sync URL for Alembic migrations (psycopg2)."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Celery (Redis) ────────────────────────
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # ── Document rendering ────────────────────
    RENDER_BACKEND: str = "wkhtmltopdf"          # "wkhtmltopdf" | "http"
    WKHTMLTOPDF_BINARY: str = "/usr/bin/wkhtmltopdf"
    RENDER_SERVICE_URL: str = "http://localhost:3000/forms/chromium/convert/html"
    RENDER_TIMEOUT_SECONDS: float = 120.0
    RENDER_MAX_ATTEMPTS: int = 3
    RENDER_RETRY_BACKOFF_SECONDS: float = 2.0

    # ── Signature provider (ZapSign-style API) ─
    SIGNATURE_API_BASE_URL: str = "https://api.zapsign.com.br/api/v1"
    SIGNATURE_API_TOKEN: str = ""
    SIGNATURE_API_TIMEOUT_SECONDS: float = 30.0
    SIGNATURE_FOLDER_PATH: str = "/docflow"
    SIGNATURE_LANG: str = "pt-br"
    SIGNATURE_BRAND_NAME: str = "Docflow"
    SIGNATURE_BRAND_PRIMARY_COLOR: str = "#073b5b"

    # Contracted party + witnesses, signed after the client.
    # JSON list of {"name", "email", "cpf"} objects.
    ENVELOPE_COUNTERSIGNERS: list[dict[str, str]] = Field(default_factory=list)

    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    APP_NAME: str = "Docflow"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
