"""Configuración central basada en variables de entorno."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Valores globales leídos desde `.env` o el entorno."""

    environment: str = "development"
    log_level: str | None = Field(
        default=None,
        description="Nivel de logging global (ej. debug, info, warning). Cuando no se define, usa un valor por ambiente.",
    )
    request_log_level: str = Field(
        default="info",
        description=(
            "Nivel mínimo para registrar solicitudes en middleware. "
            "Valores más altos (warning/error) reducen registros de peticiones exitosas."
        ),
    )
    request_log_skip_prefixes: tuple[str, ...] = Field(
        default=("/api/health", "/favicon", "/docs", "/openapi"),
        description="Prefijos de ruta para los que no se registrarán eventos de request.started/completed.",
    )
    log_file_path: str | None = Field(
        default=None,
        description="Archivo principal de logs; sin valor sólo se escribe en stdout.",
    )

    session_secret: str | None = None
    session_max_age_seconds: int = Field(
        default=7 * 24 * 3600,
        description="Duración de la cookie de sesión del panel.",
    )
    login: str | None = None
    senha: str | None = None

    database_url: str | None = None
    supabase_url: str | None = None
    supabase_service_role: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "SUPABASE_SERVICE_ROLE", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY"
        ),
    )
    supabase_database_url: str | None = None

    waha_api: str | None = None
    waha_api_key: str | None = None
    waha_instancia: str | None = Field(
        default=None,
        validation_alias=AliasChoices("WAHA_INSTANCIA", "WAHA_SESSION"),
    )
    webhook_url: str | None = None

    openai_api_key: str | None = None

    http_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout por defecto para llamadas HTTP salientes (Supabase, WAHA).",
    )
    ws_heartbeat_seconds: float = Field(
        default=25.0,
        description="Intervalo entre pings enviados por el cliente websocket.",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


settings = Settings()
