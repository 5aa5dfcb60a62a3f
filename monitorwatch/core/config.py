from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./monitorwatch.db"
    APP_ENV: str = "development"
    # Empty disables bearer-token auth (local single-user install).
    API_SECRET_KEY: str = ""
    DEFAULT_USER_ID: str = "default"

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    # --- AI (OpenRouter-compatible chat completions) ---
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    CHUNK_MODEL: str = "google/gemini-2.0-flash-001"
    DAILY_MODEL: str = "google/gemini-2.0-flash-001"
    MEETING_MODEL: str = "google/gemini-2.0-flash-001"
    AI_TIMEOUT_SECONDS: float = 60.0
    NOTE_LANGUAGE: str = "en"

    # --- Capture ---
    PERFORMANCE_PROFILE: str = "balanced"
    VOICE_TRIGGER_PHRASE: str = "faz a nota"
    IDLE_THRESHOLD_SECONDS: float = 60.0
    MEETING_MIN_SECONDS: float = 120.0
    # Classifier rule tables; None means "use the built-in defaults".
    PRIVACY_TERMS: list[str] | None = None
    MEETING_TERMS: list[str] | None = None
    WORK_TERMS: list[str] | None = None
    MEDIA_TERMS: list[str] | None = None

    # --- Scheduling ---
    NOTE_FREQUENCY: str = "disabled"
    SCHEDULED_TIME: str = "22:00"
    GENERATE_ON_SLEEP: bool = True
    GENERATION_COOLDOWN_SECONDS: float = 1800.0
    SHUTDOWN_WAIT_SECONDS: float = 30.0

    # --- Vault / retention / logging ---
    VAULT_PATH: str = ""
    RETENTION_HOURS: int = 24
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def ai_configured(self) -> bool:
        return bool(self.OPENROUTER_API_KEY.strip())


settings = Settings()
