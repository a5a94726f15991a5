from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central settings object.
    Values come from environment variables; locally you can use backend/.env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Vision model (Gemini)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TIMEOUT_SECONDS: float = 60.0
    GEMINI_TEMPERATURE: float = 0.3
    GEMINI_MAX_OUTPUT_TOKENS: int = 3000

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"

    # Only "development" exposes technicalDetails in generic error bodies
    ENVIRONMENT: str = "production"

    # Image handling
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    OPTIMIZE_MAX_KB: int = 4000
    ENABLE_QUALITY_CHECK: bool = True
    ENABLE_IMAGE_OPTIMIZATION: bool = True

    # Debug
    RETURN_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Versioning
    APP_VERSION: str = "2.0.0"
    BUILD_ID: str = "dev"

    @property
    def api_configured(self) -> bool:
        return bool(self.GEMINI_API_KEY.strip())

    @property
    def max_upload_label(self) -> str:
        return f"{self.MAX_UPLOAD_BYTES / (1024 * 1024):g}MB"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "development"


# ✅ MUST EXIST: other modules import this
settings = Settings()
