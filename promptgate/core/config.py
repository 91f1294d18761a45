"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for available variables.
"""
import json

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Defaults are meant for local development only; production must override
    access_code_secret and payment_authority_api_key.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: через запятую (например http://localhost:5173). Пусто = дефолтный список в коде.
    cors_origins: str = ""
    # Заголовок, которым браузерная вкладка передаёт свой session id
    session_id_header: str = "X-Session-Id"

    # ===========================================
    # ENTITLEMENT STORAGE
    # ===========================================
    storage_backend: str = "redis"  # redis, memory
    redis_url: str = "redis://localhost:6379/0"
    storage_key_prefix: str = "promptgate"
    # TTL записей в Redis (секунды). 0 = без истечения.
    entitlement_ttl_seconds: int = 0
    # Бэкенд memory только для локального запуска и тестов: сессий держим не больше,
    # самые давние вытесняются
    memory_max_sessions: int = 1000

    # ===========================================
    # ACCESS CODES
    # ===========================================
    # Ключ подписи сохранённых записей и HMAC-ключ синтеза кодов доступа
    access_code_secret: str = "local-dev-access-code-secret"

    # ===========================================
    # PAYMENT AUTHORITY
    # ===========================================
    payment_authority_url: str = "http://localhost:8010"
    payment_authority_api_key: str = ""
    payment_authority_timeout: float = 15.0
    # Значения по умолчанию, если провайдер их не вернул
    payment_amount: str = "199"
    payment_currency: str = "INR"
    subscription_amount: str = "499"
    subscription_period_days: int = 30

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30
    cb_storage: str = "memory"  # memory, redis

    # ===========================================
    # INFERENCE
    # ===========================================
    inference_default_provider: str = "openai"
    inference_default_model: str = "gpt-4o-mini"
    inference_timeout: float = 60.0
    # JSON-объект provider -> base_url (OpenAI-совместимые эндпоинты)
    inference_providers: str = (
        '{"openai": "https://api.openai.com/v1", '
        '"gemini": "https://generativelanguage.googleapis.com/v1beta/openai/"}'
    )

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("storage_backend", "cb_storage")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("redis", "memory"):
            raise ValueError("backend must be 'redis' or 'memory'")
        return v

    @field_validator("access_code_secret")
    @classmethod
    def validate_access_code_secret(cls, v: str) -> str:
        """Ensure the signing secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("access_code_secret must be at least 16 characters")
        if v in ("changeme-changeme", "secretsecretsecret", "passwordpassword"):
            raise ValueError("access_code_secret is too weak, please change it")
        return v

    @field_validator("inference_providers")
    @classmethod
    def validate_inference_providers(cls, v: str) -> str:
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"inference_providers must be a JSON object: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError("inference_providers must be a JSON object")
        return v

    @property
    def inference_provider_urls(self) -> dict[str, str]:
        """Provider name -> base URL."""
        return {str(k).lower(): str(url) for k, url in json.loads(self.inference_providers).items()}

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Игнорировать неизвестные поля из .env


settings = Settings()
