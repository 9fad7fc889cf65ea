from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-secret-change-me"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 5001
    log_level: str = "INFO"

    database_url: str = "postgresql+psycopg://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"

    # comma separated, e.g. FRONTEND_ORIGINS=http://localhost:3000,https://app.example.com
    frontend_origins: str = "http://localhost:3000"

    jwt_secret: str = DEV_JWT_SECRET
    jwt_issuer: str = "taskhub-api"
    jwt_audience: str = "taskhub-api"
    jwt_expires_minutes: int = 60 * 24 * 30

    bcrypt_rounds: int = 12

    # rate limiting (redis)
    rate_limit_enabled: bool = True
    rate_limit_auth_register_per_min: int = 10
    rate_limit_auth_login_per_min: int = 30

    task_history_limit: int = 50

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.frontend_origins.split(",") if o.strip()]
