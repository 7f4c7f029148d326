from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://eduadmin:eduadmin_secret_2025@db:5432/eduadmin"
    JWT_SECRET: str = "eduadmin-jwt-secret-change-in-production-2025"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 480
    SESSION_CLEANUP_INTERVAL_HOURS: int = 6
    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
