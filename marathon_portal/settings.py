from typing import Literal

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Security
    MARATHON_SECRET_KEY: str = "dev-secret-change-me"
    MARATHON_TOKEN_MAX_AGE: int = 60 * 60 * 24 * 7

    # Seeded admin account
    MARATHON_ADMIN_EMAIL: str = "admin@example.com"
    MARATHON_ADMIN_PASSWORD: str = "Admin@123"
    MARATHON_ADMIN_NAME: str = "System Admin"

    # Storage: "sql" uses MARATHON_DB_URL, "json" uses MARATHON_DATA_DIR
    MARATHON_STORE: Literal["sql", "json"] = "sql"
    MARATHON_DB_URL: str = "sqlite:///./marathon_portal.db"
    MARATHON_DATA_DIR: str = "./data"

    # Frontend
    MARATHON_CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    MARATHON_LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.MARATHON_CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
