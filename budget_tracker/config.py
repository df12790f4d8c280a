from dotenv import load_dotenv
from pydantic import BaseModel
import os

# Carga el .env automáticamente
load_dotenv()


class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "development")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./budget_tracker.db")
    # "sql" or "memory"
    storage_type: str = os.getenv("STORAGE_TYPE", "sql")
    sql_echo: bool = os.getenv("SQL_ECHO", "false").lower() == "true"

    log_level: str = os.getenv("LOG_LEVEL", "info")
    log_dir: str = os.getenv("LOG_DIR", "./logs")

    max_transaction_amount: float = float(os.getenv("MAX_TRANSACTION_AMOUNT", "999999999999999999"))
    max_category_amount: float = float(os.getenv("MAX_CATEGORY_AMOUNT", "999999999999999999.99"))
    max_target_amount: float = float(os.getenv("MAX_TARGET_AMOUNT", "999999999999999999"))
    password_min_length: int = int(os.getenv("PASSWORD_MIN_LENGTH", "1"))

    session_lifetime_months: int = int(os.getenv("SESSION_LIFETIME_MONTHS", "3"))
    session_renewal_window_days: int = int(os.getenv("SESSION_RENEWAL_WINDOW_DAYS", "5"))
    session_renewal_months: int = int(os.getenv("SESSION_RENEWAL_MONTHS", "1"))

    cors_origins: str = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Instancia global de settings
settings = Settings()
