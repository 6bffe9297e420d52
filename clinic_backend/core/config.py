import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "1440"))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Passw0rd!")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin User")

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000/api")
CLIENT_SESSION_PATH = os.getenv("CLIENT_SESSION_PATH", "~/.clinic_session.json")


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
