import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portal.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), default=["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(24 * 60)))

SLOT_STRIDE_MINUTES = int(os.getenv("SLOT_STRIDE_MINUTES", "30"))
PORTAL_CODE_LENGTH = int(os.getenv("PORTAL_CODE_LENGTH", "8"))
PORTAL_CODE_MAX_ATTEMPTS = int(os.getenv("PORTAL_CODE_MAX_ATTEMPTS", "10"))
MAX_BOOKING_NOTES_LENGTH = int(os.getenv("MAX_BOOKING_NOTES_LENGTH", "2000"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_STRIDE_MINUTES <= 0:
        raise RuntimeError("SLOT_STRIDE_MINUTES must be positive.")
