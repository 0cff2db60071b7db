import os
from dotenv import load_dotenv

load_dotenv()


def _csv(value):
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL")
    SECRET_KEY = os.getenv("SECRET_KEY")
    # Old signing keys stay valid for verification until their tokens expire
    PREVIOUS_SECRET_KEYS = _csv(os.getenv("PREVIOUS_SECRET_KEYS"))
    ALGORITHM = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 1440))

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))
    MIN_PASSWORD_LENGTH = int(os.getenv("MIN_PASSWORD_LENGTH", 6))

    DEFAULT_CATEGORY_NAME = os.getenv("DEFAULT_CATEGORY_NAME", "Uncategorized")

    CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS", "*"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

settings = Settings()
