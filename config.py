import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite:///./greenlens.db"
    PORT = int(os.getenv("PORT", 4000))

    # Retry budget for the Gemini call
    AI_MAX_ATTEMPTS = int(os.getenv("AI_MAX_ATTEMPTS", 3))
    AI_RETRY_DELAY = float(os.getenv("AI_RETRY_DELAY", 2.0))
    AI_TIMEOUT = float(os.getenv("AI_TIMEOUT", 30.0))

    SCAN_HISTORY_SIZE = int(os.getenv("SCAN_HISTORY_SIZE", 5))
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
