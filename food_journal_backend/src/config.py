import os

from dotenv import load_dotenv

# Load .env for DB/session settings
load_dotenv()

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./food_journal.db")

# === Session config from env ===
SESSION_SECRET = os.environ.get("SESSION_SECRET", "notsosecret")
SESSION_ALGORITHM = os.environ.get("SESSION_ALGORITHM", "HS256")
SESSION_MAX_AGE_MINUTES = int(os.environ.get("SESSION_MAX_AGE_MINUTES", 1440))
SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "food_journal_session")
SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE", "0").lower() in ("1", "true")

BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", 10))

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", 3000))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
