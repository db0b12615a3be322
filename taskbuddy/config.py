from pathlib import Path
import os

from dotenv import load_dotenv

# Load environment variables from the repo root .env (if present).
REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(REPO_ROOT / ".env")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskbuddy.db")
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]

# Blob storage for the avatars and task_attachments buckets
STORAGE_ROOT = Path(os.getenv("STORAGE_ROOT", str(REPO_ROOT / "storage")))

# Hosted identity provider (OAuth code exchange)
IDENTITY_URL = os.getenv("IDENTITY_URL", "http://localhost:9999/auth/v1").rstrip("/")
IDENTITY_API_KEY = os.getenv("IDENTITY_API_KEY", "")
IDENTITY_PROVIDER = os.getenv("IDENTITY_PROVIDER", "google")

HOME_PATH = os.getenv("HOME_PATH", "/home")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DESCRIPTION_MAX_LENGTH = 300
ACTIVITY_LOG_LIMIT = 10
