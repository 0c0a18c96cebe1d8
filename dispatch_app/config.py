"""Environment configuration for the Dispatch backend."""
import os
from dotenv import load_dotenv

# Load environment variables from a local .env if present
load_dotenv()

# Use the DATABASE_URL from environment variable, with fallback to SQLite for local dev
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./dispatch.db")
IS_SQLITE = DATABASE_URL.startswith("sqlite")

AUTH_SECRET = os.environ.get("AUTH_SECRET", "dev-secret-change-me")
AUTH_ALGORITHM = os.environ.get("AUTH_ALGORITHM", "HS256")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Optional server-wide zone consulted before the host's detected zone
DEFAULT_TIME_ZONE = os.environ.get("DEFAULT_TIME_ZONE") or None

# Upper bounds shared by the write paths
MAX_SUMMARY_LENGTH = 10000
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 5000

# Comma separated browser origins allowed to call the API
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]
