# src/config.py
import os
import logging
from dotenv import load_dotenv

load_dotenv()

# -------------------------------
# SUPABASE
# -------------------------------
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# -------------------------------
# AI CHAT
# -------------------------------
POLLINATIONS_API_KEY = os.getenv("POLLINATIONS_API_KEY", "")
CHAT_API_URL = os.getenv("CHAT_API_URL", "https://gen.pollinations.ai/v1/chat/completions")
CHAT_PRIMARY_MODEL = os.getenv("CHAT_PRIMARY_MODEL", "openai-fast")
CHAT_FALLBACK_MODEL = os.getenv("CHAT_FALLBACK_MODEL", "claude-fast")

# -------------------------------
# API / FRONTEND
# -------------------------------
API_URL = os.getenv("API_URL", "http://127.0.0.1:8000")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level: str = None):
    """Configure the root logger once for the API and the frontend."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
