import os
import logging
from dotenv import load_dotenv

load_dotenv()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
LLM_MODEL = os.getenv("LLM_MODEL", "o4-mini-2025-04-16")
COMPANY_CONTEXT = os.getenv(
    "COMPANY_CONTEXT",
    "an outbound telemarketing team that books in-home sales appointments",
)

STORE_BACKEND = os.getenv("STORE_BACKEND", "json")  # json|memory
STATE_PATH = os.getenv("STATE_PATH", "./data/state.json")

PORT = int(os.getenv("PORT", "8080"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
