import os
import sys
import logging
from dotenv import load_dotenv

load_dotenv()

OPENAI_MODEL = os.getenv("AGENTOR_MODEL", "gpt-4o")
TEMPERATURE = float(os.getenv("AGENTOR_TEMPERATURE", "0.2"))
REQUEST_TIMEOUT = float(os.getenv("AGENTOR_REQUEST_TIMEOUT", "60"))
MAX_IMAGE_BYTES = int(os.getenv("AGENTOR_MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))

HOST = os.getenv("AGENTOR_HOST", "0.0.0.0")
PORT = int(os.getenv("AGENTOR_PORT", "8000"))
LOG_LEVEL = os.getenv("AGENTOR_LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
