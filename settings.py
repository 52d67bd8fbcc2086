"""
Configuration settings for the comment analysis service.

Centralized configuration for the API, the heuristic classifier and logging.
Values can be overridden through environment variables or a local .env file.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


def _csv_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# API Configuration
API_TITLE = os.getenv("API_TITLE", "E-Consultation Comment Analysis API")
API_VERSION = os.getenv("API_VERSION", "1.0.0")
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))
CORS_ORIGINS = _csv_list("CORS_ORIGINS", "*")

# Heuristic classifier
# Unset -> fresh OS entropy per request (simulated model variance).
RANDOM_SEED = _optional_int("RANDOM_SEED")
SUMMARY_MAX_CHARS = 100
MAX_EVIDENCE_SPANS = 5

# Aggregation
TOP_KEYWORDS = 20
TREND_DAYS = 7

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
