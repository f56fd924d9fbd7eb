import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

COURSE_INFO_CHARS = 4000
BATCH_SYLLABUS_CHARS = 12000
OUTCOME_SYLLABUS_CHARS = 15000


@dataclass(frozen=True)
class Settings:
    openai_api_key: str
    llama_cloud_api_key: str
    openai_model: str = "gpt-4o"
    batch_size: int = 3
    max_concurrent_batches: int = 1


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}.")
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}.")
    return value


def load_settings() -> Settings:
    openai_api_key = os.getenv("OPENAI_API_KEY", "").strip()
    llama_key = os.getenv("LLAMA_CLOUD_API_KEY", "").strip()
    model = os.getenv("OPENAI_MODEL", "gpt-4o").strip() or "gpt-4o"

    if not llama_key:
        raise ValueError("Missing LLAMA_CLOUD_API_KEY in environment.")
    if not openai_api_key:
        logger.warning(
            "Missing OPENAI_API_KEY in environment. "
            "Syllabi will be analyzed with keyword matching only."
        )

    return Settings(
        openai_api_key=openai_api_key,
        llama_cloud_api_key=llama_key,
        openai_model=model,
        batch_size=_positive_int("GENED_BATCH_SIZE", 3),
        max_concurrent_batches=_positive_int("GENED_MAX_CONCURRENT_BATCHES", 1),
    )
