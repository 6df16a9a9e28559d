# linkdle/core/config.py
import pathlib
import logging
from typing import Dict
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

logger = logging.getLogger("linkdle.core.config")  # Logger for this module

BASE_DIR = pathlib.Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    PROJECT_NAME: str = "Linkdle Backend"
    API_V1_STR: str = "/api/v1"
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'linkdle.db'}"
    LOG_DIR: pathlib.Path = BASE_DIR / "logs"

    # --- External providers ---
    DICTIONARY_API_URL: str = "https://api.dictionaryapi.dev/api/v2/entries/en"
    CONCEPTNET_API_URL: str = "http://api.conceptnet.io"
    # Please set your Gemini API Key in the .env file
    GEMINI_API_KEY: str = "YOUR_GEMINI_API_KEY_HERE"
    GEMINI_MODEL_NAME: str = "gemini-1.5-flash-latest"
    GEMINI_EMBEDDING_MODEL: str = "models/text-embedding-004"
    EMBEDDING_DIMENSIONS: int = 384
    PROVIDER_TIMEOUT_SECONDS: float = 8.0

    # --- Caches (capacity, ttl in seconds) ---
    DICTIONARY_CACHE_CAPACITY: int = 1000
    DICTIONARY_CACHE_TTL_SECONDS: int = 24 * 60 * 60
    RELATIONSHIP_CACHE_CAPACITY: int = 1000
    RELATIONSHIP_CACHE_TTL_SECONDS: int = 24 * 60 * 60
    EMBEDDING_CACHE_CAPACITY: int = 2000
    EMBEDDING_CACHE_TTL_SECONDS: int = 7 * 24 * 60 * 60
    VALIDATION_CACHE_CAPACITY: int = 5000
    VALIDATION_CACHE_TTL_SECONDS: int = 60 * 60
    CACHE_EVICTION_FRACTION: float = 0.2
    CACHE_PERSIST_INTERVAL_SECONDS: int = 300

    # --- Sessions ---
    SESSION_IDLE_TTL_SECONDS: int = 24 * 60 * 60
    SESSION_PRUNE_INTERVAL_SECONDS: int = 10 * 60

    # --- Relationship cascade ---
    SYNONYM_CREATIVITY: int = 5
    ANTONYM_CREATIVITY: int = 7
    CONTEXTUAL_CREATIVITY: int = 10
    EMBEDDING_SIMILARITY_THRESHOLD: float = 0.6
    EMBEDDING_CREATIVITY_SCALE: int = 20
    CONCEPTNET_RELATEDNESS_THRESHOLD: float = 0.5
    CONCEPTNET_CREATIVITY_SCALE: int = 15
    LETTER_OVERLAP_MIN: int = 4
    LETTER_OVERLAP_HIGH_CREATIVITY: int = 10
    LETTER_OVERLAP_LOW_CREATIVITY: int = 5
    MAX_CREATIVITY: int = 20

    # --- Scoring ---
    BASE_SCORE: int = 1000
    FAST_SOLVE_SECONDS: int = 30
    SPEED_DECAY_START_SECONDS: int = 60
    MAX_SPEED_BONUS: float = 1.5
    MIN_SPEED_BONUS: float = 0.1
    SPEED_DECAY_RATE: float = 0.15
    SPEED_DECAY_WINDOW_SECONDS: int = 300
    CREATIVITY_WEIGHT: float = 0.4
    HIGH_CREATIVITY_THRESHOLD: float = 0.7
    EXCEPTIONAL_CREATIVITY_THRESHOLD: float = 0.9
    HIGH_CREATIVITY_RATIO: float = 0.7
    HIGH_CREATIVITY_MULTIPLIER: float = 1.2
    EXCEPTIONAL_EDGE_BONUS: int = 50
    CREATIVE_STREAK_BONUS: int = 25
    OPTIMAL_EFFICIENCY_MULTIPLIER: float = 1.5
    EFFICIENCY_DECAY: float = 0.8
    MIN_EFFICIENCY_MULTIPLIER: float = 0.2
    EXTRA_STEP_PENALTY: int = 10

    # --- Daily puzzle (selection itself lives outside this service) ---
    DAILY_PUZZLE: Dict[str, str | int] = {
        "id": "2024-03-14",
        "start_word": "ocean",
        "end_word": "book",
        "min_steps": 4,
        "date": "2024-03-14",
    }

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

@lru_cache()
def get_settings():
    settings_instance = Settings()
    settings_instance.LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.info(f"Log directory set to: {settings_instance.LOG_DIR}")
    return settings_instance

settings = get_settings()
