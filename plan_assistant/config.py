"""
Plan Assistant Configuration
Loads settings from environment variables
"""

import os
import sys
from typing import Optional
from dotenv import load_dotenv
from loguru import logger

# Load environment variables
load_dotenv()

# Placeholder keys copied from sample configs start with this
PLACEHOLDER_KEY_PREFIX = "sk-your"


def is_usable_api_key(key: Optional[str]) -> bool:
    """False when the API key is empty or still the sample placeholder"""
    key = (key or "").strip()
    return bool(key) and not key.startswith(PLACEHOLDER_KEY_PREFIX)


class Settings:
    """Application settings loaded from environment"""

    # LLM Configuration (any OpenAI-compatible endpoint)
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    LLM_TIMEOUT: float = float(os.getenv("LLM_TIMEOUT", "60"))

    # Sampling temperatures
    ANALYSIS_TEMPERATURE: float = float(os.getenv("ANALYSIS_TEMPERATURE", "0.3"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))

    # Ollama Configuration (for local embeddings)
    OLLAMA_HOST: str = os.getenv("OLLAMA_HOST", "http://localhost:11434")
    OLLAMA_EMBEDDING_MODEL: str = os.getenv("OLLAMA_EMBEDDING_MODEL", "paraphrase-multilingual")
    OLLAMA_EMBEDDING_DIM: int = int(os.getenv("OLLAMA_EMBEDDING_DIM", "768"))
    EMBEDDING_TIMEOUT: float = float(os.getenv("EMBEDDING_TIMEOUT", "30"))

    # ChromaDB Configuration
    CHROMA_MODE: str = os.getenv("CHROMA_MODE", "http")  # http | persistent | memory
    CHROMA_HOST: str = os.getenv("CHROMA_HOST", "localhost")
    CHROMA_PORT: int = int(os.getenv("CHROMA_PORT", "8000"))
    CHROMA_PATH: str = os.getenv("CHROMA_PATH", "data/chroma")
    KNOWLEDGE_COLLECTION: str = os.getenv("KNOWLEDGE_COLLECTION", "travel_knowledge_base")

    # Retrieval
    RAG_TOP_K: int = int(os.getenv("RAG_TOP_K", "3"))
    RETRIEVAL_TIMEOUT: float = float(os.getenv("RETRIEVAL_TIMEOUT", "10"))

    # Storage backend for plans and conversation turns
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "memory")  # memory | redis

    # Redis Configuration
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
    REDIS_TIMEOUT: float = float(os.getenv("REDIS_TIMEOUT", "5"))

    # Analysis / chat behaviour
    SHORT_CONTENT_THRESHOLD: int = int(os.getenv("SHORT_CONTENT_THRESHOLD", "50"))
    CHAT_HISTORY_WINDOW: int = int(os.getenv("CHAT_HISTORY_WINDOW", "50"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def has_llm_credentials(self) -> bool:
        """False when the API key is missing or still the sample placeholder"""
        return is_usable_api_key(self.OPENAI_API_KEY)

    @property
    def openai_base_url(self) -> Optional[str]:
        """Base URL for the OpenAI client, None for the provider default"""
        return self.OPENAI_BASE_URL or None

    @property
    def redis_url(self) -> str:
        """Get Redis connection URL"""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    def warn_if_unconfigured(self) -> bool:
        """
        Log a startup warning when LLM credentials are absent.

        Returns:
            True if credentials are present
        """
        if not self.has_llm_credentials:
            logger.warning(
                "OPENAI_API_KEY is not set. Plan analysis and chat calls "
                "will fail until it is configured."
            )
            return False
        return True


def configure_logging(level: Optional[str] = None):
    """Replace loguru's default sink with one at the configured level"""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.LOG_LEVEL).upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} - {name} - {level} - {message}"
    )


# Global settings instance
settings = Settings()
