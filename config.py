# config.py
"""Application configuration"""
from typing import List
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path

class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOG_FILE_PATH: str = get_log_file_path()
    LOGGER_NAME: str = "examiner_rag"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 5
    CONSOLE_LOG_LEVEL: str = "INFO"

    # App metadata
    APP_TITLE: str = "Examiner RAG Service"
    APP_VERSION: str = "1.0.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Embedding provider: "gemini" (HTTP API) or "local" (sentence-transformers)
    EMBEDDING_PROVIDER: str = "gemini"
    GEMINI_API_KEY: str = ""
    EMBEDDING_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    EMBEDDING_MODEL_NAME: str = "text-embedding-004"
    LOCAL_EMBEDDING_MODEL_NAME: str = "paraphrase-multilingual-mpnet-base-v2"

    # Embedding deadlines and rate-limit handling
    EMBEDDING_TIMEOUT_SEC: float = 10.0        # Background document ingestion
    QUERY_EMBEDDING_TIMEOUT_SEC: float = 0.8   # Live retrieval, blocks the user
    EMBEDDING_MAX_RETRIES: int = 2
    QUERY_EMBEDDING_RETRIES: int = 0
    EMBEDDING_BACKOFF_BASE_SEC: float = 2.0

    # Document processing
    CHUNK_SIZE: int = 1500
    CHUNK_OVERLAP: int = 200
    CHUNK_MIN_COUNT: int = 3
    SENTENCE_FALLBACK_MIN_CHARS: int = 1000
    MIN_DOCUMENT_CHARS: int = 100
    INGEST_PAUSE_SEC: float = 0.05

    # Retrieval
    DEFAULT_TOP_K: int = 4
    MAX_TOP_K: int = 20
    SUMMARY_MAX_CHUNKS: int = 3
    CONTEXT_SEPARATOR: str = "\n\n---\n\n"
    SUMMARY_SEPARATOR: str = "\n\n"
    MAX_QUERY_CHARS: int = 2000

    # Examiner context fallbacks
    OPENING_SUMMARY_CHUNKS: int = 5
    OPENING_CONTEXT_MIN_CHARS: int = 100
    OPENING_FALLBACK_CHARS: int = 8000
    ANSWER_CONTEXT_MIN_CHARS: int = 50
    ANSWER_FALLBACK_CHARS: int = 4000

    # Uploads
    MAX_FILE_SIZE: int = 5 * 1024 * 1024
    ALLOWED_FILE_EXTENSIONS: List[str] = ["txt", "md"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
