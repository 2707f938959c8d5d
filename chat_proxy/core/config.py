from typing import Dict, List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings and configuration"""

    # ============ APP SETTINGS ============
    APP_NAME: str = "Socratic Chat Proxy"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # ============ SERVER SETTINGS ============
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = False

    # ============ CORS SETTINGS ============
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # ============ COMPLETION PROVIDER (OpenAI) ============
    LLM_TYPE: str = "openai"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    # Profile credentials for the single-tenant profile store
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_ORGANIZATION_ID: Optional[str] = None
    LLM_TIMEOUT: int = 600

    # Sampling
    DEFAULT_TEMPERATURE: float = 0.5

    # Output token budget per model; models not listed leave it to the provider
    MODEL_MAX_TOKENS: Dict[str, int] = {
        "gpt-4-vision-preview": 4096,
        "gpt-4o": 4096,
    }

    # ============ RETRIEVAL AUGMENTATION ============
    RETRIEVAL_AUGMENTATION: bool = False
    RETRIEVAL_TOP_K: int = 5

    # ============ EMBEDDING SETTINGS ============
    EMBEDDING_PROVIDER: str = "openai"  # openai or ollama
    EMBEDDING_MODEL: str = "text-embedding-ada-002"
    EMBEDDING_DIMENSION: int = 1536
    EMBEDDING_TIMEOUT: int = 60
    OLLAMA_BASE_URL: str = "http://localhost:11434"

    # ============ VECTOR STORE SETTINGS ============
    VECTOR_STORE_TYPE: str = "pinecone"  # pinecone or chroma
    VECTOR_STORE_TIMEOUT: int = 30

    # Pinecone
    PINECONE_API_KEY: Optional[str] = None
    PINECONE_INDEX_NAME: Optional[str] = None
    PINECONE_ENVIRONMENT: Optional[str] = None
    PINECONE_PROJECT_ID: Optional[str] = None
    PINECONE_INDEX_HOST: Optional[str] = None
    PINECONE_API_VERSION: str = "2024-07"

    # Chroma
    VECTOR_STORE_PATH: str = "./data/chroma"
    CHROMA_HOST: Optional[str] = None
    CHROMA_PORT: int = 8000
    CHROMA_COLLECTION_NAME: str = "tutor-documents"

    # ============ LOGGING SETTINGS ============
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Instantiate settings
settings = Settings()
