"""
Embeddings Module

Turns the query text into a vector for the similarity search.

Two providers are supported:
- OpenAI ``/embeddings`` (default), authenticated with the caller's profile key
- Ollama ``/api/embed`` for local setups, which needs no credentials

The embedding model is fixed by configuration so that query vectors live in
the same space as the vectors stored in the index.
"""

import numpy as np
import requests
from abc import ABC, abstractmethod
from typing import Optional

from chat_proxy.core.config import settings
from chat_proxy.core.errors import UpstreamError
from chat_proxy.core.logging import get_logger
from chat_proxy.llm.client import upstream_error_from_response

logger = get_logger(__name__)


class EmbeddingClient(ABC):
    """Base class for embedding providers."""

    model: str = ""

    @abstractmethod
    def embed_text(
        self,
        text: str,
        api_key: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> np.ndarray:
        """Embed a single text"""
        pass


class OpenAIEmbeddingClient(EmbeddingClient):
    """
    Embedding client for the OpenAI embeddings endpoint.
    """

    def __init__(
        self,
        base_url: str = settings.OPENAI_BASE_URL,
        model: str = settings.EMBEDDING_MODEL,
        timeout: int = settings.EMBEDDING_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize embedding client.

        Args:
            base_url: OpenAI API base URL
            model: Embedding model name (e.g., 'text-embedding-ada-002')
            timeout: Request timeout in seconds
            session: Optional requests session to reuse connections
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.http = session or requests.Session()

        logger.info(f"Initialized OpenAI Embedding Client with model: {self.model}")

    def embed_text(
        self,
        text: str,
        api_key: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> np.ndarray:
        """
        Generate embedding for a single text.

        Args:
            text: Input text to embed
            api_key: Caller's OpenAI key
            organization: Caller's OpenAI organization id

        Returns:
            Numpy array of embeddings

        Raises:
            UpstreamError: If the API call fails
        """
        headers = {"Authorization": f"Bearer {api_key or ''}"}
        if organization:
            headers["OpenAI-Organization"] = organization

        try:
            response = self.http.post(
                f"{self.base_url}/embeddings",
                json={"model": self.model, "input": text},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Error generating embedding: {e}")
            raise UpstreamError(f"Failed to reach OpenAI embeddings: {e}") from e

        if not response.ok:
            error = upstream_error_from_response(response, "OpenAI embeddings")
            logger.error(f"Embedding request failed ({error.status_code}): {error.message}")
            raise error

        data = response.json().get("data") or []
        if not data:
            raise UpstreamError("No embedding returned from OpenAI")

        embedding = np.array(data[0]["embedding"], dtype=np.float32)
        logger.debug(f"Generated embedding for text (length: {len(text)})")
        return embedding


class OllamaEmbeddingClient(EmbeddingClient):
    """
    Embedding client for a local Ollama server.
    """

    def __init__(
        self,
        base_url: str = settings.OLLAMA_BASE_URL,
        model: str = settings.EMBEDDING_MODEL,
        timeout: int = settings.EMBEDDING_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

        logger.info(f"Initialized Ollama Embedding Client with model: {self.model}")

    def embed_text(
        self,
        text: str,
        api_key: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> np.ndarray:
        """Generate embedding via Ollama; credentials are not used."""
        try:
            response = requests.post(
                f"{self.base_url}/api/embed",
                json={"model": self.model, "input": text},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Error generating embedding: {e}")
            raise UpstreamError(f"Failed to reach Ollama at {self.base_url}: {e}") from e

        if not response.ok:
            raise upstream_error_from_response(response, "Ollama embeddings")

        embeddings = response.json().get("embeddings", [])
        if not embeddings:
            raise UpstreamError("No embeddings returned from Ollama")

        return np.array(embeddings[0], dtype=np.float32)


class EmbeddingClientFactory:
    """Factory for creating embedding clients"""

    _clients = {
        "openai": OpenAIEmbeddingClient,
        "ollama": OllamaEmbeddingClient,
    }

    @classmethod
    def create_client(
        cls,
        provider: str = settings.EMBEDDING_PROVIDER,
        **kwargs
    ) -> EmbeddingClient:
        if provider not in cls._clients:
            raise ValueError(
                f"Unsupported embedding provider: {provider}. "
                f"Supported providers: {list(cls._clients.keys())}"
            )
        logger.info(f"Creating {provider} embedding client")
        return cls._clients[provider](**kwargs)
