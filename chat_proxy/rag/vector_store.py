"""
Vector Store Module

Read-only access to the similarity index that holds the tutoring material.
Indexing happens elsewhere; this service only runs nearest-neighbour queries.

Backends:
- Pinecone, queried over its REST data-plane API
- Chroma, either a local persistent directory or a Chroma server

Both return matches in the index's ranking order with the passage text in
``metadata["content"]``.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Sequence
from pathlib import Path
from abc import ABC, abstractmethod

import numpy as np
import requests

from chat_proxy.core.config import Settings, settings
from chat_proxy.core.errors import UpstreamError
from chat_proxy.core.logging import get_logger
from chat_proxy.llm.client import upstream_error_from_response

logger = get_logger(__name__)

try:
    import chromadb
except ImportError:
    logger.error("chromadb not installed. Install with: pip install chromadb")
    raise


@dataclass
class IndexMatch:
    """Single nearest-neighbour match"""
    id: str
    score: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def content(self) -> str:
        value = self.metadata.get("content")
        return "" if value is None else str(value)


class VectorIndex(ABC):
    """Nearest-neighbour query interface"""

    @abstractmethod
    def query(
        self,
        vector: Sequence[float],
        top_k: int,
        include_metadata: bool = True
    ) -> List[IndexMatch]:
        """Return up to top_k matches, best first"""
        pass


def _to_list(vector: Sequence[float]) -> List[float]:
    if isinstance(vector, np.ndarray):
        return vector.astype(float).tolist()
    return [float(v) for v in vector]


class PineconeVectorIndex(VectorIndex):
    """
    Pinecone index queried through the REST ``/query`` endpoint.
    """

    def __init__(
        self,
        api_key: str,
        host: str,
        namespace: Optional[str] = None,
        api_version: str = settings.PINECONE_API_VERSION,
        timeout: int = settings.VECTOR_STORE_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Pinecone index client.

        Args:
            api_key: Pinecone service key for this index
            host: Index host (with or without scheme)
            namespace: Optional namespace to query
            api_version: Value for the X-Pinecone-API-Version header
            timeout: Request timeout in seconds
            session: Optional requests session to reuse connections
        """
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        self.host = host.rstrip("/")
        self.api_key = api_key
        self.namespace = namespace
        self.api_version = api_version
        self.timeout = timeout
        self.http = session or requests.Session()

        logger.info(f"Using Pinecone index at {self.host}")

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "PineconeVectorIndex":
        """
        Build the client from PINECONE_* settings.

        PINECONE_INDEX_HOST wins; otherwise the legacy pod host is derived
        from the index name, project id and environment.
        """
        if not config.PINECONE_API_KEY:
            raise ValueError("PINECONE_API_KEY is required for the pinecone vector store")

        host = config.PINECONE_INDEX_HOST
        if not host:
            missing = [
                name for name, value in (
                    ("PINECONE_INDEX_NAME", config.PINECONE_INDEX_NAME),
                    ("PINECONE_PROJECT_ID", config.PINECONE_PROJECT_ID),
                    ("PINECONE_ENVIRONMENT", config.PINECONE_ENVIRONMENT),
                ) if not value
            ]
            if missing:
                raise ValueError(
                    f"Set PINECONE_INDEX_HOST or all of: {', '.join(missing)}"
                )
            host = (
                f"{config.PINECONE_INDEX_NAME}-{config.PINECONE_PROJECT_ID}"
                f".svc.{config.PINECONE_ENVIRONMENT}.pinecone.io"
            )

        return cls(
            api_key=config.PINECONE_API_KEY,
            host=host,
            api_version=config.PINECONE_API_VERSION,
            timeout=config.VECTOR_STORE_TIMEOUT,
        )

    def query(
        self,
        vector: Sequence[float],
        top_k: int,
        include_metadata: bool = True
    ) -> List[IndexMatch]:
        body: Dict[str, Any] = {
            "vector": _to_list(vector),
            "topK": top_k,
            "includeMetadata": include_metadata,
        }
        if self.namespace:
            body["namespace"] = self.namespace

        try:
            response = self.http.post(
                f"{self.host}/query",
                json=body,
                headers={
                    "Api-Key": self.api_key,
                    "X-Pinecone-API-Version": self.api_version,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Error querying Pinecone: {e}")
            raise UpstreamError(f"Failed to reach Pinecone: {e}") from e

        if not response.ok:
            error = upstream_error_from_response(response, "Pinecone")
            logger.error(f"Pinecone query failed ({error.status_code}): {error.message}")
            raise error

        matches = [
            IndexMatch(
                id=str(m.get("id", "")),
                score=m.get("score"),
                metadata=m.get("metadata") or {},
            )
            for m in response.json().get("matches", [])
        ]
        logger.debug(f"Pinecone returned {len(matches)} matches")
        return matches


class ChromaVectorIndex(VectorIndex):
    """
    Chroma collection wrapper for similarity search.
    """

    def __init__(self, collection):
        """
        Args:
            collection: A chromadb collection
        """
        self.collection = collection

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "ChromaVectorIndex":
        """Open the configured collection, on a Chroma server if CHROMA_HOST is set."""
        try:
            if config.CHROMA_HOST:
                client = chromadb.HttpClient(host=config.CHROMA_HOST, port=config.CHROMA_PORT)
                logger.info(f"Connected to Chroma at {config.CHROMA_HOST}:{config.CHROMA_PORT}")
            else:
                Path(config.VECTOR_STORE_PATH).mkdir(parents=True, exist_ok=True)
                client = chromadb.PersistentClient(path=config.VECTOR_STORE_PATH)
                logger.info(f"Initialized Chroma client at {config.VECTOR_STORE_PATH}")
        except Exception as e:
            logger.error(f"Failed to initialize Chroma client: {e}")
            raise

        collection = client.get_or_create_collection(
            name=config.CHROMA_COLLECTION_NAME,
            metadata={"hnsw:space": "cosine"}
        )
        logger.info(f"Using collection: {config.CHROMA_COLLECTION_NAME}")
        return cls(collection)

    def query(
        self,
        vector: Sequence[float],
        top_k: int,
        include_metadata: bool = True
    ) -> List[IndexMatch]:
        include = ["documents", "distances"]
        if include_metadata:
            include.append("metadatas")

        try:
            results = self.collection.query(
                query_embeddings=[_to_list(vector)],
                n_results=top_k,
                include=include
            )
        except Exception as e:
            logger.error(f"Error searching vector store: {e}")
            raise UpstreamError(f"Chroma query failed: {e}") from e

        ids = (results.get("ids") or [[]])[0]
        documents = (results.get("documents") or [[]])[0] or []
        distances = (results.get("distances") or [[]])[0] or []
        metadatas = (results.get("metadatas") or [[]])[0] or []

        matches = []
        for i, doc_id in enumerate(ids):
            metadata = dict(metadatas[i] or {}) if i < len(metadatas) else {}
            if i < len(documents) and documents[i] is not None:
                metadata.setdefault("content", documents[i])
            # Cosine distance (0 identical, 2 opposite) to similarity
            score = 1 - (distances[i] / 2) if i < len(distances) else None
            matches.append(IndexMatch(id=str(doc_id), score=score, metadata=metadata))

        logger.debug(f"Found {len(matches)} results")
        return matches


class VectorIndexFactory:
    """Factory for creating vector index clients"""

    _indexes = {
        "pinecone": PineconeVectorIndex,
        "chroma": ChromaVectorIndex,
    }

    @classmethod
    def create_index(
        cls,
        index_type: str = settings.VECTOR_STORE_TYPE,
        config: Settings = settings
    ) -> VectorIndex:
        if index_type not in cls._indexes:
            raise ValueError(
                f"Unsupported vector store type: {index_type}. "
                f"Supported types: {list(cls._indexes.keys())}"
            )
        logger.info(f"Creating {index_type} vector index")
        return cls._indexes[index_type].from_settings(config)
