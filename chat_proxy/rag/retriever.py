"""
Retriever Module

Finds tutoring material related to the latest message.

Retrieval Process:
1. Convert the query to an embedding
2. Ask the vector index for the top-k nearest entries
3. Join their passage text, newline-separated, in the index's order

There is no re-ranking, deduplication or relevance threshold: the index's
own ranking is the answer.
"""

from typing import List, Optional

from chat_proxy.core.config import settings
from chat_proxy.core.logging import get_logger
from chat_proxy.rag.embeddings import EmbeddingClient
from chat_proxy.rag.vector_store import IndexMatch, VectorIndex
from chat_proxy.services.profile import Profile

logger = get_logger(__name__)


class Retriever:
    """
    Embeds a query and returns the best-matching passages from the index.
    """

    def __init__(
        self,
        vector_index: VectorIndex,
        embedding_client: EmbeddingClient,
        top_k: int = settings.RETRIEVAL_TOP_K,
    ):
        """
        Initialize retriever.

        Args:
            vector_index: Index to query
            embedding_client: Client producing query embeddings
            top_k: Number of passages to retrieve
        """
        self.vector_index = vector_index
        self.embedding_client = embedding_client
        self.top_k = top_k

        logger.info(f"Initialized Retriever: top_k={top_k}")

    def retrieve(self, query: str, profile: Optional[Profile] = None) -> List[IndexMatch]:
        """
        Retrieve matches for a query.

        Args:
            query: Text to search for
            profile: Caller credentials for the embedding call

        Returns:
            At most top_k matches, best first
        """
        api_key = profile.openai_api_key if profile else None
        organization = profile.openai_organization_id if profile else None

        logger.debug(f"Retrieving context for query: {query[:100]}...")

        embedding = self.embedding_client.embed_text(
            query,
            api_key=api_key,
            organization=organization,
        )
        matches = self.vector_index.query(
            embedding,
            top_k=self.top_k,
            include_metadata=True,
        )

        matches = matches[:self.top_k]
        logger.info(f"Retrieved {len(matches)} context passages")
        return matches

    def retrieve_context(self, query: str, profile: Optional[Profile] = None) -> str:
        """Retrieve matches and join their passage text with newlines."""
        matches = self.retrieve(query, profile=profile)
        return "\n".join(match.content for match in matches)
