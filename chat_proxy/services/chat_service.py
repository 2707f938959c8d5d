"""
Chat Service Module

Business logic for the chat proxy endpoint.
Handles:
- Credential check against the caller's profile
- Optional context retrieval for the latest message
- System prompt injection
- Opening the streaming completion
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from chat_proxy.core.config import Settings, settings
from chat_proxy.core.logging import get_logger
from chat_proxy.llm.client import ChatCompletionClient, LLMClientFactory
from chat_proxy.llm.streaming import relay_chunks
from chat_proxy.models.request import ChatMessage, ChatRequest
from chat_proxy.rag.embeddings import EmbeddingClientFactory
from chat_proxy.rag.prompt import PromptBuilder
from chat_proxy.rag.retriever import Retriever
from chat_proxy.rag.vector_store import VectorIndexFactory
from chat_proxy.services.profile import ProfileStore, SettingsProfileStore, check_api_key

logger = get_logger(__name__)


class ChatService:
    """
    Forwards a conversation to the completion provider as a token stream.

    Retrieval augmentation is on exactly when a retriever is supplied.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        llm_client: ChatCompletionClient,
        retriever: Optional[Retriever] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        model_max_tokens: Optional[Mapping[str, int]] = None,
    ):
        """
        Args:
            profile_store: Source of the caller's provider credentials
            llm_client: Completion provider client
            retriever: Context retriever, None to disable augmentation
            prompt_builder: System prompt builder
            model_max_tokens: Output token budget per model identifier
        """
        self.profile_store = profile_store
        self.llm_client = llm_client
        self.retriever = retriever
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.model_max_tokens = dict(
            settings.MODEL_MAX_TOKENS if model_max_tokens is None else model_max_tokens
        )

        logger.info(
            f"Initialized ChatService (retrieval augmentation: {self.retrieval_enabled})"
        )

    @property
    def retrieval_enabled(self) -> bool:
        return self.retriever is not None

    def max_tokens_for(self, model: str) -> Optional[int]:
        """Token budget for a model, None to leave it to the provider."""
        return self.model_max_tokens.get(model)

    @staticmethod
    def build_messages(
        messages: Sequence[ChatMessage],
        system_prompt: str
    ) -> List[Dict[str, Any]]:
        """
        Replace any system messages with a single leading one.

        Non-system messages keep their relative order.
        """
        outgoing: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        outgoing.extend(
            message.model_dump(exclude_none=True)
            for message in messages
            if message.role != "system"
        )
        return outgoing

    def stream_chat(self, request: ChatRequest) -> Iterator[str]:
        """
        Start a streaming completion for the request.

        Everything up to and including the upstream handshake happens before
        this returns, so failures raise here instead of inside the stream.

        Args:
            request: Validated chat request

        Returns:
            Iterator over the provider's text chunks

        Raises:
            AuthError: If no provider key is configured for the caller
            UpstreamError: If embedding, index or completion calls fail
        """
        profile = self.profile_store.get_profile()
        check_api_key(profile.openai_api_key, self.llm_client.provider_name)

        context = None
        if self.retriever is not None:
            query = request.messages[-1].text
            context = self.retriever.retrieve_context(query, profile=profile)

        system_prompt = self.prompt_builder.build_system_prompt(context)
        messages = self.build_messages(request.messages, system_prompt)

        model = request.chat_settings.model
        max_tokens = self.max_tokens_for(model)

        logger.info(
            f"Forwarding {len(messages)} messages to {model} "
            f"(temperature={request.chat_settings.temperature}, max_tokens={max_tokens})"
        )

        chunks = self.llm_client.stream_chat(
            messages=messages,
            model=model,
            temperature=request.chat_settings.temperature,
            max_tokens=max_tokens,
            api_key=profile.openai_api_key,
            organization=profile.openai_organization_id,
        )
        return relay_chunks(chunks, model)


def build_chat_service(config: Settings = settings) -> ChatService:
    """Construct the chat service and its collaborators from settings."""
    retriever = None
    if config.RETRIEVAL_AUGMENTATION:
        retriever = Retriever(
            vector_index=VectorIndexFactory.create_index(config.VECTOR_STORE_TYPE, config),
            embedding_client=EmbeddingClientFactory.create_client(
                config.EMBEDDING_PROVIDER,
                model=config.EMBEDDING_MODEL,
                timeout=config.EMBEDDING_TIMEOUT,
            ),
            top_k=config.RETRIEVAL_TOP_K,
        )

    return ChatService(
        profile_store=SettingsProfileStore(config),
        llm_client=LLMClientFactory.create_client(
            config.LLM_TYPE,
            base_url=config.OPENAI_BASE_URL,
            timeout=config.LLM_TIMEOUT,
        ),
        retriever=retriever,
        model_max_tokens=config.MODEL_MAX_TOKENS,
    )
