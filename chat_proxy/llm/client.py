import requests
from typing import Iterator, Optional, Dict, Any, List
from abc import ABC, abstractmethod

from chat_proxy.core.config import settings
from chat_proxy.core.errors import UpstreamError
from chat_proxy.core.logging import get_logger
from chat_proxy.llm.streaming import decode_sse_lines, iter_openai_deltas

logger = get_logger(__name__)


class ChatCompletionClient(ABC):
    """Abstract base class for completion provider clients"""

    provider_name: str = ""

    @abstractmethod
    def stream_chat(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        temperature: float,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> Iterator[str]:
        """Open a streaming completion and return its text chunks"""
        pass


def upstream_error_from_response(response: requests.Response, service: str) -> UpstreamError:
    """Build an UpstreamError from a non-2xx provider response."""
    message = None
    try:
        body = response.json()
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            message = error.get("message")
        elif isinstance(error, str):
            message = error
        elif isinstance(body, dict):
            message = body.get("message")
    except ValueError:
        message = response.text.strip() or None

    if not message:
        message = f"{service} request failed: {response.status_code} {response.reason}"
    return UpstreamError(message, status_code=response.status_code)


class OpenAIChatClient(ChatCompletionClient):
    """OpenAI chat completions client (streaming only)"""

    provider_name = "OpenAI"

    def __init__(
        self,
        base_url: str = settings.OPENAI_BASE_URL,
        timeout: int = settings.LLM_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize OpenAI client

        Args:
            base_url: API base URL (e.g., 'https://api.openai.com/v1')
            timeout: Request timeout in seconds
            session: Optional requests session to reuse connections
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

        logger.info(f"Initialized OpenAI chat client at {self.base_url}")

    def _headers(self, api_key: Optional[str], organization: Optional[str]) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {api_key or ''}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if organization:
            headers["OpenAI-Organization"] = organization
        return headers

    def _build_payload(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        """Build request payload; max_tokens is omitted unless set"""
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": True,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    def stream_chat(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        temperature: float,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> Iterator[str]:
        """
        Start a streaming chat completion.

        The request is sent and its status checked before this returns, so
        provider errors surface here rather than mid-stream.

        Args:
            messages: Messages in OpenAI wire format
            model: Model identifier
            temperature: Sampling temperature
            max_tokens: Output token budget, None to leave it to the provider
            api_key: Caller's OpenAI key
            organization: Caller's OpenAI organization id

        Returns:
            Iterator over text chunks as they are generated

        Raises:
            UpstreamError: If the provider rejects the request or is unreachable
        """
        payload = self._build_payload(messages, model, temperature, max_tokens)

        logger.debug(
            f"Streaming chat completion with model: {model} "
            f"({len(messages)} messages, max_tokens={max_tokens})"
        )
        try:
            response = self.http.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self._headers(api_key, organization),
                timeout=self.timeout,
                stream=True,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Error reaching OpenAI: {e}")
            raise UpstreamError(f"Failed to reach OpenAI: {e}") from e

        if not response.ok:
            error = upstream_error_from_response(response, "OpenAI")
            response.close()
            logger.error(f"OpenAI returned {error.status_code}: {error.message}")
            raise error

        return self._iter_chunks(response)

    def _iter_chunks(self, response: requests.Response) -> Iterator[str]:
        try:
            yield from iter_openai_deltas(decode_sse_lines(response.iter_lines()))
        except requests.exceptions.RequestException as e:
            logger.error(f"Error streaming response: {e}")
            raise UpstreamError(f"OpenAI stream interrupted: {e}") from e
        finally:
            response.close()


class LLMClientFactory:
    """Factory for creating completion clients"""

    _clients = {
        "openai": OpenAIChatClient,
    }

    @classmethod
    def create_client(
        cls,
        client_type: str = settings.LLM_TYPE,
        **kwargs
    ) -> ChatCompletionClient:
        """
        Create completion client instance

        Args:
            client_type: Type of client ('openai')
            **kwargs: Additional arguments for client initialization

        Returns:
            ChatCompletionClient instance

        Raises:
            ValueError: If client type is not supported
        """
        if client_type not in cls._clients:
            raise ValueError(
                f"Unsupported LLM client type: {client_type}. "
                f"Supported types: {list(cls._clients.keys())}"
            )

        client_class = cls._clients[client_type]
        logger.info(f"Creating {client_type} LLM client")
        return client_class(**kwargs)
