import json
from typing import AsyncIterator, Iterable, Iterator, Optional

from starlette.concurrency import iterate_in_threadpool

from chat_proxy.core.errors import UpstreamError
from chat_proxy.core.logging import get_logger

logger = get_logger(__name__)

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"

# SSE lines end at CR/LF only; U+2028, U+2029 and NEL may appear raw in JSON strings
_SSE_WHITESPACE = " \t\r\n"


def decode_sse_lines(raw_lines: Iterable[bytes]) -> Iterator[str]:
    """Decode byte lines of an event stream as UTF-8."""
    for raw in raw_lines:
        try:
            yield raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UpstreamError(f"Completion stream is not valid UTF-8: {e}") from e


def iter_openai_deltas(lines: Iterable[str]) -> Iterator[str]:
    """
    Turn an OpenAI chat completion SSE stream into its text deltas.

    Args:
        lines: Decoded lines of the event stream

    Yields:
        Non-empty ``choices[0].delta.content`` strings, in order

    Raises:
        UpstreamError: If the provider sends an error event or a data line
            that is not valid JSON
    """
    for line in lines:
        line = line.strip(_SSE_WHITESPACE)
        if not line.startswith(SSE_DATA_PREFIX):
            # blank separators / comments / keep-alives / event names
            continue

        data = line[len(SSE_DATA_PREFIX):].strip(_SSE_WHITESPACE)
        if data == SSE_DONE:
            break

        try:
            event = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing streaming response line: {e}")
            raise UpstreamError(f"Malformed completion stream event: {e}") from e
        if event.get("error"):
            error = event["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UpstreamError(message or "Completion stream failed")

        choices = event.get("choices") or []
        if not choices:
            continue
        delta = choices[0].get("delta") or {}
        content: Optional[str] = delta.get("content")
        if content:
            yield content


def relay_chunks(chunks: Iterable[str], model: str) -> Iterator[str]:
    """
    Forward completion chunks unchanged, logging how the stream ended.

    Failures after the first byte can no longer become an error response, so
    they are logged and re-raised for the transport to abort the connection.
    """
    count = 0
    try:
        for chunk in chunks:
            count += 1
            yield chunk
        logger.debug(f"Stream completed for model {model} ({count} chunks)")
    except GeneratorExit:
        logger.info(f"Client disconnected from {model} stream after {count} chunks")
        raise
    except Exception as e:
        logger.error(f"Error in stream for model {model} after {count} chunks: {e}")
        raise


async def close_when_done(chunks: Iterator[str]) -> AsyncIterator[str]:
    """
    Iterate a blocking chunk stream from the threadpool.

    The stream is closed once iteration stops for any reason, including the
    client disconnecting, which releases the upstream connection.
    """
    try:
        async for chunk in iterate_in_threadpool(chunks):
            yield chunk
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            close()
