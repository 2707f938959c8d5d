from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from chat_proxy.core.errors import error_status_code, friendly_error_message
from chat_proxy.core.logging import get_logger
from chat_proxy.llm.streaming import close_when_done
from chat_proxy.models.request import ChatRequest
from chat_proxy.models.response import ErrorResponse
from chat_proxy.services.chat_service import ChatService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def error_response(error: Exception) -> JSONResponse:
    """Convert any failure into the {message} body the client expects."""
    message = friendly_error_message(getattr(error, "message", None) or str(error))
    status_code = error_status_code(error)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


@router.post(
    "/openai",
    responses={
        200: {"content": {"text/plain": {}}, "description": "Streamed completion text"},
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def chat_openai(payload: ChatRequest, service: ChatService = Depends(get_chat_service)):
    """Stream an OpenAI chat completion for the conversation."""
    try:
        chunks = service.stream_chat(payload)
    except Exception as e:
        logger.error(f"Chat error: {e}")
        return error_response(e)

    return StreamingResponse(close_when_done(chunks), media_type=STREAM_MEDIA_TYPE)
