from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from chat_proxy.api.routes.chat import error_response, router as chat_router
from chat_proxy.core.config import settings
from chat_proxy.core.errors import InvalidRequestError
from chat_proxy.core.logging import log_shutdown_info, log_startup_info, get_logger
from chat_proxy.models.response import HealthCheckResponse, ResponseStatus
from chat_proxy.services.chat_service import ChatService, build_chat_service

logger = get_logger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request body: " + "; ".join(parts)


def create_app(chat_service: Optional[ChatService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        chat_service: Prebuilt service; built from settings at startup if None
    """
    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)
    app.state.chat_service = chat_service

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _describe_validation_error(exc)
        logger.warning(message)
        return error_response(InvalidRequestError(message))

    @app.on_event("startup")
    async def startup_event():
        log_startup_info()
        if app.state.chat_service is None:
            app.state.chat_service = build_chat_service(settings)
        logger.info("Application startup completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        log_shutdown_info()

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(request: Request):
        """Health check endpoint; makes no upstream calls."""
        service: Optional[ChatService] = request.app.state.chat_service
        return HealthCheckResponse(
            status=ResponseStatus.OK if service is not None else ResponseStatus.ERROR,
            version=settings.APP_VERSION,
            retrieval_augmentation=service.retrieval_enabled if service else settings.RETRIEVAL_AUGMENTATION,
            token_limits=service.model_max_tokens if service else settings.MODEL_MAX_TOKENS,
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "chat_proxy.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
    )
