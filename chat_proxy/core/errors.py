"""
Error taxonomy for the chat proxy.

Every failure raised while handling a chat request is a ChatProxyError (or is
converted into one at the route), carrying an optional HTTP status code.
Upstream phrases about missing or wrong API keys are rewritten into messages
that tell the user where to fix the problem.
"""

from typing import Optional

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"

API_KEY_NOT_FOUND_MESSAGE = (
    "OpenAI API Key not found. Please set it in your profile settings."
)
API_KEY_INCORRECT_MESSAGE = (
    "OpenAI API Key is incorrect. Please fix it in your profile settings."
)

# (lower-case phrase, replacement), checked in order
_FRIENDLY_MESSAGES = (
    ("api key not found", API_KEY_NOT_FOUND_MESSAGE),
    ("incorrect api key", API_KEY_INCORRECT_MESSAGE),
)


class ChatProxyError(Exception):
    """Base error carrying an optional HTTP status code."""

    status_code: Optional[int] = None

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthError(ChatProxyError):
    """Missing or invalid provider credential."""

    status_code = 401


class UpstreamError(ChatProxyError):
    """Failure reported by the completion, embedding or vector index service."""


class InvalidRequestError(ChatProxyError):
    """Malformed request body."""

    status_code = 400


def friendly_error_message(message: Optional[str]) -> str:
    """Map raw upstream error text to the message shown to the user."""
    if not message:
        return DEFAULT_ERROR_MESSAGE

    lowered = message.lower()
    for phrase, replacement in _FRIENDLY_MESSAGES:
        if phrase in lowered:
            return replacement
    return message


def error_status_code(error: BaseException) -> int:
    """Status code carried by the error, 500 when it has none."""
    status = getattr(error, "status_code", None)
    if isinstance(status, int) and status > 0:
        return status
    return 500
