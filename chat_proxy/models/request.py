from pydantic import BaseModel, Field
from typing import Annotated, List, Literal, Optional, Union


class TextContentPart(BaseModel):
    """Plain text part of a multi-part message"""
    type: Literal["text"]
    text: str


class ImageURL(BaseModel):
    url: str
    detail: Optional[str] = None


class ImageContentPart(BaseModel):
    """Image part of a multi-part message (vision models)"""
    type: Literal["image_url"]
    image_url: ImageURL


ContentPart = Annotated[
    Union[TextContentPart, ImageContentPart],
    Field(discriminator="type"),
]

MessageContent = Union[str, List[ContentPart]]


class _BaseMessage(BaseModel):
    content: MessageContent = Field(..., description="Message text or content parts")

    @property
    def text(self) -> str:
        """Text of the message; text parts are joined with a space."""
        if isinstance(self.content, str):
            return self.content
        return " ".join(
            part.text for part in self.content if isinstance(part, TextContentPart)
        )


class SystemMessage(_BaseMessage):
    role: Literal["system"]


class UserMessage(_BaseMessage):
    role: Literal["user"]


class AssistantMessage(_BaseMessage):
    role: Literal["assistant"]


ChatMessage = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage],
    Field(discriminator="role"),
]


class ChatSettings(BaseModel):
    """Model settings chosen by the caller"""
    model: str = Field(..., min_length=1, description="Completion model identifier")
    temperature: float = Field(
        default=0.5,
        ge=0.0,
        le=2.0,
        description="Sampling temperature (0.0 to 2.0)"
    )

    class Config:
        # UI-side settings (contextLength, includeProfileContext, ...) are ignored
        extra = "allow"


class ChatRequest(BaseModel):
    """Chat request model"""
    chat_settings: ChatSettings = Field(..., alias="chatSettings")
    messages: List[ChatMessage] = Field(..., min_length=1, description="Conversation so far")

    class Config:
        populate_by_name = True
