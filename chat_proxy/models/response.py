from pydantic import BaseModel, Field
from typing import Dict
from datetime import datetime, timezone
from enum import Enum


class ResponseStatus(str, Enum):
    """Response status enumeration"""
    OK = "ok"
    ERROR = "error"


class ErrorResponse(BaseModel):
    """Error body returned instead of a stream"""
    message: str = Field(..., description="User-facing error message")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "OpenAI API Key not found. Please set it in your profile settings."
            }
        }


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: ResponseStatus = Field(..., description="Overall status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Check timestamp"
    )
    version: str = Field(..., description="Application version")
    retrieval_augmentation: bool = Field(..., description="Whether prompts are augmented with retrieved context")
    token_limits: Dict[str, int] = Field(
        default_factory=dict,
        description="Models with a fixed output token budget"
    )
