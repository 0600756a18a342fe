"""Request and response schemas for chat endpoints."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ChatRequest(BaseModel):
    """One user turn."""
    content: str = Field(..., min_length=1, max_length=8000, description="User message")
    chat_id: Optional[int] = Field(None, description="Existing session; a new one is created when absent")
    file_urls: Optional[List[str]] = Field(None, max_length=10, description="Uploaded file URLs for context")


class FollowUpRequest(BaseModel):
    original_message: str = Field("", max_length=16000, description="Assistant reply being clarified")
    follow_up_message: str = Field(..., min_length=1, max_length=8000)
    chat_id: Optional[int] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    chat_id: int = Field(..., validation_alias="session_id")
    content: str
    role: str
    timestamp: datetime


class ChatSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    created_at: datetime
    updated_at: datetime


class ChatResponse(BaseModel):
    """Result of a chat turn."""
    text: str = Field(..., description="Assistant reply (fallback text when the provider failed)")
    chat_id: int
    title: str
    is_triple_checked: bool = False
    is_fallback: bool = False
    user_message: MessageResponse
    assistant_message: MessageResponse


class FeedbackRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    feedback_type: str = Field(..., min_length=1, max_length=50, description="e.g. like, dislike, report")
    chat_id: int
