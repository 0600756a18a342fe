"""Schemas for memory, uploads and generated media."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from app.core.plans import MAX_MUSIC_DURATION, MIN_MUSIC_DURATION


class MemoryItemCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class MemoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    created_at: datetime


class FileUploadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    filename: str
    file_type: str
    file_path: str
    created_at: datetime


class UploadResponse(BaseModel):
    urls: List[str]
    files: List[FileUploadResponse]


class ImageGenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=2000)


class ImageGenerateResponse(BaseModel):
    image_url: str
    image_count: int = Field(..., description="Generations used today, including this one")
    max_images: int = Field(..., description="Daily limit for the user's tier")


class GeneratedImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    prompt: str
    image_url: str
    created_at: datetime


class CodeCheckRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=20000)
    language: str = Field(..., min_length=1, max_length=50)


class CodeCheckResponse(BaseModel):
    is_valid: bool
    suggestions: List[str] = []
    error_message: Optional[str] = None


class GameGenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=2000)


class GameResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    prompt: str
    title: str
    description: str
    game_code: str
    game_url: str
    thumbnail_url: Optional[str] = None
    created_at: datetime


class MusicGenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=2000)
    duration: Optional[int] = Field(None, ge=MIN_MUSIC_DURATION, le=MAX_MUSIC_DURATION, description="Seconds")
    genre: Optional[str] = Field(None, max_length=50)


class MusicResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    prompt: str
    title: str
    description: Optional[str] = None
    music_url: str
    duration: Optional[int] = None
    created_at: datetime
