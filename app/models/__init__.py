from app.models.base import Base
from app.models.user import User, RoleGrant
from app.models.chat import ChatSession, Message, Feedback
from app.models.content import (
    MemoryItem,
    FileUpload,
    GeneratedImage,
    GeneratedGame,
    GeneratedMusic,
)

__all__ = [
    "Base",
    "User",
    "RoleGrant",
    "ChatSession",
    "Message",
    "Feedback",
    "MemoryItem",
    "FileUpload",
    "GeneratedImage",
    "GeneratedGame",
    "GeneratedMusic",
]
