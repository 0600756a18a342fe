"""Request and response schemas for users, auth and subscriptions."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional
from app.services.quota import is_currently_premium

Language = Literal["english", "hindi", "hinglish"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(BaseModel):
    """Profile fields applied when the account is first provisioned."""
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN, description="Used when the token carries no email")
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    bot_name: Optional[str] = Field(None, min_length=1, max_length=50)
    preferred_language: Language = "english"


class PreferencesUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    bot_name: Optional[str] = Field(None, min_length=1, max_length=50)
    preferred_language: Optional[Language] = None
    payout_email: Optional[str] = Field(None, pattern=EMAIL_PATTERN, description="Owners only")


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    display_name: Optional[str] = None
    bot_name: str
    is_premium: bool = Field(..., description="Effective premium state (expired trials are false)")
    premium_expires_at: Optional[datetime] = None
    image_generation_count: int
    last_image_generation_reset: Optional[datetime] = None
    preferred_language: str
    is_owner: bool
    payout_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        response = cls.model_validate(user)
        response.is_premium = is_currently_premium(user)
        return response
