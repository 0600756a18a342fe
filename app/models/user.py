"""User accounts and role grants."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.models.base import Base

LANGUAGES = ("english", "hindi", "hinglish")
DEFAULT_LANGUAGE = "english"
DEFAULT_BOT_NAME = "Desi AI"

OWNER_ROLE = "owner"


class User(Base):
    """Local user row, keyed by the Firebase uid."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_id = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=True)
    bot_name = Column(String, default=DEFAULT_BOT_NAME, nullable=False)
    is_premium = Column(Boolean, default=False, nullable=False)
    # Null while premium means a non-expiring paid plan; set for trials
    premium_expires_at = Column(DateTime, nullable=True)
    image_generation_count = Column(Integer, default=0, nullable=False)
    last_image_generation_reset = Column(DateTime, nullable=True)
    preferred_language = Column(String, default=DEFAULT_LANGUAGE, nullable=False)
    is_owner = Column(Boolean, default=False, nullable=False)
    payout_email = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    sessions = relationship("ChatSession", back_populates="user")
    role_grants = relationship("RoleGrant", back_populates="user", foreign_keys="RoleGrant.user_id")


class RoleGrant(Base):
    """Auditable record of an elevated role assigned to a user."""
    __tablename__ = "role_grants"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String, nullable=False)
    granted_by = Column(String, nullable=False)  # operator name or "user:<id>"
    granted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="role_grants", foreign_keys=[user_id])
