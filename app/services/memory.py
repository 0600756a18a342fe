"""Premium memory notes."""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from app.core.errors import NotFoundError
from app.models import MemoryItem, User
from app.services import cache
from app.services.quota import can_add_memory_item

logger = logging.getLogger(__name__)

# Seconds a cross-worker memory lock may be held
MEMORY_LOCK_TIMEOUT = 10


def list_memory_items(db: Session, user: User) -> List[MemoryItem]:
    return (
        db.query(MemoryItem)
        .filter(MemoryItem.user_id == user.id)
        .order_by(MemoryItem.created_at.asc(), MemoryItem.id.asc())
        .all()
    )


def add_memory_item(db: Session, user: User, content: str) -> Optional[MemoryItem]:
    """Create a memory note. Returns None when the user is at the cap."""
    # Count-then-insert must not interleave for one user
    with cache.lock(f"memory:{user.id}", timeout=MEMORY_LOCK_TIMEOUT):
        if not can_add_memory_item(db, user):
            logger.info(f"Memory limit reached for user {user.id}")
            return None
        item = MemoryItem(user_id=user.id, content=content)
        db.add(item)
        db.commit()
        db.refresh(item)
    return item


def delete_memory_item(db: Session, user: User, item_id: int) -> None:
    item = (
        db.query(MemoryItem)
        .filter(MemoryItem.id == item_id, MemoryItem.user_id == user.id)
        .first()
    )
    if not item:
        raise NotFoundError("Memory item not found")
    db.delete(item)
    db.commit()


def memory_notes_for_prompt(db: Session, user: User, limit: int = 20) -> List[str]:
    """Most recent notes, oldest first, for the system instruction."""
    items = (
        db.query(MemoryItem)
        .filter(MemoryItem.user_id == user.id)
        .order_by(MemoryItem.created_at.desc(), MemoryItem.id.desc())
        .limit(limit)
        .all()
    )
    return [item.content for item in reversed(items)]
