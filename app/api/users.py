"""Profile preferences and subscription changes."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.deps import get_current_user
from app.core.errors import ForbiddenError
from app.database import get_db
from app.models import User
from app.schemas.user import PreferencesUpdate, UserResponse
from app.services import quota

logger = logging.getLogger(__name__)

router = APIRouter()
subscription_router = APIRouter()


@router.patch("/preferences", response_model=UserResponse)
def update_preferences(
    request: PreferencesUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial update; only fields present in the body change. Null clears payout_email only."""
    changes = {
        k: v
        for k, v in request.model_dump(exclude_unset=True).items()
        if v is not None or k == "payout_email"
    }
    if "payout_email" in changes and not user.is_owner:
        raise ForbiddenError("Only owners can set a payout email")
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} updated preferences: {sorted(changes)}")
    return UserResponse.from_user(user)


@subscription_router.post("/upgrade", response_model=UserResponse)
def upgrade(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return UserResponse.from_user(quota.upgrade_to_premium(db, user))


@subscription_router.post("/trial", response_model=UserResponse)
def start_trial(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Premium for trial_days days."""
    return UserResponse.from_user(quota.start_trial(db, user))
