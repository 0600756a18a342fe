"""
Quota and subscription state.

All premium decisions go through is_currently_premium(); the stored is_premium flag alone
is never trusted because trials expire. Image quota is consumed with conditional UPDATEs so
concurrent requests from one user cannot both pass the limit check.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import func, update
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.plans import FREE_TIER, PREMIUM_TIER, get_plan_limit
from app.models import MemoryItem, User

logger = logging.getLogger(__name__)

PREMIUM_IMAGE_LIMIT_MESSAGE = "You've reached your daily limit of {limit} image generations."
FREE_IMAGE_LIMIT_MESSAGE = (
    "You've reached your free tier limit of {limit} image generations. "
    "Upgrade to premium for {premium_limit} daily generations."
)


@dataclass
class QuotaDecision:
    allowed: bool
    count: int
    limit: int
    message: Optional[str] = None

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


def is_currently_premium(user: User, now: Optional[datetime] = None) -> bool:
    """Premium flag set and either non-expiring or not yet expired."""
    if not user.is_premium:
        return False
    if user.premium_expires_at is None:
        return True
    return user.premium_expires_at > (now or datetime.utcnow())


def plan_tier(user: User, now: Optional[datetime] = None) -> str:
    return PREMIUM_TIER if is_currently_premium(user, now) else FREE_TIER


def refresh_premium_status(db: Session, user: User, now: Optional[datetime] = None) -> User:
    """Clear the stored premium flag once a trial has expired."""
    if user.is_premium and not is_currently_premium(user, now):
        logger.info(f"Premium expired for user {user.id} (expired at {user.premium_expires_at})")
        user.is_premium = False
        db.commit()
        db.refresh(user)
    return user


def needs_daily_reset(last_reset: Optional[datetime], now: datetime) -> bool:
    """Reset on first use of a new calendar day, compared by day of month."""
    return last_reset is None or last_reset.day != now.day


def image_limit_message(tier: str, limit: int) -> str:
    if tier == PREMIUM_TIER:
        return PREMIUM_IMAGE_LIMIT_MESSAGE.format(limit=limit)
    return FREE_IMAGE_LIMIT_MESSAGE.format(
        limit=limit,
        premium_limit=get_plan_limit(PREMIUM_TIER, "daily_images"),
    )


def check_and_consume_image_quota(db: Session, user: User, now: Optional[datetime] = None) -> QuotaDecision:
    """
    Consume one image generation if the user is under today's limit.

    Never raises on a denial: a denied decision leaves the count untouched and carries
    tier-specific copy for the caller to show.
    """
    now = now or datetime.utcnow()
    tier = plan_tier(user, now)
    limit = get_plan_limit(tier, "daily_images")

    last_reset = user.last_image_generation_reset
    if needs_daily_reset(last_reset, now):
        # Compare-and-swap on the previous reset so concurrent first requests reset once
        if last_reset is None:
            unchanged = User.last_image_generation_reset.is_(None)
        else:
            unchanged = User.last_image_generation_reset == last_reset
        db.execute(
            update(User)
            .where(User.id == user.id, unchanged)
            .values(image_generation_count=0, last_image_generation_reset=now)
            .execution_options(synchronize_session=False)
        )

    result = db.execute(
        update(User)
        .where(User.id == user.id, User.image_generation_count < limit)
        .values(image_generation_count=User.image_generation_count + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(user)

    if result.rowcount == 0:
        logger.info(f"Image quota denied for user {user.id} ({tier}: {user.image_generation_count}/{limit})")
        return QuotaDecision(
            allowed=False,
            count=user.image_generation_count,
            limit=limit,
            message=image_limit_message(tier, limit),
        )
    return QuotaDecision(allowed=True, count=user.image_generation_count, limit=limit)


def release_image_quota(db: Session, user: User) -> None:
    """Give back one unit after a consumed generation failed upstream."""
    db.execute(
        update(User)
        .where(User.id == user.id, User.image_generation_count > 0)
        .values(image_generation_count=User.image_generation_count - 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(user)


def upgrade_to_premium(db: Session, user: User) -> User:
    """Paid plan: premium with no expiry."""
    user.is_premium = True
    user.premium_expires_at = None
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} upgraded to premium")
    return user


def start_trial(db: Session, user: User, now: Optional[datetime] = None) -> User:
    """Time-boxed premium grant."""
    now = now or datetime.utcnow()
    user.is_premium = True
    user.premium_expires_at = now + timedelta(days=settings.trial_days)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} started a trial until {user.premium_expires_at}")
    return user


def memory_item_count(db: Session, user: User) -> int:
    return db.query(func.count(MemoryItem.id)).filter(MemoryItem.user_id == user.id).scalar() or 0


def can_add_memory_item(db: Session, user: User) -> bool:
    limit = get_plan_limit(plan_tier(user), "memory_items")
    return memory_item_count(db, user) < limit
