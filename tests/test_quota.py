"""Image quota, premium state and memory cap."""
from datetime import datetime, timedelta

from sqlalchemy import update

from app.database import SessionLocal
from app.models import MemoryItem, User
from app.services import memory, quota

NOW = datetime(2026, 3, 15, 10, 0, 0)


def test_free_user_gets_six_images_then_denied(db, make_user):
    user = make_user()
    for expected in range(1, 7):
        decision = quota.check_and_consume_image_quota(db, user, now=NOW)
        assert decision.allowed
        assert decision.count == expected
        assert decision.limit == 6

    denied = quota.check_and_consume_image_quota(db, user, now=NOW)
    assert not denied.allowed
    assert denied.count == 6
    assert denied.remaining == 0
    assert "free tier limit of 6" in denied.message
    assert "20 daily" in denied.message
    db.refresh(user)
    assert user.image_generation_count == 6


def test_premium_limit_is_twenty(db, make_user, premium_fields):
    user = make_user(image_generation_count=19, last_image_generation_reset=NOW, **premium_fields)

    assert quota.check_and_consume_image_quota(db, user, now=NOW).allowed
    denied = quota.check_and_consume_image_quota(db, user, now=NOW)
    assert not denied.allowed
    assert denied.count == 20
    assert denied.message == "You've reached your daily limit of 20 image generations."


def test_new_day_resets_count(db, make_user):
    user = make_user(image_generation_count=6, last_image_generation_reset=NOW - timedelta(days=1))

    decision = quota.check_and_consume_image_quota(db, user, now=NOW)

    assert decision.allowed
    assert decision.count == 1
    db.refresh(user)
    assert user.last_image_generation_reset == NOW


def test_first_use_without_reset_timestamp(db, make_user):
    user = make_user(image_generation_count=3, last_image_generation_reset=None)

    decision = quota.check_and_consume_image_quota(db, user, now=NOW)

    assert decision.allowed
    assert decision.count == 1


def test_limit_is_checked_against_stored_count(db, make_user):
    """A stale in-memory count must not let a request past the limit."""
    user = make_user(image_generation_count=2, last_image_generation_reset=NOW)
    other = SessionLocal()
    try:
        other.execute(update(User).where(User.id == user.id).values(image_generation_count=6))
        other.commit()
    finally:
        other.close()
    assert user.image_generation_count == 2  # stale view of the row

    decision = quota.check_and_consume_image_quota(db, user, now=NOW)

    assert not decision.allowed
    assert decision.count == 6


def test_release_gives_a_unit_back(db, make_user):
    user = make_user(image_generation_count=4, last_image_generation_reset=NOW)
    quota.release_image_quota(db, user)
    assert user.image_generation_count == 3


def test_expired_trial_is_not_premium(db, make_user, expired_trial_fields):
    user = make_user(**expired_trial_fields)

    assert not quota.is_currently_premium(user)
    assert quota.plan_tier(user) == quota.FREE_TIER
    quota.refresh_premium_status(db, user)
    assert user.is_premium is False


def test_expired_trial_gets_free_image_limit(db, make_user, expired_trial_fields):
    user = make_user(
        image_generation_count=6,
        last_image_generation_reset=datetime.utcnow(),
        **expired_trial_fields,
    )
    decision = quota.check_and_consume_image_quota(db, user)
    assert not decision.allowed
    assert decision.limit == 6


def test_start_trial_sets_expiry(db, make_user):
    user = make_user()
    quota.start_trial(db, user, now=NOW)
    assert user.is_premium
    assert user.premium_expires_at == NOW + timedelta(days=2)
    assert quota.is_currently_premium(user, now=NOW + timedelta(days=1))
    assert not quota.is_currently_premium(user, now=NOW + timedelta(days=3))


def test_upgrade_clears_expiry(db, make_user, expired_trial_fields):
    user = make_user(**expired_trial_fields)
    quota.upgrade_to_premium(db, user)
    assert quota.is_currently_premium(user)
    assert user.premium_expires_at is None


def test_daily_reset_compares_day_of_month():
    assert quota.needs_daily_reset(None, NOW)
    assert quota.needs_daily_reset(NOW - timedelta(days=1), NOW)
    assert not quota.needs_daily_reset(NOW.replace(hour=0), NOW)


def test_same_day_of_month_in_another_month_does_not_reset():
    assert not quota.needs_daily_reset(datetime(2026, 2, 15, 9, 0), NOW)


def test_reset_across_midnight():
    assert quota.needs_daily_reset(datetime(2026, 3, 14, 23, 59), datetime(2026, 3, 15, 0, 1))


def test_no_reset_twenty_three_hours_apart_on_one_day():
    assert not quota.needs_daily_reset(datetime(2026, 3, 15, 0, 30), datetime(2026, 3, 15, 23, 30))


def test_quota_resets_across_midnight(db, make_user):
    user = make_user(image_generation_count=6, last_image_generation_reset=datetime(2026, 3, 14, 23, 59))

    decision = quota.check_and_consume_image_quota(db, user, now=datetime(2026, 3, 15, 0, 1))

    assert decision.allowed
    assert decision.count == 1


def test_sixty_first_memory_item_is_rejected(db, make_user, premium_fields):
    user = make_user(**premium_fields)
    db.add_all([MemoryItem(user_id=user.id, content=f"note {i}") for i in range(59)])
    db.commit()

    sixtieth = memory.add_memory_item(db, user, "likes chai")
    assert sixtieth is not None
    assert memory.add_memory_item(db, user, "one too many") is None
    assert quota.memory_item_count(db, user) == 60
