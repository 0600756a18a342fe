from typing import Dict

# Per-tier limits. Image generations reset daily; memory items are a standing cap.
PLAN_LIMITS: Dict[str, Dict[str, int]] = {
    "free": {
        "daily_images": 6,
        "memory_items": 60,
    },
    "premium": {
        "daily_images": 20,
        "memory_items": 60,
    },
}

FREE_TIER = "free"
PREMIUM_TIER = "premium"

# Music generation bounds (seconds)
MIN_MUSIC_DURATION = 5
MAX_MUSIC_DURATION = 180
DEFAULT_MUSIC_DURATION = 30


def get_plan_limit(plan_tier: str, limit_type: str) -> int:
    """Get the limit value for a specific plan and limit type."""
    return PLAN_LIMITS.get(plan_tier, PLAN_LIMITS[FREE_TIER]).get(limit_type, 0)
