"""
Free/premium access policy.
"""
import enum
import logging
from typing import Dict, Any, Optional

from backend.moodflow.errors import LimitExceeded, PremiumRequired

logger = logging.getLogger(__name__)

FREE_ENTRY_LIMIT = 5


class Action(str, enum.Enum):
    CREATE_ENTRY = 'create_entry'
    EXPORT_REPORT = 'export_report'
    VIEW_WELLNESS = 'view_wellness'


def _is_premium(user: Optional[Dict[str, Any]]) -> bool:
    return bool(user) and user.get('subscription_status') == 'premium'


def can_perform(action: Action, user: Optional[Dict[str, Any]], entry_count: int = 0,
                limit: int = FREE_ENTRY_LIMIT) -> bool:
    """Decide whether `user` may perform `action`.

    Args:
        action: The gated action.
        user: User view with "subscription_status", or None when anonymous.
        entry_count: Entries the user currently holds.
        limit: Free-tier entry cap.
    """
    if not user:
        return False
    if action == Action.CREATE_ENTRY:
        return _is_premium(user) or entry_count < limit
    if action in (Action.EXPORT_REPORT, Action.VIEW_WELLNESS):
        return _is_premium(user)
    raise ValueError(f"Unknown action: {action}")


def require(action: Action, user: Optional[Dict[str, Any]], entry_count: int = 0,
            limit: int = FREE_ENTRY_LIMIT) -> None:
    """Raise the matching upgrade error when `can_perform` denies the action."""
    if can_perform(action, user, entry_count, limit):
        return

    logger.info(f"Denied {Action(action).value} for tier {user.get('subscription_status') if user else 'anonymous'}")
    if action == Action.CREATE_ENTRY:
        raise LimitExceeded(
            f"You have reached the {limit}-entry limit for the free tier. "
            "Please upgrade to premium for unlimited entries."
        )
    if action == Action.EXPORT_REPORT:
        raise PremiumRequired("PDF reports are a premium feature. Upgrade to export your journal.")
    raise PremiumRequired(
        "This is a premium feature. Upgrade your account to access the Emotion Heatmap, "
        "Trigger Detection, and personalized Self-Care Recommendations."
    )


def usage(user: Optional[Dict[str, Any]], entry_count: int, limit: int = FREE_ENTRY_LIMIT) -> Dict[str, Any]:
    """Entry allowance shown on the dashboard."""
    if _is_premium(user):
        return {"used": entry_count, "limit": None, "remaining": None, "limit_reached": False}
    return {
        "used": entry_count,
        "limit": limit,
        "remaining": max(limit - entry_count, 0),
        "limit_reached": entry_count >= limit,
    }
