"""Per-user, per-category push preference filtering."""
from typing import Any, Iterable, List, Mapping, Optional

from ..models.notification import NotificationCategory

# Preference key consulted for each category
CATEGORY_PREFERENCE_KEYS = {
    NotificationCategory.BUDGET: "budget",
    NotificationCategory.APPROVAL: "approvals",
    NotificationCategory.EVENT: "events",
    NotificationCategory.TASK: "tasks",
    NotificationCategory.SECURITY: "security",
    NotificationCategory.ANNOUNCEMENT: "announcements",
}

GLOBAL_PREFERENCE_KEY = "push_enabled"


def _preferences_of(user: Any) -> Mapping[str, Optional[bool]]:
    if isinstance(user, Mapping):
        prefs = user.get("notification_preferences")
    else:
        prefs = getattr(user, "notification_preferences", None)
    return prefs or {}


def is_eligible(category: NotificationCategory, user: Any) -> bool:
    """Return whether ``user`` should receive a ``category`` notification.

    Preferences are opt-out: only an explicit ``False`` blocks. A missing
    preference object, a missing key or ``None`` all mean allowed.
    """
    prefs = _preferences_of(user)
    if prefs.get(GLOBAL_PREFERENCE_KEY) is False:
        return False

    key = CATEGORY_PREFERENCE_KEYS[NotificationCategory(category)]
    return prefs.get(key) is not False


def filter_eligible(category: NotificationCategory, users: Iterable[Any]) -> List[Any]:
    """Keep the users that have not opted out of ``category``."""
    return [user for user in users if is_eligible(category, user)]
