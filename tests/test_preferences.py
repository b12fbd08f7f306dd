"""Tests for per-category preference filtering."""
import pytest

from notifier.models import NotificationCategory, User
from notifier.services.preferences import (
    CATEGORY_PREFERENCE_KEYS,
    filter_eligible,
    is_eligible,
)

ALL_CATEGORIES = list(NotificationCategory)


class TestDefaultOn:
    """Missing preferences never block."""

    @pytest.mark.parametrize("category", ALL_CATEGORIES)
    def test_no_preferences_object(self, category):
        assert is_eligible(category, User(id="u1", notification_preferences=None))

    @pytest.mark.parametrize("category", ALL_CATEGORIES)
    def test_empty_preferences(self, category):
        assert is_eligible(category, User(id="u1", notification_preferences={}))

    @pytest.mark.parametrize("category", ALL_CATEGORIES)
    def test_none_values_mean_allowed(self, category):
        prefs = {key: None for key in CATEGORY_PREFERENCE_KEYS.values()}
        prefs["push_enabled"] = None
        assert is_eligible(category, {"notification_preferences": prefs})

    @pytest.mark.parametrize("category", ALL_CATEGORIES)
    def test_plain_object_without_attribute(self, category):
        class Bare:
            pass

        assert is_eligible(category, Bare())


class TestCategoryOptOut:
    """Opting out of one category leaves the others alone."""

    @pytest.mark.parametrize("blocked", ALL_CATEGORIES)
    def test_single_category_flag(self, blocked):
        user = User(
            id="u1",
            notification_preferences={CATEGORY_PREFERENCE_KEYS[blocked]: False},
        )

        for category in ALL_CATEGORIES:
            assert is_eligible(category, user) is (category is not blocked)

    @pytest.mark.parametrize("category", ALL_CATEGORIES)
    def test_explicit_true_is_eligible(self, category):
        user = User(
            id="u1",
            notification_preferences={CATEGORY_PREFERENCE_KEYS[category]: True},
        )
        assert is_eligible(category, user)

    def test_category_keys_cover_enum(self):
        assert set(CATEGORY_PREFERENCE_KEYS) == set(NotificationCategory)
        assert CATEGORY_PREFERENCE_KEYS[NotificationCategory.APPROVAL] == "approvals"
        assert CATEGORY_PREFERENCE_KEYS[NotificationCategory.ANNOUNCEMENT] == "announcements"

    def test_accepts_category_value_string(self):
        user = {"notification_preferences": {"budget": False}}
        assert is_eligible("BUDGET", user) is False
        assert is_eligible("EVENT", user) is True


class TestGlobalOptOut:
    """The global push flag overrides every category."""

    @pytest.mark.parametrize("category", ALL_CATEGORIES)
    def test_push_disabled_blocks_everything(self, category):
        prefs = {key: True for key in CATEGORY_PREFERENCE_KEYS.values()}
        prefs["push_enabled"] = False
        assert not is_eligible(category, User(id="u1", notification_preferences=prefs))

    @pytest.mark.parametrize("category", ALL_CATEGORIES)
    def test_push_enabled_true_defers_to_category(self, category):
        prefs = {"push_enabled": True, CATEGORY_PREFERENCE_KEYS[category]: False}
        assert not is_eligible(category, User(id="u1", notification_preferences=prefs))


class TestFilterEligible:

    def test_keeps_order_and_drops_opted_out(self):
        users = [
            User(id="a", notification_preferences=None),
            User(id="b", notification_preferences={"events": False}),
            User(id="c", notification_preferences={"push_enabled": False}),
            User(id="d", notification_preferences={"budget": False}),
        ]

        eligible = filter_eligible(NotificationCategory.EVENT, users)

        assert [u.id for u in eligible] == ["a", "d"]

    def test_empty_input(self):
        assert filter_eligible(NotificationCategory.TASK, []) == []
