"""Tests for the initial point-threshold catalog."""

import pytest

from rewire.engine.catalog_seeder import can_redeem, redeem, seed_initial_catalog
from rewire.errors import InsufficientPointsError
from rewire.models.reward import RewardItem, RewardTier


def test_five_items_ascending():
    items = seed_initial_catalog()
    assert [i.points_required for i in items] == [100, 250, 500, 750, 2000]


def test_item_content():
    first, *_, last = seed_initial_catalog()
    assert first.title == "15-Minute Break"
    assert first.category == RewardTier.MICRO
    assert first.reward_type == "time_based"
    assert last.title == "Weekend Adventure"
    assert last.category == RewardTier.MAJOR


def test_ids_are_stable():
    assert [i.reward_id for i in seed_initial_catalog()] == [i.reward_id for i in seed_initial_catalog()]


def test_double_insert_does_not_duplicate(reward_store):
    reward_store.bulk_insert("user-1", seed_initial_catalog())
    reward_store.bulk_insert("user-1", seed_initial_catalog())
    assert len(reward_store.list_catalog("user-1")) == 5


# ── Redemption ──────────────────────────────────────────────────────────

class TestRedeem:
    def test_can_redeem_at_threshold(self):
        item = seed_initial_catalog()[0]
        assert can_redeem(item, 100)
        assert not can_redeem(item, 99)

    def test_redeem_returns_remaining_balance(self):
        assert redeem(seed_initial_catalog()[1], 300) == 50

    def test_redeem_insufficient(self):
        with pytest.raises(InsufficientPointsError):
            redeem(seed_initial_catalog()[-1], 100)

    def test_redeem_unpriced_item(self):
        item = RewardItem(reward_id="micro-1", title="Song", description="", category=RewardTier.MICRO, duration=10)
        assert not can_redeem(item, 10_000)
        with pytest.raises(ValueError):
            redeem(item, 10_000)
