"""Tests for the subscription key store"""
from datetime import timedelta

import pytest
from sqlmodel import SQLModel

from keyhub.core.exceptions import KeyConflictError, StoreFailureError
from keyhub.db.models.subscription_key import SubscriptionKeyRead


class TestStoreReads:
    """Lookups, filters and paging"""

    def test_get_returns_detached_snapshot(self, store, make_key):
        make_key("K1", owner_id="7", plan_type="pro")

        record = store.get("K1")

        assert isinstance(record, SubscriptionKeyRead)
        assert record.owner_id == "7"
        assert record.plan_type == "pro"

    def test_get_missing_key(self, store):
        assert store.get("ghost") is None

    def test_lookup_is_exact(self, store, make_key):
        make_key("Key-ABC")

        assert store.get("key-abc") is None
        assert store.get("Key-AB") is None

    def test_get_active_skips_inactive(self, store, make_key):
        make_key("K1", is_active=False)

        assert store.get("K1") is not None
        assert store.get_active("K1") is None

    def test_find_filters_and_orders_newest_first(self, store, make_key, now):
        make_key("old", owner_id="1", plan_type="pro", created_at=now - timedelta(days=3))
        make_key("new", owner_id="1", plan_type="pro", created_at=now - timedelta(days=1))
        make_key("other-owner", owner_id="2", plan_type="pro")
        make_key("other-plan", owner_id="1", plan_type="basic")
        make_key("inactive", owner_id="1", plan_type="pro", is_active=False)

        records = store.find(owner_id="1", plan_type="pro", is_active=True)

        assert [record.key for record in records] == ["new", "old"]

    def test_find_without_filters_returns_all(self, store, make_key):
        for index in range(3):
            make_key(f"K{index}")

        assert len(store.find()) == 3

    def test_page(self, store, make_key, now):
        for index in range(12):
            make_key(f"K{index:02d}", created_at=now - timedelta(minutes=index))

        first, total = store.page(1, 10)
        second, _ = store.page(2, 10)

        assert total == 12
        assert [record.key for record in first][:2] == ["K00", "K01"]
        assert [record.key for record in second] == ["K10", "K11"]


class TestStoreWrites:
    """Single-statement writes"""

    def test_insert_duplicate_key_conflicts(self, store, make_key):
        make_key("K1", plan_type="pro")

        with pytest.raises(KeyConflictError) as exc_info:
            make_key("K1", plan_type="basic")

        assert exc_info.value.status_code == 409
        assert store.get("K1").plan_type == "pro"

    def test_update_writes_values(self, store, make_key):
        make_key("K1")

        updated = store.update("K1", {"plan_type": "enterprise", "frozen_days": 4})

        assert updated.plan_type == "enterprise"
        assert updated.frozen_days == 4

    def test_update_missing_key(self, store):
        assert store.update("ghost", {"plan_type": "pro"}) is None

    def test_toggle_active_flips_flag(self, store, make_key):
        make_key("K1")

        assert store.toggle_active("K1").is_active is False
        assert store.toggle_active("K1").is_active is True
        assert store.toggle_active("ghost") is None

    def test_touch_only_active_keys(self, store, make_key, now):
        make_key("live")
        make_key("dead", is_active=False)

        assert store.touch("live", now) is True
        assert store.touch("dead", now) is False
        assert store.get("live").last_checked_at == now
        assert store.get("dead").last_checked_at is None

    def test_expire_is_conditional(self, store, make_key, now):
        make_key("expired", expires_in=-timedelta(hours=1))
        make_key("current", expires_in=timedelta(hours=1))
        make_key("permanent")

        assert store.expire("expired", now) is True
        # Second deactivation is a no-op
        assert store.expire("expired", now) is False
        assert store.expire("current", now) is False
        assert store.expire("permanent", now) is False
        assert store.get("current").is_active is True

    def test_expire_all(self, store, make_key, now):
        make_key("a", expires_in=-timedelta(days=2))
        make_key("b", expires_in=-timedelta(seconds=1))
        make_key("c", expires_in=timedelta(days=1))
        make_key("d")
        make_key("e", expires_in=-timedelta(days=1), is_active=False)

        assert store.expire_all(now) == 2
        assert store.expire_all(now) == 0
        assert {record.key for record in store.find(is_active=True)} == {"c", "d"}

    def test_delete(self, store, make_key):
        make_key("K1")

        assert store.delete("K1") is True
        assert store.delete("K1") is False
        assert store.get("K1") is None


class TestStoreFailure:
    """Backend errors surface as StoreFailureError"""

    def test_missing_table_raises_store_failure(self, store, test_engine):
        SQLModel.metadata.drop_all(test_engine)

        with pytest.raises(StoreFailureError) as exc_info:
            store.get("K1")

        assert exc_info.value.status_code == 500
        assert exc_info.value.operation == "get"

    def test_failed_sweep_raises_store_failure(self, store, test_engine, now):
        SQLModel.metadata.drop_all(test_engine)

        with pytest.raises(StoreFailureError):
            store.expire_all(now)


class TestStoreDatetimes:
    """Naive UTC values survive a round trip through the table"""

    def test_insert_and_read_back_naive_datetimes(self, store, now):
        record = SubscriptionKeyRead(
            key="K1",
            plan_type="pro",
            created_at=now,
            expires_at=now + timedelta(days=30),
        )

        stored = store.insert(record)

        assert stored.created_at == now
        assert stored.expires_at == now + timedelta(days=30)
        assert stored.expires_at.tzinfo is None
        assert store.expire_all(now + timedelta(days=31)) == 1
