"""Tests for key validation and the subscription service"""
from datetime import timedelta

import pytest

from keyhub.api.services import SubscriptionService, ValidationService
from keyhub.core.exceptions import (
    KeyConflictError,
    KeyExpiredError,
    KeyNotFoundError,
    ValidationInputError,
)


class TestCheckKey:
    """Credential check with lazy expiration"""

    def test_unknown_key_not_found(self, session):
        with pytest.raises(KeyNotFoundError) as exc_info:
            ValidationService(session).check_key("ghost")

        assert exc_info.value.status_code == 404

    def test_blank_key_rejected(self, session):
        with pytest.raises(ValidationInputError):
            ValidationService(session).check_key("   ")

    def test_valid_key_touched(self, session, store, make_key, now):
        make_key("K1", expires_in=timedelta(days=1))

        record = ValidationService(session).check_key("K1", now)

        assert record.is_active is True
        assert record.last_checked_at == now
        assert store.get("K1").last_checked_at == now

    def test_expired_key_deactivated_then_not_found(self, session, store, make_key, now):
        make_key("K1", expires_in=-timedelta(minutes=1))
        service = ValidationService(session)

        with pytest.raises(KeyExpiredError) as exc_info:
            service.check_key("K1", now)

        assert exc_info.value.status_code == 410
        stored = store.get("K1")
        assert stored.is_active is False
        assert stored.last_checked_at is None

        with pytest.raises(KeyNotFoundError):
            service.check_key("K1", now)

    def test_permanent_key_always_valid(self, session, make_key, now):
        make_key("K1")

        record = ValidationService(session).check_key("K1", now + timedelta(days=365 * 20))

        assert record.is_permanent is True
        assert record.is_active is True

    def test_inactive_key_not_found(self, session, make_key, now):
        make_key("K1", is_active=False)

        with pytest.raises(KeyNotFoundError):
            ValidationService(session).check_key("K1", now)

    def test_frozen_key_still_validates(self, session, make_key, now):
        make_key("K1", is_frozen=True, expires_in=timedelta(days=2))

        record = ValidationService(session).check_key("K1", now)

        assert record.is_frozen is True

    def test_repeated_checks_are_consistent(self, session, make_key, now):
        make_key("K1", expires_in=timedelta(days=2))
        service = ValidationService(session)

        first = service.check_key("K1", now)
        second = service.check_key("K1", now)

        assert first == second

    def test_toggle_reactivates_expired_key_until_next_check(self, session, store, make_key, now):
        make_key("K1", expires_in=-timedelta(days=1), is_active=False)
        subscriptions = SubscriptionService(session)

        assert subscriptions.toggle("K1").is_active is True

        # Expiry is re-applied on the next check
        with pytest.raises(KeyExpiredError):
            ValidationService(session).check_key("K1", now)
        assert store.get("K1").is_active is False


class TestIssue:
    """Key issuance"""

    def test_issue_with_duration(self, session, now):
        record = SubscriptionService(session).issue(
            {"key": "K1", "ownerId": 77, "planType": "pro", "durationDays": 30},
            now=now
        )

        assert record.owner_id == "77"
        assert record.created_at == now
        assert record.expires_at == now + timedelta(days=30)
        assert record.is_active is True
        assert record.is_frozen is False
        assert record.frozen_days == 0

    def test_zero_duration_is_permanent(self, session, now):
        record = SubscriptionService(session).issue(
            {"key": "K1", "ownerId": "1", "planType": "pro", "durationDays": 0},
            now=now
        )

        assert record.expires_at is None

    def test_is_permanent_wins_over_duration(self, session, now):
        record = SubscriptionService(session).issue(
            {"key": "K1", "ownerId": "1", "planType": "pro", "durationDays": 10, "isPermanent": True},
            now=now
        )

        assert record.is_permanent is True

    def test_explicit_expires_at(self, session, now):
        record = SubscriptionService(session).issue(
            {"key": "K1", "ownerId": "1", "planType": "pro", "expiresAt": "2030-01-01T00:00:00Z"},
            now=now
        )

        assert record.expires_at.year == 2030
        assert record.expires_at.tzinfo is None

    def test_profile_fields_stored(self, session, now):
        record = SubscriptionService(session).issue(
            {"key": "K1", "ownerId": "1", "planType": "pro", "username": "ada", "firstName": "Ada"},
            now=now
        )

        assert record.to_dict()["ownerProfile"] == {"username": "ada", "firstName": "Ada", "lastName": None}

    @pytest.mark.parametrize("missing", ["key", "ownerId", "planType"])
    def test_missing_required_field(self, session, missing):
        payload = {"key": "K1", "ownerId": "1", "planType": "pro"}
        del payload[missing]

        with pytest.raises(ValidationInputError) as exc_info:
            SubscriptionService(session).issue(payload)

        assert missing in exc_info.value.message

    def test_invalid_duration_rejected(self, session):
        with pytest.raises(ValidationInputError):
            SubscriptionService(session).issue(
                {"key": "K1", "ownerId": "1", "planType": "pro", "durationDays": "a month"}
            )

    def test_duplicate_key_conflicts(self, session, store):
        service = SubscriptionService(session)
        service.issue({"key": "K1", "ownerId": "1", "planType": "pro"})

        with pytest.raises(KeyConflictError):
            service.issue({"key": "K1", "ownerId": "2", "planType": "basic"})

        assert store.get("K1").owner_id == "1"

    def test_generated_key(self, session):
        record = SubscriptionService(session).issue(
            {"planType": "basic"},
            required_fields=["planType"],
            generate_key=True
        )

        assert len(record.key) == 36


class TestAdministration:
    """Update, freeze, delete and paging"""

    def test_update_ignores_unknown_fields(self, session, make_key):
        make_key("K1", plan_type="basic")

        record = SubscriptionService(session).update("K1", {"planType": "pro", "key": "K2", "bogus": 1})

        assert record.key == "K1"
        assert record.plan_type == "pro"

    def test_update_missing_key(self, session):
        with pytest.raises(KeyNotFoundError):
            SubscriptionService(session).update("ghost", {"planType": "pro"})

    def test_freeze_and_unfreeze(self, session, make_key):
        make_key("K1", expires_in=timedelta(days=5), frozen_days=3)
        service = SubscriptionService(session)

        frozen = service.freeze("K1")
        thawed = service.unfreeze("K1")

        assert frozen.is_frozen is True
        assert thawed.is_frozen is False
        assert thawed.expires_at == frozen.expires_at
        assert thawed.frozen_days == 3

    def test_freeze_missing_key(self, session):
        with pytest.raises(KeyNotFoundError):
            SubscriptionService(session).freeze("ghost")

    def test_delete(self, session, make_key, store):
        make_key("K1")
        service = SubscriptionService(session)

        service.delete("K1")

        assert store.get("K1") is None
        with pytest.raises(KeyNotFoundError):
            service.delete("K1")

    def test_page_metadata(self, session, make_key):
        for index in range(12):
            make_key(f"K{index}")

        result = SubscriptionService(session).page(2, 10)

        assert result["currentPage"] == 2
        assert result["totalPages"] == 2
        assert result["totalKeys"] == 12
        assert len(result["keys"]) == 2

    def test_cleanup(self, session, make_key, store, now):
        make_key("old", expires_in=-timedelta(days=1))
        make_key("new", expires_in=timedelta(days=1))

        assert SubscriptionService(session).cleanup(now) == 1
        assert store.get("old").is_active is False
        assert store.get("new").is_active is True

    def test_huge_duration_rejected(self, session, now):
        with pytest.raises(ValidationInputError) as exc_info:
            SubscriptionService(session).issue(
                {"key": "K1", "ownerId": "1", "planType": "pro", "durationDays": 100000000},
                now=now
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["field"] == "durationDays"

    def test_key_stored_as_supplied(self, session, now):
        issued = SubscriptionService(session).issue(
            {"key": " K1 ", "ownerId": "1", "planType": "pro"},
            now=now
        )

        assert issued.key == " K1 "
        assert ValidationService(session).check_key(" K1 ", now).key == " K1 "
        with pytest.raises(KeyNotFoundError):
            ValidationService(session).check_key("K1", now)

    def test_blank_key_rejected(self, session):
        with pytest.raises(ValidationInputError):
            SubscriptionService(session).issue({"key": "   ", "ownerId": "1", "planType": "pro"})
