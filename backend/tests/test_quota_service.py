"""
Quota service tests.

Verifies:
- Admission check order and boundaries (pure, no database)
- Stale usage dates never block the daily check
- Admin overrides: partial updates, clamping, date parsing
- Advisory check-order mirrors the enforcing path
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from storefront.extensions import db
from storefront.services import quota_service
from storefront.services.quota_service import (
    Quotas,
    Usage,
    QuotaExceededError,
    REASON_DAILY_ORDER_LIMIT,
    REASON_PRODUCT_COUNT_LIMIT,
    REASON_ORDER_VALUE_LIMIT,
    evaluate,
)
from storefront.validation import ValidationError, NotFoundError


TODAY = date(2026, 10, 19)
YESTERDAY = TODAY - timedelta(days=1)

DEFAULT_QUOTAS = Quotas(max_orders_per_day=10, max_products_per_order=50, max_total_order_value=Decimal("10000"))


def _eval(quotas=DEFAULT_QUOTAS, usage=Usage(0, None), total="100", count=1):
    return evaluate(quotas, usage, total_amount=Decimal(total), product_count=count, today=TODAY)


# =============================================================================
# ADMISSION CHECK
# =============================================================================


class TestEvaluate:

    def test_admits_within_all_quotas(self):
        decision = _eval()
        assert decision.allowed
        assert decision.reason is None

    def test_daily_limit_reached_today_rejects(self):
        quotas = Quotas(1, 50, Decimal("10000"))
        decision = _eval(quotas=quotas, usage=Usage(1, TODAY))

        assert not decision.allowed
        assert decision.reason == REASON_DAILY_ORDER_LIMIT
        assert decision.status_code == 429
        assert decision.to_dict() == {
            "error": "Daily order limit exceeded",
            "reason": REASON_DAILY_ORDER_LIMIT,
            "limit": 1,
            "used": 1,
        }

    def test_daily_limit_uses_greater_or_equal(self):
        quotas = Quotas(3, 50, Decimal("10000"))
        assert _eval(quotas=quotas, usage=Usage(2, TODAY)).allowed
        assert not _eval(quotas=quotas, usage=Usage(3, TODAY)).allowed
        assert not _eval(quotas=quotas, usage=Usage(7, TODAY)).allowed

    @pytest.mark.parametrize("stale", [YESTERDAY, date(2023, 1, 1), None])
    def test_stale_usage_date_never_blocks(self, stale):
        quotas = Quotas(1, 50, Decimal("10000"))
        assert _eval(quotas=quotas, usage=Usage(99, stale)).allowed

    def test_zero_daily_quota_with_stale_date_still_admits(self):
        quotas = Quotas(0, 50, Decimal("10000"))
        assert _eval(quotas=quotas, usage=Usage(0, YESTERDAY)).allowed
        assert not _eval(quotas=quotas, usage=Usage(0, TODAY)).allowed

    def test_product_count_over_limit_rejects_with_requested(self):
        quotas = Quotas(10, 3, Decimal("10000"))
        assert _eval(quotas=quotas, count=3).allowed

        decision = _eval(quotas=quotas, count=4)
        assert decision.reason == REASON_PRODUCT_COUNT_LIMIT
        assert decision.status_code == 400
        body = decision.to_dict()
        assert body["error"] == "Product count per order exceeded"
        assert body["limit"] == 3
        assert body["requested"] == 4
        assert "used" not in body

    def test_order_value_over_limit_rejects_with_requested(self):
        quotas = Quotas(10, 50, Decimal("500"))
        assert _eval(quotas=quotas, total="500").allowed

        decision = _eval(quotas=quotas, total="500.01")
        assert decision.reason == REASON_ORDER_VALUE_LIMIT
        body = decision.to_dict()
        assert body["error"] == "Total order value exceeded"
        assert body["limit"] == 500
        assert body["requested"] == 500.01

    def test_first_failing_check_wins(self):
        quotas = Quotas(1, 1, Decimal("10"))
        usage = Usage(1, TODAY)
        assert _eval(quotas=quotas, usage=usage, total="999", count=5).reason == REASON_DAILY_ORDER_LIMIT
        assert _eval(quotas=quotas, usage=Usage(0, TODAY), total="999", count=5).reason == REASON_PRODUCT_COUNT_LIMIT
        assert _eval(quotas=quotas, usage=Usage(0, TODAY), total="999", count=1).reason == REASON_ORDER_VALUE_LIMIT


# =============================================================================
# ADMIN OVERRIDES
# =============================================================================


class TestGetQuotas:

    def test_returns_defaults_for_new_account(self, shopper):
        data = quota_service.get_quotas(shopper.id)
        assert data == {
            "userId": shopper.id,
            "email": "shopper@shop.test",
            "username": "shopper",
            "quotas": {"maxOrdersPerDay": 10, "maxProductsPerOrder": 50, "maxTotalOrderValue": 10000},
            "usage": {"ordersToday": 0, "lastOrderDate": None},
        }

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            quota_service.get_quotas(424242)

    def test_list_includes_every_account(self, shopper, admin):
        listed = quota_service.list_user_quotas()
        assert [row["username"] for row in listed] == ["shopper", "admin"]


class TestSetQuotas:

    def test_partial_update_leaves_other_fields(self, shopper):
        result = quota_service.set_quotas(shopper.id, quotas={"maxOrdersPerDay": 5})

        assert result["success"] is True
        assert result["message"] == "User quotas updated successfully"
        assert result["updatedData"] == {"quotas.maxOrdersPerDay": 5}

        db.session.refresh(shopper)
        assert shopper.max_orders_per_day == 5
        assert shopper.max_products_per_order == 50
        assert shopper.max_total_order_value == Decimal("10000")

    def test_negative_values_are_clamped_to_zero(self, shopper):
        quota_service.set_quotas(
            shopper.id,
            quotas={"maxOrdersPerDay": -5, "maxProductsPerOrder": "-1", "maxTotalOrderValue": -10.5},
            usage={"ordersToday": -3},
        )
        db.session.refresh(shopper)
        assert shopper.max_orders_per_day == 0
        assert shopper.max_products_per_order == 0
        assert shopper.max_total_order_value == Decimal("0")
        assert shopper.orders_today == 0

    def test_usage_update_message_and_date(self, shopper):
        result = quota_service.set_quotas(
            shopper.id, usage={"ordersToday": 2, "lastOrderDate": "2026-10-19"}
        )
        assert result["message"] == "User quotas and usage updated successfully"
        assert result["updatedData"] == {"usage.ordersToday": 2, "usage.lastOrderDate": "2026-10-19"}

        db.session.refresh(shopper)
        assert shopper.orders_today == 2
        assert shopper.last_order_date == TODAY

    def test_iso_datetime_and_null_dates(self, shopper):
        quota_service.set_quotas(shopper.id, usage={"lastOrderDate": "2026-10-19T23:30:00-02:00"})
        db.session.refresh(shopper)
        assert shopper.last_order_date == date(2026, 10, 20)

        quota_service.set_quotas(shopper.id, usage={"lastOrderDate": None})
        db.session.refresh(shopper)
        assert shopper.last_order_date is None

    @pytest.mark.parametrize("quotas,usage", [
        ({"maxOrdersPerDay": "ten"}, None),
        ({"maxProductsPerOrder": 2.5}, None),
        ({"maxTotalOrderValue": "lots"}, None),
        ({"maxOrdersPerDay": None}, None),
        (None, {"lastOrderDate": "yesterday"}),
        ("not-an-object", None),
    ])
    def test_invalid_values_rejected_without_writes(self, shopper, quotas, usage):
        with pytest.raises(ValidationError):
            quota_service.set_quotas(shopper.id, quotas=quotas, usage=usage)
        db.session.refresh(shopper)
        assert shopper.max_orders_per_day == 10
        assert shopper.version_id == 1

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            quota_service.set_quotas(424242, quotas={"maxOrdersPerDay": 1})


# =============================================================================
# ADVISORY CHECK
# =============================================================================


class TestCheckOrder:

    def test_can_order(self, shopper):
        result = quota_service.check_order(shopper.id, 100, 2, today=TODAY)
        assert result["canOrder"] is True
        assert result["quotas"]["maxOrdersPerDay"] == 10
        assert result["usage"] == {"ordersToday": 0, "lastOrderDate": None}

    def test_daily_limit_matches_enforcing_path(self, make_user):
        user = make_user("capped", max_orders_per_day=1, orders_today=1, last_order_date=TODAY)
        with pytest.raises(QuotaExceededError) as exc:
            quota_service.check_order(user.id, 100, 2, today=TODAY)
        assert exc.value.decision.to_dict()["used"] == 1
        assert exc.value.decision.status_code == 429

    def test_check_does_not_write(self, make_user):
        user = make_user("capped", max_orders_per_day=1, orders_today=1, last_order_date=YESTERDAY)
        quota_service.check_order(user.id, 100, 2, today=TODAY)
        db.session.refresh(user)
        assert user.orders_today == 1
        assert user.last_order_date == YESTERDAY

    def test_rejects_negative_product_count(self, shopper):
        with pytest.raises(ValidationError):
            quota_service.check_order(shopper.id, 100, -1, today=TODAY)

    def test_sub_cent_excess_is_not_rounded_away(self, shopper):
        with pytest.raises(QuotaExceededError) as exc:
            quota_service.check_order(shopper.id, "10000.004", 1, today=TODAY)
        assert exc.value.decision.reason == REASON_ORDER_VALUE_LIMIT
        assert exc.value.decision.requested == Decimal("10000.004")

    def test_huge_value_is_a_quota_rejection(self, shopper):
        with pytest.raises(QuotaExceededError) as exc:
            quota_service.check_order(shopper.id, 1e11, 1, today=TODAY)
        assert exc.value.decision.status_code == 400
        assert exc.value.decision.to_dict()["requested"] == 100000000000
