"""Tests for coupon eligibility, discount arithmetic and atomic redemption."""
from datetime import timedelta

import pytest

from database import Base, build_engine, build_session_factory
from Coupon_module import coupon_engine
from Coupon_module.coupon_engine import CouponRedemptionError
from Coupon_module.Coupon_model import Coupon
from Login_module.Utils.datetime_utils import now_ist


def coupon(**overrides):
    values = {
        "code": "SAVE10",
        "discount_percent": 10.0,
        "min_order_amount": 0.0,
        "max_discount": None,
        "valid_from": None,
        "valid_until": None,
        "usage_limit": None,
        "used_count": 0,
        "is_active": True,
    }
    values.update(overrides)
    return Coupon(**values)


class TestCanApply:
    def test_active_coupon_applies(self):
        assert coupon_engine.can_apply(coupon(), 450) is True

    def test_inactive_coupon_never_applies(self):
        assert coupon_engine.can_apply(coupon(is_active=False), 10_000) is False

    def test_minimum_order_amount_is_inclusive(self):
        c = coupon(min_order_amount=500)
        assert coupon_engine.can_apply(c, 499.99) is False
        assert coupon_engine.can_apply(c, 500) is True

    def test_not_yet_started(self):
        now = now_ist()
        c = coupon(valid_from=now + timedelta(hours=1))
        assert coupon_engine.can_apply(c, 1000, now) is False

    def test_expired(self):
        now = now_ist()
        c = coupon(valid_until=now - timedelta(seconds=1))
        assert coupon_engine.can_apply(c, 1000, now) is False

    def test_window_bounds_are_inclusive(self):
        now = now_ist()
        c = coupon(valid_from=now, valid_until=now)
        assert coupon_engine.can_apply(c, 1000, now) is True

    def test_usage_limit_reached(self):
        assert coupon_engine.can_apply(coupon(usage_limit=3, used_count=3), 1000) is False
        assert coupon_engine.can_apply(coupon(usage_limit=3, used_count=2), 1000) is True

    def test_no_usage_limit_means_unlimited(self):
        assert coupon_engine.can_apply(coupon(usage_limit=None, used_count=10_000), 1000) is True

    def test_negative_cart_total_is_rejected(self):
        assert coupon_engine.can_apply(coupon(), -1) is False

    def test_naive_stored_datetimes_are_read_as_ist(self):
        now = now_ist()
        naive_until = (now + timedelta(minutes=5)).replace(tzinfo=None)
        assert coupon_engine.can_apply(coupon(valid_until=naive_until), 100, now) is True


class TestComputeDiscount:
    def test_percentage_of_total(self):
        assert coupon_engine.compute_discount(coupon(discount_percent=10), 450) == 45

    def test_capped_by_max_discount(self):
        c = coupon(discount_percent=50, max_discount=300)
        assert coupon_engine.compute_discount(c, 1000) == 300

    def test_cap_not_reached(self):
        c = coupon(discount_percent=10, max_discount=300)
        assert coupon_engine.compute_discount(c, 1000) == 100

    def test_rounds_half_up_to_whole_units(self):
        # 10% of 45 = 4.5
        assert coupon_engine.compute_discount(coupon(discount_percent=10), 45) == 5
        # 10% of 44 = 4.4
        assert coupon_engine.compute_discount(coupon(discount_percent=10), 44) == 4

    def test_never_exceeds_cart_total(self):
        assert coupon_engine.compute_discount(coupon(discount_percent=100), 37) == 37

    def test_zero_total(self):
        assert coupon_engine.compute_discount(coupon(discount_percent=25), 0) == 0

    def test_negative_total_gives_no_discount(self):
        assert coupon_engine.compute_discount(coupon(discount_percent=25), -100) == 0

    def test_non_decreasing_in_cart_total(self):
        c = coupon(discount_percent=15, max_discount=120)
        discounts = [coupon_engine.compute_discount(c, total) for total in range(0, 2000, 7)]
        assert discounts == sorted(discounts)
        assert max(discounts) == 120

    @pytest.mark.parametrize("percent,total,expected", [
        (5, 199, 10),     # 9.95
        (12.5, 100, 13),  # 12.5
        (33, 300, 99),
        (100, 250, 250),
    ])
    def test_known_values(self, percent, total, expected):
        assert coupon_engine.compute_discount(coupon(discount_percent=percent), total) == expected


class TestRedeem:
    def test_redeem_increments_used_count(self, db_session, make_coupon):
        c = make_coupon(usage_limit=2)
        coupon_engine.redeem(db_session, c)
        db_session.commit()
        assert c.used_count == 1

    def test_redeem_past_limit_raises(self, db_session, make_coupon):
        c = make_coupon(usage_limit=1, used_count=1)
        with pytest.raises(CouponRedemptionError):
            coupon_engine.redeem(db_session, c)
        db_session.rollback()
        db_session.refresh(c)
        assert c.used_count == 1

    def test_redeem_inactive_coupon_raises(self, db_session, make_coupon):
        c = make_coupon(is_active=False)
        with pytest.raises(CouponRedemptionError):
            coupon_engine.redeem(db_session, c)

    def test_concurrent_checkouts_cannot_overshoot_limit(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
        Base.metadata.create_all(bind=engine)
        factory = build_session_factory(engine)

        with factory() as setup:
            setup.add(coupon(code="LASTONE", usage_limit=1, used_count=0))
            setup.commit()

        first, second = factory(), factory()
        try:
            first_view = first.query(Coupon).filter_by(code="LASTONE").one()
            second_view = second.query(Coupon).filter_by(code="LASTONE").one()

            # Both checkouts see one remaining use
            assert coupon_engine.can_apply(first_view, 500)
            assert coupon_engine.can_apply(second_view, 500)

            coupon_engine.redeem(first, first_view)
            first.commit()

            with pytest.raises(CouponRedemptionError):
                coupon_engine.redeem(second, second_view)
            second.rollback()
        finally:
            first.close()
            second.close()

        with factory() as check:
            assert check.query(Coupon).filter_by(code="LASTONE").one().used_count == 1
        engine.dispose()
