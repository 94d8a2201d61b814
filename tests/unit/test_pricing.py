"""
Tests for the pricing engine and margin configuration.
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from orderhub.core.pricing_config import (
    PRODUCT_MARGIN_KEY,
    SAMPLE_MARGIN_KEY,
    MarginConfig,
    get_margin_config,
    invalidate_margin_config,
    load_margin_config,
)
from orderhub.models.system_config import SystemConfig
from orderhub.services.pricing import (
    compute_totals,
    order_sample_fee,
    order_total,
    price_breakdown,
    product_total,
    quantize_money,
    shipping_price,
)
from tests.factories import create_test_client, reset_sequences

MARGINS = MarginConfig(
    product_margin_pct=Decimal("80"),
    shipping_margin_pct=Decimal("0"),
    sample_margin_pct=Decimal("50"),
)


def make_product(price="10", qty=5, sample_fee="2", method="air", air="20", boat="8", id=1):
    return SimpleNamespace(
        id=id,
        product_price=Decimal(price) if price is not None else None,
        sample_fee=Decimal(sample_fee) if sample_fee is not None else None,
        shipping_air_price=Decimal(air) if air is not None else None,
        shipping_boat_price=Decimal(boat) if boat is not None else None,
        selected_shipping_method=method,
        items=[SimpleNamespace(quantity=qty)],
    )


class TestPriceBreakdown:
    """Product-level pricing per role"""

    def test_admin_total_applies_product_and_shipping_margins(self):
        """10*1.8*5 + 2*1.8 + 20*1.0 = 113.60"""
        assert product_total(make_product(), "admin", MARGINS) == Decimal("113.60")

    def test_admin_breakdown_components(self):
        breakdown = price_breakdown(make_product(), "admin", MARGINS)

        assert breakdown.unit_price == Decimal("18.00")
        assert breakdown.quantity == 5
        assert breakdown.sample_fee == Decimal("3.60")
        assert breakdown.shipping_price == Decimal("20.00")
        assert breakdown.total == Decimal("113.60")

    @pytest.mark.parametrize("role", ["order_creator", "order_approver", "manufacturer", "client"])
    def test_non_margin_roles_see_raw_costs(self, role):
        """10*5 + 2 + 20 = 72"""
        assert product_total(make_product(), role, MARGINS) == Decimal("72.00")

    def test_super_admin_sees_margins(self):
        assert product_total(make_product(), "super_admin", MARGINS) == Decimal("113.60")

    def test_shipping_margin_applies_to_shipping_only(self):
        cfg = MarginConfig(Decimal("0"), Decimal("10"), Decimal("0"))
        breakdown = price_breakdown(make_product(), "admin", cfg)

        assert breakdown.unit_price == Decimal("10.00")
        assert breakdown.shipping_price == Decimal("22.00")

    def test_boat_method_uses_boat_price(self):
        product = make_product(method="boat")
        assert shipping_price(product) == Decimal("8")

    def test_unset_shipping_method_adds_no_shipping(self):
        product = make_product(method=None)
        assert product_total(product, "client", MARGINS) == Decimal("52.00")

    def test_missing_costs_count_as_zero(self):
        product = make_product(price=None, sample_fee=None, air=None, qty=3)
        breakdown = price_breakdown(product, "admin", MARGINS)

        assert breakdown.unit_price == Decimal("0.00")
        assert breakdown.total == Decimal("0.00")

    def test_unit_price_rounded_half_up_before_multiplying(self):
        """1.25 * 1.1 = 1.375 -> 1.38 per unit, then * 3 = 4.14"""
        cfg = MarginConfig(Decimal("10"), Decimal("0"), Decimal("0"))
        product = make_product(price="1.25", qty=3, sample_fee=None, method=None)

        assert product_total(product, "admin", cfg) == Decimal("4.14")

    def test_quantity_sums_every_item(self):
        product = make_product(qty=0, sample_fee=None, method=None)
        product.items = [SimpleNamespace(quantity=4), SimpleNamespace(quantity=6)]

        assert price_breakdown(product, "client", MARGINS).quantity == 10

    def test_quantize_money(self):
        assert quantize_money(Decimal("2.345")) == Decimal("2.35")
        assert quantize_money(Decimal("2.344")) == Decimal("2.34")


class TestOrderTotals:
    """Order-level sums and the order sample fee"""

    def _order(self):
        return SimpleNamespace(
            sample_fee=Decimal("30"),
            products=[make_product(id=1), make_product(id=2, price="5", qty=2, sample_fee="0", method=None)],
        )

    def test_order_total_sums_products(self):
        """113.60 + 5*1.8*2 = 131.60"""
        assert order_total(self._order(), "admin", MARGINS) == Decimal("131.60")

    def test_order_sample_fee_uses_sample_margin(self):
        assert order_sample_fee(self._order(), "admin", MARGINS) == Decimal("45.00")
        assert order_sample_fee(self._order(), "client", MARGINS) == Decimal("30.00")

    def test_compute_totals_reports_sample_fee_beside_total(self):
        totals = compute_totals(self._order(), "admin", MARGINS)

        assert [p.order_product_id for p in totals.products] == [1, 2]
        assert totals.products_total == Decimal("131.60")
        assert totals.sample_fee == Decimal("45.00")

    def test_order_without_products_totals_zero(self):
        order = SimpleNamespace(sample_fee=None, products=[])
        totals = compute_totals(order, "admin", MARGINS)

        assert totals.products_total == Decimal("0.00")
        assert totals.sample_fee == Decimal("0.00")


class TestMarginConfig:
    """Loading, caching and client overrides"""

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_defaults_when_no_rows(self, db_session):
        cfg = load_margin_config(db_session)

        assert cfg.product_margin_pct == Decimal("80")
        assert cfg.shipping_margin_pct == Decimal("0")
        assert cfg.sample_margin_pct == Decimal("80")

    def test_rows_override_defaults(self, db_session):
        db_session.add(SystemConfig(config_key=PRODUCT_MARGIN_KEY, config_value="60"))
        db_session.add(SystemConfig(config_key=SAMPLE_MARGIN_KEY, config_value="not-a-number"))
        db_session.commit()

        cfg = load_margin_config(db_session)

        assert cfg.product_margin_pct == Decimal("60")
        assert cfg.sample_margin_pct == Decimal("80")

    def test_config_is_cached_until_invalidated(self, db_session):
        assert get_margin_config(db_session).product_margin_pct == Decimal("80")

        db_session.add(SystemConfig(config_key=PRODUCT_MARGIN_KEY, config_value="25"))
        db_session.commit()
        assert get_margin_config(db_session).product_margin_pct == Decimal("80")

        invalidate_margin_config()
        assert get_margin_config(db_session).product_margin_pct == Decimal("25")

    def test_client_overrides_apply_per_call(self, db_session):
        client = create_test_client(
            db_session,
            custom_margin_percentage=Decimal("40"),
            custom_sample_margin_percentage=Decimal("10"),
        )
        db_session.commit()

        cfg = get_margin_config(db_session, client)

        assert cfg.product_margin_pct == Decimal("40")
        assert cfg.sample_margin_pct == Decimal("10")
        assert get_margin_config(db_session).product_margin_pct == Decimal("80")
