"""
Pricing Engine

Pure functions turning manufacturer-entered costs into displayed/billed
prices. Nothing here touches the database or stores a total; callers load
the MarginConfig (see orderhub.core.pricing_config) and recompute on every
read.

Margin viewers (admin, super_admin) see costs marked up by the configured
percentages. Every other role, manufacturer and client included, sees the
raw manufacturer-entered figures.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union

from orderhub.core.permissions import MARGIN_ROLES, Role
from orderhub.core.pricing_config import MarginConfig
from orderhub.core.status_config import ShippingMethod

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _money(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _apply_margin(amount: Decimal, margin_pct: Decimal) -> Decimal:
    return amount * (1 + margin_pct / HUNDRED)


def _sees_margins(role: Union[Role, str]) -> bool:
    return Role(role) in MARGIN_ROLES


@dataclass(frozen=True)
class PriceBreakdown:
    unit_price: Decimal
    quantity: int
    sample_fee: Decimal
    shipping_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class ProductTotal:
    order_product_id: Optional[int]
    breakdown: PriceBreakdown


@dataclass(frozen=True)
class OrderTotals:
    products: List[ProductTotal]
    products_total: Decimal
    sample_fee: Decimal


def shipping_price(product) -> Decimal:
    """Raw shipping cost for the selected method; zero when unset."""
    method = product.selected_shipping_method
    if method == ShippingMethod.AIR.value:
        return _money(product.shipping_air_price)
    if method == ShippingMethod.BOAT.value:
        return _money(product.shipping_boat_price)
    return ZERO


def product_quantity(product) -> int:
    return sum(item.quantity or 0 for item in product.items)


def price_breakdown(product, role: Union[Role, str], margin_cfg: MarginConfig) -> PriceBreakdown:
    """
    Price one order product for the given role.

    Args:
        product: OrderProduct (or anything with the same cost fields and items)
        role: Role of the viewer
        margin_cfg: Margin percentages to apply for margin viewers

    Returns:
        PriceBreakdown with every amount rounded to cents
    """
    qty = product_quantity(product)
    unit_price = _money(product.product_price)
    sample_fee = _money(product.sample_fee)
    ship_price = shipping_price(product)

    if _sees_margins(role):
        unit_price = _apply_margin(unit_price, margin_cfg.product_margin_pct)
        sample_fee = _apply_margin(sample_fee, margin_cfg.product_margin_pct)
        ship_price = _apply_margin(ship_price, margin_cfg.shipping_margin_pct)

    unit_price = quantize_money(unit_price)
    sample_fee = quantize_money(sample_fee)
    ship_price = quantize_money(ship_price)
    total = quantize_money(unit_price * qty + sample_fee + ship_price)

    return PriceBreakdown(
        unit_price=unit_price,
        quantity=qty,
        sample_fee=sample_fee,
        shipping_price=ship_price,
        total=total,
    )


def product_total(product, role: Union[Role, str], margin_cfg: MarginConfig) -> Decimal:
    return price_breakdown(product, role, margin_cfg).total


def order_total(order, role: Union[Role, str], margin_cfg: MarginConfig) -> Decimal:
    """Sum of product totals. The order-level sample fee is not included."""
    return quantize_money(
        sum((product_total(p, role, margin_cfg) for p in order.products), ZERO)
    )


def order_sample_fee(order, role: Union[Role, str], margin_cfg: MarginConfig) -> Decimal:
    fee = _money(order.sample_fee)
    if _sees_margins(role):
        fee = _apply_margin(fee, margin_cfg.sample_margin_pct)
    return quantize_money(fee)


def compute_totals(order, role: Union[Role, str], margin_cfg: MarginConfig) -> OrderTotals:
    """Per-product breakdowns, their sum, and the order-level sample fee beside it."""
    products = [
        ProductTotal(order_product_id=p.id, breakdown=price_breakdown(p, role, margin_cfg))
        for p in order.products
    ]
    products_total = quantize_money(sum((p.breakdown.total for p in products), ZERO))
    return OrderTotals(
        products=products,
        products_total=products_total,
        sample_fee=order_sample_fee(order, role, margin_cfg),
    )
