"""
ETA Estimator

Delivery date = production start + production days + transit days for the
selected shipping method. Once production has started the real start date is
used; before that, today stands in so the estimate is never blank. An unset
shipping method assumes the longer boat transit and says so.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from orderhub.core.settings import settings
from orderhub.core.status_config import ProductStatus, ShippingMethod


@dataclass(frozen=True)
class EtaEstimate:
    eta: Optional[date]
    is_estimate: bool
    shipping_method_unset: bool


def transit_days(method: Optional[str]) -> int:
    if method == ShippingMethod.AIR.value:
        return settings.AIR_TRANSIT_DAYS
    return settings.BOAT_TRANSIT_DAYS


def calculate_eta(product, today: Optional[date] = None) -> EtaEstimate:
    """
    Estimate the delivery date of an order product.

    Args:
        product: OrderProduct with production_days, production_start_date,
            product_status and selected_shipping_method
        today: Reference date for products not yet in production (defaults
            to date.today())

    Returns:
        EtaEstimate; eta is None when production_days is not set
    """
    if product.production_days is None:
        return EtaEstimate(eta=None, is_estimate=False, shipping_method_unset=False)

    method = product.selected_shipping_method
    shipping_method_unset = method not in (ShippingMethod.AIR.value, ShippingMethod.BOAT.value)

    if (
        product.product_status == ProductStatus.IN_PRODUCTION.value
        and product.production_start_date is not None
    ):
        start = product.production_start_date
        is_estimate = False
    else:
        start = today or date.today()
        is_estimate = True

    eta = start + timedelta(days=product.production_days + transit_days(method))
    return EtaEstimate(eta=eta, is_estimate=is_estimate, shipping_method_unset=shipping_method_unset)
