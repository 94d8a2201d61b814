"""
API v1 Router - OrderHub
"""
from fastapi import APIRouter
from orderhub.api.v1.endpoints import (
    orders,
    order_products,
    order_items,
    samples,
    settings,
    parties,
    admin,
)

router = APIRouter()

# Orders (lifecycle, drafts, totals, bulk routing, delete)
router.include_router(orders.router)

# Order products (routing, status, pricing, shipment, media)
router.include_router(order_products.router)

# Order items (approval decisions, quantities)
router.include_router(order_items.router)

# Order-level sample
router.include_router(samples.router)

# Margin settings
router.include_router(settings.router)

# Clients & manufacturers
router.include_router(parties.router)

# Maintenance
router.include_router(admin.router)
