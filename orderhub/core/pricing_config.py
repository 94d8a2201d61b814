"""
OrderHub Margin Configuration

Margin percentages applied to manufacturer-entered costs for staff views.
Values live in the system_config table and are loaded once per process;
missing rows or a failed load fall back to the defaults in Settings rather
than failing the read.

Per-client overrides (clients.custom_margin_percentage and
clients.custom_sample_margin_percentage) are layered on top per call and are
never cached.
"""
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orderhub.core.settings import settings
from orderhub.logging_config import get_logger
from orderhub.models.system_config import SystemConfig

logger = get_logger(__name__)


# ============================================================================
# SYSTEM CONFIG KEYS
# ============================================================================

PRODUCT_MARGIN_KEY = "default_margin_percentage"
SHIPPING_MARGIN_KEY = "default_shipping_margin_percentage"
SAMPLE_MARGIN_KEY = "default_sample_margin_percentage"

MARGIN_KEYS = (PRODUCT_MARGIN_KEY, SHIPPING_MARGIN_KEY, SAMPLE_MARGIN_KEY)


@dataclass(frozen=True)
class MarginConfig:
    """Margin percentages (80 means +80%)"""
    product_margin_pct: Decimal
    shipping_margin_pct: Decimal
    sample_margin_pct: Decimal


def default_margin_config() -> MarginConfig:
    return MarginConfig(
        product_margin_pct=Decimal(str(settings.DEFAULT_PRODUCT_MARGIN_PCT)),
        shipping_margin_pct=Decimal(str(settings.DEFAULT_SHIPPING_MARGIN_PCT)),
        sample_margin_pct=Decimal(str(settings.DEFAULT_SAMPLE_MARGIN_PCT)),
    )


_cached_config: Optional[MarginConfig] = None


def _parse_pct(raw: Optional[str], fallback: Decimal, key: str) -> Decimal:
    if raw is None or str(raw).strip() == "":
        return fallback
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        logger.warning(f"Ignoring non-numeric margin value for {key}: {raw!r}")
        return fallback
    if value < 0:
        logger.warning(f"Ignoring negative margin value for {key}: {raw!r}")
        return fallback
    return value


def load_margin_config(db: Session) -> MarginConfig:
    """Read margin rows from system_config, defaulting anything missing."""
    defaults = default_margin_config()
    rows = (
        db.query(SystemConfig)
        .filter(SystemConfig.config_key.in_(MARGIN_KEYS))
        .all()
    )
    values: Dict[str, Optional[str]] = {row.config_key: row.config_value for row in rows}
    return MarginConfig(
        product_margin_pct=_parse_pct(
            values.get(PRODUCT_MARGIN_KEY), defaults.product_margin_pct, PRODUCT_MARGIN_KEY
        ),
        shipping_margin_pct=_parse_pct(
            values.get(SHIPPING_MARGIN_KEY), defaults.shipping_margin_pct, SHIPPING_MARGIN_KEY
        ),
        sample_margin_pct=_parse_pct(
            values.get(SAMPLE_MARGIN_KEY), defaults.sample_margin_pct, SAMPLE_MARGIN_KEY
        ),
    )


def get_margin_config(db: Session, client=None) -> MarginConfig:
    """
    Get the process-wide margin config, applying client overrides if given.

    Args:
        db: Database session (used only on the first call after start-up or
            after invalidate_margin_config())
        client: Optional Client whose custom percentages override the defaults

    Returns:
        MarginConfig
    """
    global _cached_config
    if _cached_config is None:
        try:
            _cached_config = load_margin_config(db)
        except SQLAlchemyError as e:
            logger.warning(f"Could not load margin config, using defaults: {e}")
            return _apply_client_overrides(default_margin_config(), client)
        logger.info(
            f"Margin config loaded: product={_cached_config.product_margin_pct}% "
            f"shipping={_cached_config.shipping_margin_pct}% "
            f"sample={_cached_config.sample_margin_pct}%"
        )
    return _apply_client_overrides(_cached_config, client)


def _apply_client_overrides(config: MarginConfig, client) -> MarginConfig:
    if client is None:
        return config
    overrides = {}
    if client.custom_margin_percentage is not None:
        overrides["product_margin_pct"] = Decimal(str(client.custom_margin_percentage))
    if client.custom_sample_margin_percentage is not None:
        overrides["sample_margin_pct"] = Decimal(str(client.custom_sample_margin_percentage))
    return replace(config, **overrides) if overrides else config


def invalidate_margin_config() -> None:
    """Drop the cached config so the next read reloads it."""
    global _cached_config
    _cached_config = None
