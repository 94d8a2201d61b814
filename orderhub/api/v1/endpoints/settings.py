"""
Margin Settings API Endpoints

Margin percentages live in system_config and are cached per process. Saving
new values drops the cache so the next price read uses them.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from orderhub.api.v1.deps import CurrentActor
from orderhub.core.permissions import SETTINGS_ROLES, require_role
from orderhub.core.pricing_config import (
    PRODUCT_MARGIN_KEY,
    SAMPLE_MARGIN_KEY,
    SHIPPING_MARGIN_KEY,
    get_margin_config,
    invalidate_margin_config,
)
from orderhub.db.session import get_db
from orderhub.db.unit_of_work import unit_of_work
from orderhub.logging_config import get_logger
from orderhub.models.system_config import SystemConfig
from orderhub.schemas.margins import MarginSettingsResponse, MarginSettingsUpdate
from orderhub.services.audit_service import record_audit

logger = get_logger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])

_FIELD_KEYS = {
    "product_margin_pct": PRODUCT_MARGIN_KEY,
    "shipping_margin_pct": SHIPPING_MARGIN_KEY,
    "sample_margin_pct": SAMPLE_MARGIN_KEY,
}


def _margins_response(db: Session) -> MarginSettingsResponse:
    config = get_margin_config(db)
    return MarginSettingsResponse(
        product_margin_pct=config.product_margin_pct,
        shipping_margin_pct=config.shipping_margin_pct,
        sample_margin_pct=config.sample_margin_pct,
    )


@router.get("/margins", response_model=MarginSettingsResponse)
def get_margins(actor: CurrentActor, db: Session = Depends(get_db)):
    require_role(actor, SETTINGS_ROLES, "read", "margin settings")
    return _margins_response(db)


@router.put("/margins", response_model=MarginSettingsResponse)
def update_margins(data: MarginSettingsUpdate, actor: CurrentActor, db: Session = Depends(get_db)):
    """Update default margin percentages (admin, super_admin)."""
    require_role(actor, SETTINGS_ROLES, "update", "margin settings")
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    with unit_of_work(db):
        for field_name, value in changes.items():
            key = _FIELD_KEYS[field_name]
            row = db.query(SystemConfig).filter(SystemConfig.config_key == key).first()
            old_value = row.config_value if row else None
            if row is None:
                row = SystemConfig(config_key=key)
                db.add(row)
            row.config_value = str(value)
            row.updated_by = actor.id
            record_audit(db, actor, "margin_updated", "system_config", key,
                         old_value=old_value, new_value=value)

    invalidate_margin_config()
    logger.info(f"Margin settings updated by user {actor.id}: {changes}")
    return _margins_response(db)
