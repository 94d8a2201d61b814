"""
Party Service

Clients and manufacturers. A party with orders cannot be deleted; the
caller is told which relationship blocks it.
"""
from typing import List

from sqlalchemy.orm import Session

from orderhub.core.permissions import SETTINGS_ROLES, STAFF_ROLES, Actor, require_role
from orderhub.db.unit_of_work import unit_of_work
from orderhub.exceptions import NotFoundError, ReferentialIntegrityError
from orderhub.logging_config import get_logger
from orderhub.models.order import Order
from orderhub.models.party import Client, Manufacturer
from orderhub.schemas.party import ClientCreate, ManufacturerCreate
from orderhub.services.audit_service import record_audit

logger = get_logger(__name__)


def list_clients(db: Session, actor: Actor) -> List[Client]:
    require_role(actor, STAFF_ROLES, "list", "clients")
    return db.query(Client).order_by(Client.name).all()


def list_manufacturers(db: Session, actor: Actor) -> List[Manufacturer]:
    require_role(actor, STAFF_ROLES, "list", "manufacturers")
    return db.query(Manufacturer).order_by(Manufacturer.name).all()


def create_client(db: Session, actor: Actor, data: ClientCreate) -> Client:
    require_role(actor, SETTINGS_ROLES, "create", "client")
    with unit_of_work(db):
        client = Client(**data.model_dump())
        db.add(client)
        db.flush()
        record_audit(db, actor, "client_created", "client", client.id, new_value=client.name)
    logger.info(f"Client {client.name} created by user {actor.id}")
    return client


def create_manufacturer(db: Session, actor: Actor, data: ManufacturerCreate) -> Manufacturer:
    require_role(actor, SETTINGS_ROLES, "create", "manufacturer")
    with unit_of_work(db):
        manufacturer = Manufacturer(**data.model_dump())
        db.add(manufacturer)
        db.flush()
        record_audit(db, actor, "manufacturer_created", "manufacturer", manufacturer.id,
                     new_value=manufacturer.name)
    logger.info(f"Manufacturer {manufacturer.name} created by user {actor.id}")
    return manufacturer


def _delete_party(db: Session, actor: Actor, party, kind: str, order_filter) -> None:
    if db.query(Order.id).filter(order_filter).first() is not None:
        raise ReferentialIntegrityError(
            f"Cannot delete {party.name} because they have existing orders. "
            f"Please delete or reassign their orders first.",
            blocking="orders",
        )
    name = party.name
    with unit_of_work(db):
        # Logins that acted for this party are unlinked on delete; disable them
        for user in party.users:
            user.is_active = False
        record_audit(db, actor, f"{kind}_deleted", kind, party.id, old_value=name)
        db.delete(party)
    logger.info(f"{kind.title()} {name} deleted by user {actor.id}")


def delete_client(db: Session, actor: Actor, client_id: int) -> None:
    require_role(actor, SETTINGS_ROLES, "delete", "client")
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    _delete_party(db, actor, client, "client", Order.client_id == client.id)


def delete_manufacturer(db: Session, actor: Actor, manufacturer_id: int) -> None:
    require_role(actor, SETTINGS_ROLES, "delete", "manufacturer")
    manufacturer = db.get(Manufacturer, manufacturer_id)
    if manufacturer is None:
        raise NotFoundError("Manufacturer", manufacturer_id)
    _delete_party(db, actor, manufacturer, "manufacturer", Order.manufacturer_id == manufacturer.id)
