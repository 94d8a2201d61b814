"""
Tests for draft editing: versioned diff/patch saves and draft-only structural edits.
"""
import pytest

from orderhub.exceptions import (
    AuthorizationError,
    ConcurrencyError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from orderhub.models.audit_log import AuditLog
from orderhub.models.notification import Notification
from orderhub.models.order import OrderItem, OrderProduct
from orderhub.models.order_media import OrderMedia
from orderhub.schemas.order import DraftSave, OrderItemInput, OrderProductInput
from orderhub.services.order_lifecycle import order_lifecycle_service
from tests.factories import (
    create_test_media,
    create_test_notification,
    create_test_order,
    reset_sequences,
)


class TestSaveDraft:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    @pytest.fixture
    def draft(self, db_session, creator_user, acme_client, maker):
        order = create_test_order(
            db_session, creator=creator_user, client=acme_client, manufacturer=maker,
            products=[
                {"items": [("Black / M", 5), ("Black / L", 8)], "description": "Hoodie"},
                {"items": [("White / S", 3)], "description": "Tee"},
            ],
        )
        db_session.commit()
        return order

    def test_patch_inserts_updates_and_deletes(self, db_session, creator, creator_user, draft):
        hoodie, tee = draft.products
        medium, large = hoodie.items
        large_id = large.id
        create_test_media(db_session, draft, tee)
        create_test_notification(db_session, creator_user, draft, tee)
        db_session.commit()

        data = DraftSave(
            version=1,
            order_name="Renamed",
            client_id=draft.client_id,
            manufacturer_id=draft.manufacturer_id,
            products=[
                OrderProductInput(
                    id=hoodie.id,
                    description="Hoodie v2",
                    items=[
                        OrderItemInput(id=medium.id, variant_combo="Black / M", quantity=20),
                        OrderItemInput(variant_combo="Black / XL", quantity=2),
                    ],
                ),
                OrderProductInput(description="Cap", items=[OrderItemInput(variant_combo="One size", quantity=50)]),
            ],
        )

        order_lifecycle_service.save_draft(db_session, creator, draft.id, data)

        db_session.expire_all()
        assert draft.version == 2
        assert draft.order_name == "Renamed"
        assert [p.description for p in draft.products] == ["Hoodie v2", "Cap"]
        assert draft.products[0].id == hoodie.id
        assert draft.products[1].product_order_number == f"{draft.order_number}-02"
        assert {(i.variant_combo, i.quantity) for i in draft.products[0].items} == {
            ("Black / M", 20), ("Black / XL", 2),
        }
        assert db_session.get(OrderItem, large_id) is None
        assert db_session.query(OrderProduct).filter_by(description="Tee").count() == 0
        assert db_session.query(OrderMedia).count() == 0
        assert db_session.query(Notification).count() == 0

    def test_omitting_products_keeps_them(self, db_session, admin, draft):
        order_lifecycle_service.save_draft(
            db_session, admin, draft.id,
            DraftSave(version=1, order_name="Only the name", client_id=draft.client_id,
                      manufacturer_id=draft.manufacturer_id),
        )

        db_session.expire_all()
        assert len(draft.products) == 2
        assert draft.version == 2

    def test_stale_version_is_refused(self, db_session, creator, admin, draft):
        order_lifecycle_service.save_draft(
            db_session, admin, draft.id,
            DraftSave(version=1, order_name="Admin edit", client_id=draft.client_id,
                      manufacturer_id=draft.manufacturer_id),
        )

        with pytest.raises(ConcurrencyError) as exc:
            order_lifecycle_service.save_draft(
                db_session, creator, draft.id,
                DraftSave(version=1, order_name="Creator edit", client_id=draft.client_id,
                          manufacturer_id=draft.manufacturer_id, products=[]),
            )

        assert exc.value.status_code == 409
        assert exc.value.details == {"expected_version": 1, "current_version": 2}
        db_session.expire_all()
        assert draft.order_name == "Admin edit"
        assert len(draft.products) == 2

    def test_foreign_item_id_rejected(self, db_session, admin, draft, acme_client, maker):
        other = create_test_order(db_session, products=[{"items": [("Red / S", 1)]}])
        db_session.commit()
        hoodie = draft.products[0]
        foreign_item = other.products[0].items[0]

        data = DraftSave(
            version=1, client_id=acme_client.id, manufacturer_id=maker.id,
            products=[OrderProductInput(id=hoodie.id, items=[
                OrderItemInput(id=foreign_item.id, variant_combo="Red / S", quantity=1),
            ])],
        )

        with pytest.raises(ValidationError):
            order_lifecycle_service.save_draft(db_session, admin, draft.id, data)

        db_session.expire_all()
        assert draft.version == 1
        assert len(draft.products) == 2

    def test_negative_quantity_rejected(self, db_session, admin, draft):
        data = DraftSave(
            version=1, client_id=draft.client_id, manufacturer_id=draft.manufacturer_id,
            products=[OrderProductInput(items=[OrderItemInput(variant_combo="Bad", quantity=-3)])],
        )

        with pytest.raises(ValidationError):
            order_lifecycle_service.save_draft(db_session, admin, draft.id, data)

    def test_creator_cannot_edit_someone_elses_draft(self, db_session, creator, admin_user):
        order = create_test_order(db_session, creator=admin_user)
        db_session.commit()

        with pytest.raises(AuthorizationError):
            order_lifecycle_service.save_draft(db_session, creator, order.id, DraftSave(version=1))

    def test_save_is_audited(self, db_session, admin, draft):
        order_lifecycle_service.save_draft(
            db_session, admin, draft.id,
            DraftSave(version=1, client_id=draft.client_id, manufacturer_id=draft.manufacturer_id),
        )

        entry = db_session.query(AuditLog).filter_by(action="draft_saved").one()
        assert (entry.old_value, entry.new_value) == ("v1", "v2")


class TestStructuralEdits:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_add_product_appends_next_sequence(self, db_session, admin):
        order = create_test_order(db_session, products=[{"items": [("A", 1)]}])
        db_session.commit()

        product = order_lifecycle_service.add_product(
            db_session, admin, order.id,
            OrderProductInput(description="Tote", items=[OrderItemInput(variant_combo="Natural", quantity=40)]),
        )

        assert product.sequence == 2
        assert product.product_order_number == f"{order.order_number}-02"
        assert order.version == 2

    def test_remove_product(self, db_session, admin):
        order = create_test_order(db_session, products=[{"items": [("A", 1)]}, {"items": [("B", 2)]}])
        db_session.commit()
        doomed = order.products[1]

        order_lifecycle_service.remove_product(db_session, admin, order.id, doomed.id)

        db_session.expire_all()
        assert len(order.products) == 1
        assert db_session.query(OrderItem).count() == 1

    def test_remove_unknown_product(self, db_session, admin):
        order = create_test_order(db_session)
        db_session.commit()

        with pytest.raises(NotFoundError):
            order_lifecycle_service.remove_product(db_session, admin, order.id, 12345)

    def test_update_item_quantity(self, db_session, creator, creator_user):
        order = create_test_order(db_session, creator=creator_user, products=[{"items": [("A", 1)]}])
        db_session.commit()
        item = order.products[0].items[0]

        order_lifecycle_service.update_item_quantity(db_session, creator, item.id, 0)

        assert item.quantity == 0
        entry = db_session.query(AuditLog).filter_by(action="item_quantity_changed").one()
        assert (entry.old_value, entry.new_value) == ("1", "0")

    def test_negative_quantity(self, db_session, admin):
        order = create_test_order(db_session, products=[{"items": [("A", 1)]}])
        db_session.commit()
        item = order.products[0].items[0]

        with pytest.raises(ValidationError):
            order_lifecycle_service.update_item_quantity(db_session, admin, item.id, -1)

        db_session.refresh(item)
        assert item.quantity == 1

    def test_set_parties_validates_ids(self, db_session, admin, acme_client):
        order = create_test_order(db_session)
        db_session.commit()

        with pytest.raises(NotFoundError):
            order_lifecycle_service.set_parties(db_session, admin, order.id, acme_client.id, 999)

        order_lifecycle_service.set_parties(db_session, admin, order.id, acme_client.id, None)
        assert order.client_id == acme_client.id

    @pytest.mark.parametrize("status", [
        "client_request", "submitted_for_sample", "submitted_to_manufacturer", "in_progress", "completed",
    ])
    def test_structure_is_locked_outside_draft(self, db_session, admin, status):
        order = create_test_order(db_session, status=status, products=[{"items": [("A", 1)]}])
        db_session.commit()
        product = order.products[0]
        item = product.items[0]

        with pytest.raises(InvalidStateError):
            order_lifecycle_service.add_product(db_session, admin, order.id, OrderProductInput())
        with pytest.raises(InvalidStateError):
            order_lifecycle_service.remove_product(db_session, admin, order.id, product.id)
        with pytest.raises(InvalidStateError):
            order_lifecycle_service.update_item_quantity(db_session, admin, item.id, 5)

        db_session.expire_all()
        assert len(order.products) == 1
        assert order.products[0].items[0].quantity == 1
        assert order.version == 1

    def test_manufacturer_cannot_edit(self, db_session, manufacturer, maker):
        order = create_test_order(db_session, manufacturer=maker, products=[{"items": [("A", 1)]}])
        db_session.commit()

        with pytest.raises(AuthorizationError):
            order_lifecycle_service.update_item_quantity(
                db_session, manufacturer, order.products[0].items[0].id, 3
            )
