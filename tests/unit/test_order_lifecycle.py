"""
Tests for the order lifecycle state machine.
"""
from datetime import datetime

import pytest

from orderhub.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from orderhub.models.audit_log import AuditLog
from orderhub.models.notification import Notification
from orderhub.models.order import Order
from orderhub.schemas.order import OrderCreate, OrderItemInput, OrderProductInput
from orderhub.services.order_lifecycle import (
    draft_submit_target,
    generate_order_number,
    order_lifecycle_service,
)
from tests.factories import (
    actor_for,
    create_test_manufacturer,
    create_test_order,
    create_test_user,
    reset_sequences,
)


def one_product(**fields):
    product = {"items": [("Black / L", 10)]}
    product.update(fields)
    return [product]


class TestCreateOrder:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_staff_create_draft(self, db_session, creator, acme_client, maker):
        data = OrderCreate(
            order_name="Spring hoodies",
            client_id=acme_client.id,
            manufacturer_id=maker.id,
            products=[OrderProductInput(
                description="Heavyweight hoodie",
                items=[OrderItemInput(variant_combo="Black / L", quantity=12)],
            )],
        )

        order = order_lifecycle_service.create_order(db_session, creator, data)

        assert order.status == "draft"
        assert order.created_by == creator.id
        assert order.version == 1
        assert order.order_number == f"ORD-{datetime.utcnow().year}-0001"
        assert len(order.products) == 1
        product = order.products[0]
        assert product.product_order_number == f"{order.order_number}-01"
        assert product.routed_to == "admin"
        assert product.items[0].quantity == 12

    def test_order_numbers_increment(self, db_session, admin):
        first = order_lifecycle_service.create_order(db_session, admin, OrderCreate())
        second = order_lifecycle_service.create_order(db_session, admin, OrderCreate())

        assert first.order_number.endswith("-0001")
        assert second.order_number.endswith("-0002")
        assert generate_order_number(db_session).endswith("-0003")

    def test_order_numbers_past_four_digits(self, db_session):
        year = datetime.utcnow().year
        create_test_order(db_session, order_number=f"ORD-{year}-9999")
        db_session.commit()

        assert generate_order_number(db_session) == f"ORD-{year}-10000"

        create_test_order(db_session, order_number=f"ORD-{year}-10000")
        db_session.commit()

        assert generate_order_number(db_session) == f"ORD-{year}-10001"

    def test_client_creates_request_for_own_client(self, db_session, client_actor, acme_client, maker):
        data = OrderCreate(client_id=999, manufacturer_id=maker.id)

        order = order_lifecycle_service.create_order(db_session, client_actor, data)

        assert order.status == "client_request"
        assert order.client_id == acme_client.id
        assert order.manufacturer_id is None

    def test_manufacturer_cannot_create(self, db_session, manufacturer):
        with pytest.raises(AuthorizationError):
            order_lifecycle_service.create_order(db_session, manufacturer, OrderCreate())

        assert db_session.query(Order).count() == 0

    def test_negative_quantity_rejected_before_any_write(self, db_session, admin):
        data = OrderCreate(products=[OrderProductInput(
            items=[OrderItemInput(variant_combo="Red / S", quantity=-1)],
        )])

        with pytest.raises(ValidationError) as exc:
            order_lifecycle_service.create_order(db_session, admin, data)

        assert exc.value.message == "Quantity cannot be negative for Red / S"
        assert db_session.query(Order).count() == 0

    def test_unknown_client_rejected(self, db_session, admin):
        with pytest.raises(NotFoundError):
            order_lifecycle_service.create_order(db_session, admin, OrderCreate(client_id=404))

    def test_creation_is_audited(self, db_session, admin):
        order = order_lifecycle_service.create_order(db_session, admin, OrderCreate())

        entry = db_session.query(AuditLog).filter_by(action="order_created").one()
        assert entry.order_id == order.id
        assert entry.user_role == "admin"
        assert entry.new_value == "draft"


class TestVisibility:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    @pytest.fixture
    def orders(self, db_session, creator_user, admin_user, acme_client, maker):
        mine = create_test_order(db_session, creator=creator_user, client=acme_client, manufacturer=maker)
        theirs = create_test_order(db_session, creator=admin_user, client=acme_client, manufacturer=maker)
        submitted = create_test_order(
            db_session, creator=admin_user, client=acme_client, manufacturer=maker,
            status="submitted_to_manufacturer", products=one_product(routed_to="manufacturer"),
        )
        held_by_staff = create_test_order(
            db_session, creator=admin_user, client=acme_client, manufacturer=maker,
            status="in_progress", products=one_product(routed_to="admin"),
        )
        request = create_test_order(db_session, client=acme_client, status="client_request")
        db_session.commit()
        return {"mine": mine, "theirs": theirs, "submitted": submitted,
                "held_by_staff": held_by_staff, "request": request}

    def _numbers(self, db_session, actor):
        found, total = order_lifecycle_service.list_orders(db_session, actor)
        assert total == len(found)
        return {o.order_number for o in found}

    def test_admin_and_approver_see_everything(self, db_session, admin, approver, orders):
        assert len(self._numbers(db_session, admin)) == 5
        assert len(self._numbers(db_session, approver)) == 5

    def test_creator_sees_own_orders(self, db_session, creator, orders):
        assert self._numbers(db_session, creator) == {orders["mine"].order_number}

    def test_manufacturer_sees_submitted_orders_routed_to_them(self, db_session, manufacturer, orders):
        assert self._numbers(db_session, manufacturer) == {orders["submitted"].order_number}

    def test_client_never_sees_drafts(self, db_session, client_actor, orders):
        assert self._numbers(db_session, client_actor) == {
            orders["submitted"].order_number,
            orders["held_by_staff"].order_number,
            orders["request"].order_number,
        }

    def test_get_order_denied_for_foreign_creator(self, db_session, creator, orders):
        with pytest.raises(AuthorizationError) as exc:
            order_lifecycle_service.get_order(db_session, creator, orders["theirs"].id)

        assert exc.value.to_dict() == {"error": "NOT_PERMITTED", "message": "Not permitted"}

    def test_status_filter(self, db_session, admin, orders):
        found, total = order_lifecycle_service.list_orders(db_session, admin, status="client_request")

        assert total == 1
        assert found[0].order_number == orders["request"].order_number

    def test_unknown_status_filter_rejected(self, db_session, admin, orders):
        with pytest.raises(ValidationError):
            order_lifecycle_service.list_orders(db_session, admin, status="archived")

    def test_pagination(self, db_session, admin, orders):
        found, total = order_lifecycle_service.list_orders(db_session, admin, offset=1, limit=2)

        assert total == 5
        assert len(found) == 2


class TestSubmit:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_submit_without_sample_notes(self, db_session, approver, admin_user, acme_client, maker,
                                         manufacturer_user):
        order = create_test_order(
            db_session, creator=admin_user, client=acme_client, manufacturer=maker,
            products=one_product() + one_product(),
        )
        db_session.commit()

        order_lifecycle_service.submit(db_session, approver, order.id)

        assert order.status == "submitted_to_manufacturer"
        assert order.submitted_at is not None
        assert order.sample_required is False
        assert {p.routed_to for p in order.products} == {"manufacturer"}
        assert all(p.routed_by == approver.id for p in order.products)
        notice = db_session.query(Notification).filter_by(user_id=manufacturer_user.id).one()
        assert notice.type == "order_submitted"

    def test_sample_notes_submit_for_sample(self, db_session, admin, acme_client, maker):
        order = create_test_order(
            db_session, client=acme_client, manufacturer=maker,
            products=one_product(sample_notes="Send one in every colour") + one_product(),
        )
        db_session.commit()
        assert draft_submit_target(order).value == "submitted_for_sample"

        order_lifecycle_service.submit(db_session, admin, order.id)

        assert order.status == "submitted_for_sample"
        assert order.sample_required is True
        assert order.sample_routed_to == "manufacturer"

    def test_blank_sample_notes_do_not_request_a_sample(self, db_session, acme_client, maker):
        order = create_test_order(
            db_session, client=acme_client, manufacturer=maker, products=one_product(sample_notes="   "),
        )

        assert draft_submit_target(order).value == "submitted_to_manufacturer"

    @pytest.mark.parametrize("missing", ["client", "manufacturer", "products"])
    def test_missing_requirements(self, db_session, admin, acme_client, maker, missing):
        order = create_test_order(
            db_session,
            client=None if missing == "client" else acme_client,
            manufacturer=None if missing == "manufacturer" else maker,
            products=[] if missing == "products" else one_product(),
        )
        db_session.commit()

        with pytest.raises(ValidationError):
            order_lifecycle_service.submit(db_session, admin, order.id)

        db_session.refresh(order)
        assert order.status == "draft"

    def test_creator_cannot_submit(self, db_session, creator, creator_user, acme_client, maker):
        order = create_test_order(
            db_session, creator=creator_user, client=acme_client, manufacturer=maker, products=one_product(),
        )
        db_session.commit()

        with pytest.raises(AuthorizationError):
            order_lifecycle_service.submit(db_session, creator, order.id)

    def test_cannot_submit_twice(self, db_session, admin, acme_client, maker):
        order = create_test_order(
            db_session, client=acme_client, manufacturer=maker,
            status="submitted_to_manufacturer", products=one_product(),
        )
        db_session.commit()

        with pytest.raises(InvalidStateError):
            order_lifecycle_service.submit(db_session, admin, order.id)


class TestTransition:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def _order(self, db_session, acme_client, maker, status, **fields):
        order = create_test_order(
            db_session, client=acme_client, manufacturer=maker, status=status,
            products=one_product(routed_to="manufacturer", **fields),
        )
        db_session.commit()
        return order

    def test_approver_moves_order_forward(self, db_session, approver, acme_client, maker):
        order = self._order(db_session, acme_client, maker, "submitted_to_manufacturer")

        order_lifecycle_service.transition(db_session, approver, order.id, "in_progress")
        order_lifecycle_service.transition(db_session, approver, order.id, "completed")

        assert order.status == "completed"
        assert order.completed_at is not None
        changes = (
            db_session.query(AuditLog)
            .filter_by(action="order_status_changed")
            .order_by(AuditLog.id)
            .all()
        )
        assert [(c.old_value, c.new_value) for c in changes] == [
            ("submitted_to_manufacturer", "in_progress"),
            ("in_progress", "completed"),
        ]

    def test_assigned_manufacturer_may_start_work(self, db_session, manufacturer, acme_client, maker):
        order = self._order(db_session, acme_client, maker, "submitted_to_manufacturer")

        order_lifecycle_service.transition(db_session, manufacturer, order.id, "in_progress")

        assert order.status == "in_progress"

    def test_manufacturer_without_products_denied(self, db_session, manufacturer, acme_client, maker):
        order = self._order(db_session, acme_client, maker, "in_progress")
        order.products[0].routed_to = "admin"
        db_session.commit()

        with pytest.raises(AuthorizationError):
            order_lifecycle_service.transition(db_session, manufacturer, order.id, "completed")

        db_session.refresh(order)
        assert order.status == "in_progress"
        assert db_session.query(AuditLog).filter_by(action="order_status_changed").count() == 0

    def test_other_manufacturer_denied(self, db_session, acme_client, maker):
        other = create_test_manufacturer(db_session)
        stranger = actor_for(create_test_user(db_session, role="manufacturer", manufacturer=other))
        order = self._order(db_session, acme_client, maker, "submitted_to_manufacturer")

        with pytest.raises(AuthorizationError):
            order_lifecycle_service.transition(db_session, stranger, order.id, "in_progress")

    def test_client_accepts_nothing(self, db_session, client_actor, acme_client, maker):
        order = self._order(db_session, acme_client, maker, "in_progress")

        with pytest.raises(AuthorizationError):
            order_lifecycle_service.transition(db_session, client_actor, order.id, "completed")

    def test_no_revert_to_draft(self, db_session, admin, acme_client, maker):
        order = self._order(db_session, acme_client, maker, "in_progress")

        with pytest.raises(InvalidStateError):
            order_lifecycle_service.transition(db_session, admin, order.id, "draft")

        db_session.refresh(order)
        assert order.status == "in_progress"

    def test_client_request_becomes_draft(self, db_session, admin, acme_client):
        order = create_test_order(db_session, client=acme_client, status="client_request")
        db_session.commit()

        order_lifecycle_service.transition(db_session, admin, order.id, "draft")

        assert order.status == "draft"

    def test_draft_must_go_where_products_say(self, db_session, admin, acme_client, maker):
        order = create_test_order(db_session, client=acme_client, manufacturer=maker, products=one_product())
        db_session.commit()

        with pytest.raises(InvalidStateError):
            order_lifecycle_service.transition(db_session, admin, order.id, "submitted_for_sample")

        order_lifecycle_service.transition(db_session, admin, order.id, "submitted_to_manufacturer")
        assert order.status == "submitted_to_manufacturer"

    def test_unknown_target(self, db_session, admin, acme_client, maker):
        order = self._order(db_session, acme_client, maker, "in_progress")

        with pytest.raises(ValidationError):
            order_lifecycle_service.transition(db_session, admin, order.id, "cancelled")


class TestSyncOrderProgress:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def _order(self, db_session, status, product_statuses):
        return create_test_order(
            db_session, status=status,
            products=[{"items": [("One size", 1)], "product_status": s} for s in product_statuses],
        )

    def test_any_product_in_production_starts_order(self, db_session):
        order = self._order(db_session, "submitted_to_manufacturer", ["in_production", "pending"])

        changes = order_lifecycle_service.sync_order_progress(db_session, None, order)

        assert changes == ["in_progress"]
        assert order.status == "in_progress"

    def test_all_finished_completes_order(self, db_session):
        order = self._order(db_session, "in_progress", ["completed", "shipped"])

        changes = order_lifecycle_service.sync_order_progress(db_session, None, order)

        assert changes == ["completed"]
        assert order.completed_at is not None

    def test_submitted_order_with_all_finished_passes_through_in_progress(self, db_session):
        order = self._order(db_session, "submitted_for_sample", ["shipped"])

        changes = order_lifecycle_service.sync_order_progress(db_session, None, order)

        assert changes == ["in_progress", "completed"]

    def test_nothing_started(self, db_session):
        order = self._order(db_session, "submitted_to_manufacturer", ["pending", "client_approved"])

        assert order_lifecycle_service.sync_order_progress(db_session, None, order) == []
        assert order.status == "submitted_to_manufacturer"

    def test_drafts_are_left_alone(self, db_session):
        order = self._order(db_session, "draft", ["in_production"])

        assert order_lifecycle_service.sync_order_progress(db_session, None, order) == []


class TestDeleteAuthorization:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_admin_deletes_draft(self, db_session, admin):
        order = create_test_order(db_session, products=one_product())
        db_session.commit()

        report = order_lifecycle_service.delete_order(db_session, admin, order.id)

        assert report.deleted["order"] == 1
        assert db_session.query(Order).count() == 0
        entry = db_session.query(AuditLog).filter_by(action="order_deleted").one()
        assert entry.order_id is None
        assert entry.target_id == str(report.order_id)

    def test_admin_cannot_delete_submitted_order(self, db_session, admin):
        order = create_test_order(db_session, status="submitted_to_manufacturer", products=one_product())
        db_session.commit()

        with pytest.raises(AuthorizationError):
            order_lifecycle_service.delete_order(db_session, admin, order.id)

        assert db_session.query(Order).count() == 1

    def test_super_admin_deletes_any_order(self, db_session, super_admin):
        order = create_test_order(db_session, status="completed", products=one_product())
        db_session.commit()

        order_lifecycle_service.delete_order(db_session, super_admin, order.id)

        assert db_session.query(Order).count() == 0

    @pytest.mark.parametrize("role", ["order_creator", "order_approver"])
    def test_other_staff_cannot_delete(self, db_session, role):
        actor = actor_for(create_test_user(db_session, role=role))
        order = create_test_order(db_session)
        db_session.commit()

        with pytest.raises(AuthorizationError):
            order_lifecycle_service.delete_order(db_session, actor, order.id)
