"""
Tests for the order-level sample: custody, new rounds after rejection,
sample details and shipment.
"""
from datetime import date
from decimal import Decimal

import pytest

from orderhub.exceptions import AuthorizationError, ConflictError, InvalidStateError
from orderhub.models.notification import Notification
from orderhub.schemas.routing import ShipmentUpdate
from orderhub.schemas.sample import SampleUpdate
from orderhub.services.approval_gate import decide_sample
from orderhub.services.sample_workflow import record_sample_shipment, route_sample, update_sample
from tests.factories import create_test_order, reset_sequences


@pytest.fixture
def sample_order(db_session, admin_user, acme_client, maker):
    order = create_test_order(
        db_session, creator=admin_user, client=acme_client, manufacturer=maker,
        status="submitted_for_sample", sample_required=True,
        products=[{"items": [("Black / L", 10)]}],
    )
    db_session.commit()
    return order


class TestRouteSample:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_staff_send_sample_to_manufacturer(self, db_session, admin, manufacturer_user, sample_order):
        route_sample(db_session, admin, sample_order.id, "manufacturer", notes="Rush please")

        assert sample_order.sample_routed_to == "manufacturer"
        assert sample_order.sample_routed_by == admin.id
        assert sample_order.sample_notes.endswith("- Admin] Rush please")
        assert db_session.query(Notification).filter_by(user_id=manufacturer_user.id).count() == 1

    def test_manufacturer_returns_sample(self, db_session, admin, manufacturer, sample_order):
        route_sample(db_session, admin, sample_order.id, "manufacturer")

        route_sample(db_session, manufacturer, sample_order.id, "admin")

        assert sample_order.sample_routed_to == "admin"

    def test_manufacturer_never_sends_sample_to_client(self, db_session, admin, manufacturer, sample_order):
        route_sample(db_session, admin, sample_order.id, "manufacturer")

        with pytest.raises(AuthorizationError):
            route_sample(db_session, manufacturer, sample_order.id, "client")

        assert sample_order.sample_routed_to == "manufacturer"

    def test_rejected_sample_starts_new_round(self, db_session, admin, client_actor, sample_order):
        route_sample(db_session, admin, sample_order.id, "client")
        decide_sample(db_session, client_actor, sample_order.id, "rejected", notes="Stitching is loose")
        assert sample_order.sample_status == "rejected"
        assert sample_order.sample_routed_to == "admin"

        route_sample(db_session, admin, sample_order.id, "manufacturer")

        assert sample_order.sample_status == "pending"
        assert sample_order.sample_routed_to == "manufacturer"

    def test_approved_sample_not_resent_to_client(self, db_session, admin, acme_client, maker):
        order = create_test_order(
            db_session, client=acme_client, manufacturer=maker, status="submitted_for_sample",
            sample_required=True, sample_status="approved",
        )
        db_session.commit()

        with pytest.raises(ConflictError):
            route_sample(db_session, admin, order.id, "client")

    def test_order_without_sample(self, db_session, admin, acme_client, maker):
        order = create_test_order(
            db_session, client=acme_client, manufacturer=maker, status="submitted_to_manufacturer",
        )
        db_session.commit()

        with pytest.raises(InvalidStateError):
            route_sample(db_session, admin, order.id, "manufacturer")

    def test_draft_sample_cannot_move(self, db_session, admin, acme_client, maker):
        order = create_test_order(db_session, client=acme_client, manufacturer=maker, sample_required=True)
        db_session.commit()

        with pytest.raises(InvalidStateError):
            route_sample(db_session, admin, order.id, "manufacturer")


class TestUpdateSample:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_staff_set_sample_details(self, db_session, admin, sample_order):
        update_sample(
            db_session, admin, sample_order.id,
            SampleUpdate(sample_fee=Decimal("45.00"), sample_eta=date(2025, 3, 1), sample_notes="Two sizes"),
        )

        assert sample_order.sample_fee == Decimal("45.00")
        assert sample_order.sample_eta == date(2025, 3, 1)
        assert sample_order.sample_notes.endswith("- Admin] Two sizes")

    def test_manufacturer_holding_sample_sets_fee_and_eta(self, db_session, admin, manufacturer, sample_order):
        route_sample(db_session, admin, sample_order.id, "manufacturer")

        update_sample(
            db_session, manufacturer, sample_order.id,
            SampleUpdate(sample_fee=Decimal("30.00"), sample_eta=date(2025, 2, 14)),
        )

        assert sample_order.sample_fee == Decimal("30.00")

        with pytest.raises(AuthorizationError):
            update_sample(db_session, manufacturer, sample_order.id, SampleUpdate(sample_required=False))

    def test_manufacturer_without_custody_denied(self, db_session, manufacturer, sample_order):
        with pytest.raises(AuthorizationError):
            update_sample(db_session, manufacturer, sample_order.id, SampleUpdate(sample_fee=Decimal("1.00")))

    def test_completed_order_locked(self, db_session, admin, acme_client, maker):
        order = create_test_order(
            db_session, client=acme_client, manufacturer=maker, status="completed", sample_required=True,
        )
        db_session.commit()

        with pytest.raises(InvalidStateError):
            update_sample(db_session, admin, order.id, SampleUpdate(sample_fee=Decimal("10.00")))


class TestSampleShipment:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_manufacturer_records_tracking(self, db_session, admin, manufacturer, sample_order):
        route_sample(db_session, admin, sample_order.id, "manufacturer")

        record_sample_shipment(
            db_session, manufacturer, sample_order.id,
            ShipmentUpdate(tracking_number="SF123", carrier="SF Express"),
        )

        assert sample_order.sample_tracking_number == "SF123"
        assert sample_order.sample_carrier == "SF Express"

    def test_client_cannot_record(self, db_session, client_actor, sample_order):
        with pytest.raises(AuthorizationError):
            record_sample_shipment(db_session, client_actor, sample_order.id, ShipmentUpdate(carrier="DHL"))
