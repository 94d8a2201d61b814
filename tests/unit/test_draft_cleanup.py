"""
Tests for the stale-draft purge.
"""
from datetime import datetime

import pytest
from sqlalchemy import text

from orderhub.exceptions import AuthorizationError
from orderhub.models.order import Order
from orderhub.services.order_lifecycle import order_lifecycle_service
from tests.factories import create_test_order, reset_sequences

NOW = datetime(2025, 1, 20, 9, 0)


@pytest.fixture
def drafts(db_session, admin_user):
    """Two stale drafts, one fresh draft and one old submitted order"""
    orders = {
        "stale_old": create_test_order(
            db_session, creator=admin_user, created_at=datetime(2024, 12, 1),
            products=[{"items": [("A", 1)]}],
        ),
        "stale": create_test_order(db_session, creator=admin_user, created_at=datetime(2025, 1, 4)),
        "fresh": create_test_order(db_session, creator=admin_user, created_at=datetime(2025, 1, 10)),
        "submitted": create_test_order(
            db_session, creator=admin_user, status="submitted_to_manufacturer", created_at=datetime(2024, 11, 1),
        ),
    }
    db_session.commit()
    return orders


class TestPurgeStaleDrafts:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_only_stale_drafts_are_deleted(self, db_session, super_admin, drafts):
        ids = {key: order.id for key, order in drafts.items()}
        numbers = {key: order.order_number for key, order in drafts.items()}

        report = order_lifecycle_service.purge_stale_drafts(db_session, super_admin, now=NOW)

        assert report.cutoff == datetime(2025, 1, 5, 9, 0)
        assert report.deleted == [numbers["stale_old"], numbers["stale"]]
        assert report.failed == {}
        assert db_session.get(Order, ids["stale_old"]) is None
        assert db_session.get(Order, ids["stale"]) is None
        assert db_session.get(Order, ids["fresh"]) is not None
        assert db_session.get(Order, ids["submitted"]) is not None

    def test_custom_retention(self, db_session, super_admin, drafts):
        oldest = drafts["stale_old"].order_number

        report = order_lifecycle_service.purge_stale_drafts(
            db_session, super_admin, older_than_days=30, now=NOW,
        )

        assert report.deleted == [oldest]

    def test_zero_day_retention_purges_every_draft(self, db_session, super_admin, drafts):
        expected = [drafts[key].order_number for key in ("stale_old", "stale", "fresh")]
        submitted_id = drafts["submitted"].id

        report = order_lifecycle_service.purge_stale_drafts(
            db_session, super_admin, older_than_days=0, now=NOW,
        )

        assert report.cutoff == NOW
        assert report.deleted == expected
        assert db_session.get(Order, submitted_id) is not None

    def test_failure_is_reported_and_rest_continue(self, db_session, super_admin, drafts):
        blocked_id, blocked_number = drafts["stale_old"].id, drafts["stale_old"].order_number
        stale_number = drafts["stale"].order_number
        db_session.execute(text(
            "CREATE TABLE blocker (id INTEGER PRIMARY KEY, order_id INTEGER REFERENCES orders(id))"
        ))
        db_session.execute(text(f"INSERT INTO blocker (order_id) VALUES ({blocked_id})"))
        db_session.commit()
        try:
            report = order_lifecycle_service.purge_stale_drafts(db_session, super_admin, now=NOW)

            assert report.failed == {blocked_number: "There are still related records"}
            assert report.deleted == [stale_number]
            assert db_session.get(Order, blocked_id) is not None
        finally:
            db_session.execute(text("DROP TABLE IF EXISTS blocker"))
            db_session.commit()

    def test_super_admin_only(self, db_session, admin, drafts):
        with pytest.raises(AuthorizationError):
            order_lifecycle_service.purge_stale_drafts(db_session, admin, now=NOW)

        assert db_session.query(Order).count() == 4
