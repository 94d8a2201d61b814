"""
Tests for the status enums and transition tables.
"""
import pytest

from orderhub.core.status_config import (
    ORDER_TRANSITIONS,
    PRODUCT_STATUS_TRANSITIONS,
    OrderStatus,
    ProductStatus,
    RoutedTo,
    get_allowed_order_transitions,
    is_valid_order_transition,
    validate_order_transition,
    validate_product_transition,
)
from orderhub.exceptions import InvalidStateError


class TestOrderTransitions:

    def test_persisted_values_are_stable(self):
        assert {s.value for s in OrderStatus} == {
            "draft", "client_request", "submitted_for_sample",
            "submitted_to_manufacturer", "in_progress", "completed",
        }
        assert {r.value for r in RoutedTo} == {"admin", "manufacturer", "client"}

    def test_every_target_is_a_defined_status(self):
        for source, targets in ORDER_TRANSITIONS.items():
            assert isinstance(source, OrderStatus)
            assert all(isinstance(t, OrderStatus) for t in targets)

    @pytest.mark.parametrize("current,target", [
        ("draft", "submitted_for_sample"),
        ("draft", "submitted_to_manufacturer"),
        ("client_request", "draft"),
        ("submitted_for_sample", "submitted_to_manufacturer"),
        ("submitted_to_manufacturer", "in_progress"),
        ("in_progress", "completed"),
    ])
    def test_allowed_transitions(self, current, target):
        assert is_valid_order_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("in_progress", "draft"),
        ("completed", "draft"),
        ("completed", "in_progress"),
        ("submitted_to_manufacturer", "draft"),
        ("draft", "in_progress"),
        ("draft", "draft"),
        ("draft", "cancelled"),
    ])
    def test_rejected_transitions(self, current, target):
        assert not is_valid_order_transition(current, target)

    def test_validate_raises_with_allowed_states(self):
        with pytest.raises(InvalidStateError) as exc:
            validate_order_transition("completed", "draft")

        assert exc.value.details["allowed_states"] == []
        assert "terminal" in exc.value.message

    def test_allowed_transitions_are_sorted(self):
        assert get_allowed_order_transitions("draft") == [
            "submitted_for_sample", "submitted_to_manufacturer",
        ]


class TestProductTransitions:

    def test_question_for_admin_is_never_a_target(self):
        for targets in PRODUCT_STATUS_TRANSITIONS.values():
            assert ProductStatus.QUESTION_FOR_ADMIN not in targets

    def test_client_approval_path(self):
        validate_product_transition("pending", "pending_client_approval")
        validate_product_transition("pending_client_approval", "client_approved")
        validate_product_transition("client_approved", "in_production")

    def test_shipped_is_terminal(self):
        with pytest.raises(InvalidStateError):
            validate_product_transition("shipped", "in_production")

    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidStateError):
            validate_product_transition("pending", "lost")
