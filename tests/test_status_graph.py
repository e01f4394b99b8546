import pytest

from src.engine import status_graph
from src.engine.enums import OrderPhase, OrderStatus, TransitionDirection
from src.engine.results import Accepted, EngineError, Rejected


@pytest.mark.parametrize("status", list(OrderStatus))
def test_self_transition_is_never_allowed(status):
    assert status_graph.can_transition(status, status) is False
    result = status_graph.transition(status, status, reason="retry")
    assert isinstance(result, Rejected)


@pytest.mark.parametrize("status", sorted(status_graph.TERMINAL_STATUSES))
def test_terminal_statuses_have_no_forward_edges(status):
    assert status_graph.available_transitions(status)["forward"] == ()


def test_forward_move_carries_label_and_no_reason_needed():
    result = status_graph.transition(OrderStatus.QUOTED, OrderStatus.AWAITING_PAYMENT)
    assert isinstance(result, Accepted)
    assert result.status == "awaiting_payment"
    assert result.direction == TransitionDirection.FORWARD
    assert result.label == "Customer confirmed, awaiting payment"
    assert result.reason is None


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_rollback_requires_non_blank_reason(reason):
    result = status_graph.transition(OrderStatus.DESIGNING, OrderStatus.AWAITING_PAYMENT, reason)
    assert isinstance(result, Rejected)
    assert result.error == EngineError.REASON_REQUIRED


def test_failed_qc_goes_back_to_production_as_forward_move():
    result = status_graph.transition(OrderStatus.QC_PENDING, "in_production")
    assert isinstance(result, Accepted)
    assert result.direction == TransitionDirection.FORWARD


def test_rollback_with_reason_is_accepted_and_reason_stripped():
    result = status_graph.transition(OrderStatus.DESIGNING, OrderStatus.AWAITING_PAYMENT, "  payment bounced ")
    assert isinstance(result, Accepted)
    assert result.direction == TransitionDirection.BACKWARD
    assert result.reason == "payment bounced"


def test_cancel_reachable_from_every_non_terminal_status_with_reason():
    for status in OrderStatus:
        if status in status_graph.TERMINAL_STATUSES:
            continue
        assert status_graph.can_transition(status, OrderStatus.CANCELLED), status
        missing = status_graph.transition(status, OrderStatus.CANCELLED)
        assert isinstance(missing, Rejected) and missing.error == EngineError.REASON_REQUIRED
        ok = status_graph.transition(status, OrderStatus.CANCELLED, "customer withdrew")
        assert isinstance(ok, Accepted)


def test_cancelled_is_terminal():
    for target in OrderStatus:
        result = status_graph.transition(OrderStatus.CANCELLED, target, "reopen")
        assert isinstance(result, Rejected)
        assert result.error == EngineError.TERMINAL_STATE


def test_completed_only_rolls_back_to_shipped():
    options = status_graph.available_transitions(OrderStatus.COMPLETED)
    assert [e.target for e in options["backward"]] == [OrderStatus.SHIPPED]

    result = status_graph.transition(OrderStatus.COMPLETED, OrderStatus.SHIPPED, "not yet received")
    assert isinstance(result, Accepted)

    result = status_graph.transition(OrderStatus.COMPLETED, OrderStatus.DRAFT, "redo")
    assert isinstance(result, Rejected)
    assert result.error == EngineError.TERMINAL_STATE


def test_unknown_edge_is_illegal():
    result = status_graph.transition(OrderStatus.DRAFT, OrderStatus.SHIPPED)
    assert isinstance(result, Rejected)
    assert result.error == EngineError.ILLEGAL_TRANSITION


def test_every_backward_edge_requires_a_reason():
    for status in OrderStatus:
        for edge in status_graph.ROLLBACK_EDGES[status]:
            assert edge.requires_reason
            assert edge.direction == TransitionDirection.BACKWARD


def test_hold_and_resume():
    paused = status_graph.transition(OrderStatus.QUEUED, OrderStatus.ON_HOLD, "waiting on customer")
    assert isinstance(paused, Accepted)
    assert paused.direction == TransitionDirection.BACKWARD

    resumed = status_graph.transition(OrderStatus.ON_HOLD, OrderStatus.QUEUED)
    assert isinstance(resumed, Accepted)
    assert resumed.direction == TransitionDirection.FORWARD

    assert not status_graph.can_transition(OrderStatus.DRAFT, OrderStatus.ON_HOLD)


def test_phase_and_production_started():
    assert status_graph.phase_for_status(OrderStatus.DRAFT) == OrderPhase.DRAFT
    assert status_graph.phase_for_status(OrderStatus.QUEUED) == OrderPhase.PRE_PRODUCTION
    assert status_graph.phase_for_status(OrderStatus.SHIPPED) == OrderPhase.QC_COMPLETE
    assert status_graph.phase_for_status(OrderStatus.ON_HOLD) is None
    assert status_graph.phase_for_status(OrderStatus.CANCELLED) is None

    assert status_graph.production_started(OrderStatus.IN_PRODUCTION)
    assert status_graph.production_started("completed")
    assert not status_graph.production_started(OrderStatus.QUEUED)


def test_progress_for_status():
    assert status_graph.progress_for_status(OrderStatus.DRAFT) == 5
    assert status_graph.progress_for_status("in_production") == 75
    assert status_graph.progress_for_status(OrderStatus.COMPLETED) == 100
    assert status_graph.progress_for_status(OrderStatus.CANCELLED) == 0
    assert set(status_graph.STATUS_PROGRESS) == set(OrderStatus)
