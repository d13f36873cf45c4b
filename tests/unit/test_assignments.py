"""
Unit Tests for Assignment and Response Tracking
"""

from types import SimpleNamespace

import pytest

from app.core.exceptions import PermissionDeniedError, ValidationError
from app.services.assignments import (
    assignment_diff,
    needs_reassignment,
    reassign,
    respond_to_assignment,
    response_status,
)

NAMES = {"u1": "Asha", "u2": "Ravi", "u3": "Meera"}


def test_assignment_diff_keeps_order():
    assert assignment_diff(["u1", "u2"], ["u2", "u3"]) == (["u3"], ["u1"])


def test_reassign_sets_pending_and_logs_names(tender, actor):
    assert reassign(tender, actor, ["u1", "u2"], NAMES) is True
    assert tender.assigned_to == ["u1", "u2"]
    assert tender.assignment_responses == {"u1": {"status": "Pending"}, "u2": {"status": "Pending"}}
    assert tender.history[-1]["details"] == "Added: Asha, Ravi."


def test_reassign_drops_removed_responses(tender, actor):
    reassign(tender, actor, ["u1", "u2"], NAMES)
    reassign(tender, actor, ["u2", "u3"], NAMES)
    assert set(tender.assignment_responses) == {"u2", "u3"}
    assert tender.history[-1]["details"] == "Added: Meera. Removed: Asha."


def test_reassign_unchanged_set_is_a_noop(tender, actor):
    reassign(tender, actor, ["u1"], NAMES)
    assert reassign(tender, actor, ["u1", "u1"], NAMES) is False
    assert len(tender.history) == 1


def test_respond_requires_assignment(tender):
    stranger = SimpleNamespace(id="u9", name="Stranger")
    with pytest.raises(PermissionDeniedError):
        respond_to_assignment(tender, stranger, "Accepted")


def test_respond_records_status(tender, actor):
    user = SimpleNamespace(id="u1", name="Asha")
    reassign(tender, actor, ["u1"], NAMES)
    respond_to_assignment(tender, user, "Declined", "On leave")

    assert response_status(tender, "u1") == "Declined"
    assert tender.assignment_responses["u1"]["notes"] == "On leave"
    assert tender.history[-1]["details"] == "Set status to Declined."


def test_respond_with_unknown_status(tender, actor):
    user = SimpleNamespace(id="u1", name="Asha")
    reassign(tender, actor, ["u1"], NAMES)
    with pytest.raises(ValidationError):
        respond_to_assignment(tender, user, "Maybe")


@pytest.mark.parametrize("statuses,expected", [
    (["Declined"], True),
    (["Declined", "Pending"], True),
    (["Declined", "Accepted"], False),
    (["Pending"], False),
    ([], False),
])
def test_needs_reassignment(statuses, expected):
    tender = {"assignment_responses": {f"u{i}": {"status": s} for i, s in enumerate(statuses)}}
    assert needs_reassignment(tender) is expected
