"""
Unit Tests for the Bid Workflow Stage Tracker
"""

import pytest

from app.core.exceptions import ValidationError
from app.services.workflow import (
    STAGE_ORDER,
    advance_stage,
    next_stage,
    previous_stage,
    revert_stage,
    stage_index,
)


def test_stage_order_has_sixteen_stages():
    assert len(STAGE_ORDER) == 16
    assert STAGE_ORDER[0] == "Tender Identification"
    assert STAGE_ORDER[-1] == "Complete"


def test_stage_index_unknown_is_minus_one():
    assert stage_index("Not A Stage") == -1
    assert stage_index(None) == -1


def test_next_and_previous_clamp_at_the_ends():
    assert next_stage("Complete") == "Complete"
    assert previous_stage("Tender Identification") == "Tender Identification"
    assert next_stage("Bid Preparation") == "Pre-Bid Meeting"


def test_unknown_stage_is_rejected():
    with pytest.raises(ValidationError):
        next_stage("Somewhere")


def test_advance_moves_one_stage_and_logs(tender, actor):
    assert advance_stage(tender, actor) is True
    assert tender.workflow_stage == "Tender Review and Shortlisting"

    entry = tender.history[-1]
    assert entry["action"] == "Advanced Workflow Stage"
    assert entry["details"] == "from Tender Identification to Tender Review and Shortlisting"
    assert entry["user_id"] == actor.id


def test_revert_at_first_stage_is_a_noop(tender, actor):
    assert revert_stage(tender, actor) is False
    assert tender.workflow_stage == "Tender Identification"
    assert tender.history == []


def test_advance_at_last_stage_is_a_noop(tender, actor):
    tender.workflow_stage = "Complete"
    assert advance_stage(tender, actor) is False
    assert tender.history == []


def test_advance_ignores_incomplete_checklists(tender, actor):
    tender.checklists = {"Tender Identification": [{"id": "a", "text": "x", "completed": False}]}
    assert advance_stage(tender, actor) is True


@pytest.mark.parametrize("stage", STAGE_ORDER[:-1])
def test_advance_then_revert_returns_to_start(tender, actor, stage):
    tender.workflow_stage = stage
    advance_stage(tender, actor)
    revert_stage(tender, actor)
    assert tender.workflow_stage == stage
