"""
Unit Tests for Stage Checklists
"""

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.services.checklists import (
    STANDARD_WORKFLOW_CHECKLISTS,
    add_checklist_item,
    apply_generated_checklist,
    get_checklist,
    load_standard_checklist,
    remove_checklist_item,
    toggle_checklist_item,
)

STAGE = "Tender Identification"


def test_standard_checklist_replaces_current_stage(tender, actor):
    add_checklist_item(tender, actor, "Old task")
    items = load_standard_checklist(tender, actor)

    assert [i["text"] for i in items] == STANDARD_WORKFLOW_CHECKLISTS[STAGE]
    assert all(i["completed"] is False for i in items)
    assert get_checklist(tender) == items
    assert tender.history[-1]["action"] == f"Loaded Standard Checklist for {STAGE}"


def test_standard_checklist_for_stage_without_template_is_noop(tender, actor):
    assert load_standard_checklist(tender, actor, "Complete") == []
    assert tender.history == []


def test_generated_checklist_may_be_empty(tender, actor):
    assert apply_generated_checklist(tender, actor, []) == []
    assert tender.checklists == {STAGE: []}
    assert tender.history[-1]["details"] == "Generated 0 items."


def test_toggle_flips_and_logs_both_ways(tender, actor):
    item = add_checklist_item(tender, actor, "Download notice")

    assert toggle_checklist_item(tender, actor, item["id"])["completed"] is True
    assert tender.history[-1]["action"] == "Completed stage task"

    assert toggle_checklist_item(tender, actor, item["id"])["completed"] is False
    assert tender.history[-1]["action"] == "Unchecked stage task"


def test_toggle_does_not_mutate_previous_checklist_object(tender, actor):
    item = add_checklist_item(tender, actor, "Download notice")
    before = tender.checklists
    toggle_checklist_item(tender, actor, item["id"])
    assert before[STAGE][0]["completed"] is False
    assert tender.checklists is not before


def test_explicit_stage_leaves_current_stage_untouched(tender, actor):
    add_checklist_item(tender, actor, "Upload bids", stage="Bid Submission")
    assert get_checklist(tender) == []
    assert len(get_checklist(tender, "Bid Submission")) == 1


def test_remove_unknown_item_raises(tender, actor):
    with pytest.raises(NotFoundError):
        remove_checklist_item(tender, actor, "missing")


def test_remove_item(tender, actor):
    item = add_checklist_item(tender, actor, "Temp")
    remove_checklist_item(tender, actor, item["id"])
    assert get_checklist(tender) == []
    assert tender.history[-1]["action"] == "Removed stage task"


def test_blank_item_text_is_rejected(tender, actor):
    with pytest.raises(ValidationError):
        add_checklist_item(tender, actor, "   ")


def test_unknown_stage_is_rejected(tender, actor):
    with pytest.raises(ValidationError):
        get_checklist(tender, "Nowhere")
