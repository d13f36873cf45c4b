"""
Unit Tests for the Post-Award Process Tracker
"""

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.services import post_award

STAGE = "LOI/PO Acknowledgement"


@pytest.fixture
def won_tender(tender):
    tender.status = "Won"
    return tender


def test_process_requires_won_tender(tender):
    with pytest.raises(ValidationError):
        post_award.get_process(tender)


def test_every_stage_starts_pending(won_tender):
    process = post_award.get_process(won_tender)
    assert list(process) == post_award.PROCESS_STAGES
    assert len(process) == 10
    assert all(stage["status"] == "Pending" for stage in process.values())
    # Reading never persists
    assert won_tender.post_award_process == {}


def test_status_change_records_stage_history(won_tender, actor):
    entry = post_award.change_stage_status(won_tender, actor, STAGE, "In Progress")

    assert entry["status"] == "In Progress"
    assert entry["updated_by_id"] == actor.id
    assert entry["history"][-1]["action"] == "Status changed from Pending to In Progress"
    assert won_tender.post_award_process[STAGE]["status"] == "In Progress"


def test_same_status_is_a_noop(won_tender, actor):
    assert post_award.change_stage_status(won_tender, actor, STAGE, "Pending") is None
    assert won_tender.post_award_process == {}


def test_workflow_stage_is_not_touched(won_tender, actor):
    post_award.change_stage_status(won_tender, actor, STAGE, "Completed")
    assert won_tender.workflow_stage == "Tender Identification"


def test_unknown_stage_or_status_is_rejected(won_tender, actor):
    with pytest.raises(ValidationError):
        post_award.change_stage_status(won_tender, actor, "Party", "Completed")
    with pytest.raises(ValidationError):
        post_award.change_stage_status(won_tender, actor, STAGE, "Done")


def test_documents_are_added_and_removed(won_tender, actor):
    document = post_award.add_stage_document(
        won_tender, actor, "PBG Submission", "pbg.pdf", "blob:abc", "application/pdf", "PBG Document",
    )
    stage = post_award.get_process(won_tender)["PBG Submission"]
    assert stage["documents"] == [document]
    assert stage["history"][-1]["action"] == "Uploaded document: pbg.pdf"

    post_award.remove_stage_document(won_tender, actor, "PBG Submission", document["id"])
    assert post_award.get_process(won_tender)["PBG Submission"]["documents"] == []


def test_removing_unknown_document_raises(won_tender, actor):
    with pytest.raises(NotFoundError):
        post_award.remove_stage_document(won_tender, actor, STAGE, "nope")
