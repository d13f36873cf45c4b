"""
TenderDesk - Stage Checklists

Per tender, per workflow stage: an ordered list of {id, text, completed}.
Lists come from the standard table below or from the AI generator; the
stage defaults to the tender's current workflow stage.
"""

import uuid
from typing import Dict, List, Optional
from loguru import logger

from app.core.exceptions import NotFoundError, ValidationError
from app.models.tender import BidWorkflowStage
from app.services.history import append_history, clone
from app.services.workflow import stage_index

S = BidWorkflowStage

STANDARD_WORKFLOW_CHECKLISTS: Dict[str, List[str]] = {
    S.IDENTIFICATION.value: [
        "Download tender notice and all corrigenda",
        "Record bid number, jurisdiction and deadlines",
        "Identify client organisation and department",
    ],
    S.REVIEW.value: [
        "Check minimum average turnover requirement",
        "Check past experience and past performance criteria",
        "Confirm OEM authorization is obtainable",
        "Go / no-go decision recorded",
    ],
    S.PREPARATION.value: [
        "Prepare technical compliance sheet",
        "Collect OEM authorization certificate",
        "Prepare commercial bid and costing",
        "Raise EMD request with finance",
        "Collect turnover and experience documents",
    ],
    S.PRE_BID_MEETING.value: [
        "Submit pre-bid queries before cut-off",
        "Attend pre-bid meeting",
        "Record clarifications and corrigenda",
    ],
    S.SUBMISSION.value: [
        "Upload technical bid",
        "Upload commercial bid",
        "Attach EMD proof",
        "Download bid submission acknowledgement",
    ],
    S.UNDER_TECHNICAL_EVALUATION.value: [
        "Track technical evaluation status on portal",
        "Respond to technical clarifications",
    ],
    S.UNDER_FINANCIAL_EVALUATION.value: [
        "Track financial bid opening",
        "Record L1/L2 positions of competitors",
    ],
    S.NEGOTIATION.value: [
        "Prepare counter offer with margin floor",
        "Record reverse auction participation",
    ],
    S.LOI_PO.value: [
        "Receive LOI / purchase order",
        "Acknowledge order to client",
        "Raise PBG request with finance",
    ],
    S.DELIVERY.value: [
        "Dispatch material",
        "Collect signed delivery challan",
    ],
    S.INSTALLATION.value: [
        "Complete installation",
        "Obtain installation certificate",
    ],
    S.PAYMENT.value: [
        "Submit invoice",
        "Follow up payment release",
        "Request EMD refund",
    ],
}


def _new_item(text: str) -> dict:
    return {"id": f"chk-{uuid.uuid4().hex[:10]}", "text": text, "completed": False}


def resolve_stage(tender, stage: Optional[str]) -> str:
    stage = stage or tender.workflow_stage
    if stage_index(stage) == -1:
        raise ValidationError(f"Unknown workflow stage: {stage!r}")
    return stage


def get_checklist(tender, stage: Optional[str] = None) -> List[dict]:
    stage = resolve_stage(tender, stage)
    return list((tender.checklists or {}).get(stage, []))


def _set_checklist(tender, stage: str, items: List[dict]) -> None:
    checklists = clone(tender.checklists, {})
    checklists[stage] = items
    tender.checklists = checklists


def load_standard_checklist(tender, actor, stage: Optional[str] = None) -> List[dict]:
    """Replace the stage checklist with the standard items (no-op if none exist)"""
    stage = resolve_stage(tender, stage)
    standard = STANDARD_WORKFLOW_CHECKLISTS.get(stage)
    if not standard:
        return get_checklist(tender, stage)

    items = [_new_item(text) for text in standard]
    _set_checklist(tender, stage, items)
    append_history(tender, actor, f"Loaded Standard Checklist for {stage}", f"Loaded {len(items)} items.")
    return items


def apply_generated_checklist(tender, actor, texts: List[str], stage: Optional[str] = None) -> List[dict]:
    """Store AI-generated checklist texts for a stage (an empty list is stored as-is)"""
    stage = resolve_stage(tender, stage)
    items = [_new_item(text) for text in texts]
    _set_checklist(tender, stage, items)
    append_history(tender, actor, f"Generated AI Checklist for {stage}", f"Generated {len(items)} items.")
    return items


def add_checklist_item(tender, actor, text: str, stage: Optional[str] = None) -> dict:
    stage = resolve_stage(tender, stage)
    text = (text or "").strip()
    if not text:
        raise ValidationError("Checklist item text is required")

    item = _new_item(text)
    _set_checklist(tender, stage, get_checklist(tender, stage) + [item])
    append_history(tender, actor, "Added stage task", f'"{text}" to {stage}')
    return item


def _find(items: List[dict], item_id: str) -> dict:
    for item in items:
        if item.get("id") == item_id:
            return item
    raise NotFoundError(f"Checklist item not found: {item_id}")


def toggle_checklist_item(tender, actor, item_id: str, stage: Optional[str] = None) -> dict:
    """Flip one item's completed flag and log it"""
    stage = resolve_stage(tender, stage)
    items = clone(get_checklist(tender, stage), [])
    item = _find(items, item_id)

    was_completed = bool(item.get("completed"))
    item["completed"] = not was_completed
    _set_checklist(tender, stage, items)

    append_history(
        tender,
        actor,
        "Unchecked stage task" if was_completed else "Completed stage task",
        f'"{item.get("text")}" from {stage}',
    )
    logger.debug(f"Tender {tender.id}: checklist item {item_id} -> completed={item['completed']}")
    return item


def remove_checklist_item(tender, actor, item_id: str, stage: Optional[str] = None) -> dict:
    stage = resolve_stage(tender, stage)
    items = get_checklist(tender, stage)
    removed = _find(items, item_id)
    _set_checklist(tender, stage, [i for i in items if i.get("id") != item_id])
    append_history(tender, actor, "Removed stage task", f'"{removed.get("text")}" from {stage}')
    return removed
