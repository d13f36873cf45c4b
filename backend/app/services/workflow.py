"""
TenderDesk - Bid Workflow Stage Tracker

Stages move one position at a time through the fixed BidWorkflowStage
order. Moving past either end is a no-op. Advancing is never gated on
checklist completion.
"""

from typing import List, Optional
from loguru import logger

from app.core.exceptions import ValidationError
from app.models.tender import BidWorkflowStage
from app.services.history import append_history

STAGE_ORDER: List[str] = [stage.value for stage in BidWorkflowStage]


def stage_index(stage: Optional[str]) -> int:
    """Index of `stage` in the workflow order, or -1 when unknown"""
    try:
        return STAGE_ORDER.index(stage)
    except ValueError:
        return -1


def _require_index(stage: str) -> int:
    idx = stage_index(stage)
    if idx == -1:
        raise ValidationError(f"Unknown workflow stage: {stage!r}")
    return idx


def next_stage(stage: str) -> str:
    idx = _require_index(stage)
    return STAGE_ORDER[min(idx + 1, len(STAGE_ORDER) - 1)]


def previous_stage(stage: str) -> str:
    idx = _require_index(stage)
    return STAGE_ORDER[max(idx - 1, 0)]


def _move(tender, actor, target: str, action: str) -> bool:
    current = tender.workflow_stage
    if target == current:
        logger.debug(f"Tender {tender.id}: already at boundary stage '{current}'")
        return False

    tender.workflow_stage = target
    append_history(tender, actor, action, f"from {current} to {target}")
    logger.info(f"Tender {tender.id}: {action.lower()} '{current}' -> '{target}'")
    return True


def advance_stage(tender, actor) -> bool:
    """Move the tender one stage forward. Returns False at the last stage."""
    return _move(tender, actor, next_stage(tender.workflow_stage), "Advanced Workflow Stage")


def revert_stage(tender, actor) -> bool:
    """Move the tender one stage back. Returns False at the first stage."""
    return _move(tender, actor, previous_stage(tender.workflow_stage), "Reverted Workflow Stage")
