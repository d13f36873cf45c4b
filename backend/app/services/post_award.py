"""
TenderDesk - Post-Award Process Tracker

A second, independent stage model for won tenders. Each PostAwardStage
carries its own status, notes, documents and stage-scoped history; the
bid workflow stage is not touched here.

Document URLs are stored exactly as supplied: there is no upload step,
so browser blob URLs stop resolving after a reload.
"""

import uuid
from typing import Any, Dict, Optional
from loguru import logger

from app.core.exceptions import NotFoundError, ValidationError
from app.models.tender import TenderStatus, PostAwardStage, ProcessStageStatus, TenderDocumentType
from app.services.history import clone, utc_now_iso

PROCESS_STAGES = [stage.value for stage in PostAwardStage]
STAGE_STATUSES = [status.value for status in ProcessStageStatus]


def _empty_stage() -> Dict[str, Any]:
    return {
        "status": ProcessStageStatus.PENDING.value,
        "notes": "",
        "documents": [],
        "history": [],
    }


def _require_won(tender) -> None:
    if tender.status != TenderStatus.WON.value:
        raise ValidationError(
            "Post-award tracking is only available for won tenders",
            f"tender {tender.id} is {tender.status}",
        )


def _require_stage(stage: str) -> None:
    if stage not in PROCESS_STAGES:
        raise ValidationError(f"Unknown post-award stage: {stage!r}")


def get_process(tender) -> Dict[str, Dict[str, Any]]:
    """Full process map with every stage present, in stage order (not persisted)"""
    _require_won(tender)
    stored = tender.post_award_process or {}
    return {stage: clone(stored.get(stage), _empty_stage()) for stage in PROCESS_STAGES}


def _update_stage(tender, actor, stage: str, action: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    _require_stage(stage)
    process = get_process(tender)

    entry = process[stage]
    entry.update(changes)
    entry["updated_at"] = utc_now_iso()
    entry["updated_by_id"] = actor.id
    entry["history"] = entry.get("history", []) + [{
        "user_id": actor.id,
        "user_name": actor.name,
        "timestamp": entry["updated_at"],
        "action": action,
    }]

    tender.post_award_process = process
    logger.info(f"Tender {tender.id} [{stage}]: {action}")
    return entry


def change_stage_status(tender, actor, stage: str, status: str) -> Optional[Dict[str, Any]]:
    """Set a stage status. Returns None when the status is unchanged."""
    if status not in STAGE_STATUSES:
        raise ValidationError(f"Unknown process stage status: {status!r}")
    _require_stage(stage)

    old_status = get_process(tender)[stage]["status"]
    if old_status == status:
        return None
    return _update_stage(
        tender, actor, stage,
        f"Status changed from {old_status} to {status}",
        {"status": status},
    )


def update_stage_notes(tender, actor, stage: str, notes: str) -> Dict[str, Any]:
    return _update_stage(tender, actor, stage, "Updated notes", {"notes": notes or ""})


def add_stage_document(
    tender,
    actor,
    stage: str,
    name: str,
    url: str,
    mime_type: str = "",
    doc_type: str = TenderDocumentType.OTHER.value,
) -> Dict[str, Any]:
    if not name or not url:
        raise ValidationError("Document name and url are required")
    _require_stage(stage)

    document = {
        "id": f"doc{uuid.uuid4().hex[:12]}",
        "name": name,
        "url": url,
        "type": doc_type,
        "mime_type": mime_type,
        "uploaded_at": utc_now_iso(),
        "uploaded_by_id": actor.id,
    }
    documents = get_process(tender)[stage]["documents"] + [document]
    _update_stage(tender, actor, stage, f"Uploaded document: {name}", {"documents": documents})
    return document


def remove_stage_document(tender, actor, stage: str, document_id: str) -> Dict[str, Any]:
    _require_stage(stage)
    documents = get_process(tender)[stage]["documents"]
    removed = next((d for d in documents if d.get("id") == document_id), None)
    if removed is None:
        raise NotFoundError(f"Document not found in {stage}: {document_id}")

    remaining = [d for d in documents if d.get("id") != document_id]
    _update_stage(tender, actor, stage, f"Removed document: {removed.get('name')}", {"documents": remaining})
    return removed
