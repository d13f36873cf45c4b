"""
TenderDesk - Tender Routes
Tender CRUD, import, assignment, workflow, checklists, post-award process,
documents, the bid packet and the AI endpoints
"""

import uuid
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict
from loguru import logger

from app.core.config import settings
from app.core.database import get_db
from app.core.auth import get_current_user, require_admin, require_editor
from app.core.exceptions import NotFoundError, ValidationError, VersionConflictError
from app.models import (
    Tender,
    Client,
    User,
    Product,
    TenderStatus,
    BidWorkflowStage,
    ClientStatus,
    ProcessStageStatus,
    ReasonForLoss,
    TenderDocumentType,
    AssignmentStatus,
)
from app.api.serializers import _tender_to_dict, _client_to_dict, _rows
from app.services.ai_pipeline import AIService, get_ai_service
from app.services.bid_packet import consolidate_bid_packet
from app.services.assignments import reassign, respond_to_assignment
from app.services.checklists import (
    get_checklist,
    resolve_stage,
    load_standard_checklist,
    apply_generated_checklist,
    add_checklist_item,
    toggle_checklist_item,
    remove_checklist_item,
)
from app.services.formatting import local_to_utc_iso
from app.services.history import append_history, history_entry, utc_now_iso
from app.services import post_award
from app.services.workflow import advance_stage, revert_stage

router = APIRouter()

DATE_FIELDS = ("deadline", "opening_date")

# NOT NULL columns a whole-object update may not clear
REQUIRED_TENDER_FIELDS = ("title", "status", "department")


# ============================
# PYDANTIC MODELS
# ============================

class TenderFields(BaseModel):
    """Editable tender fields. Unknown keys (id, history, timestamps) are ignored."""
    model_config = ConfigDict(extra="ignore")

    tender_number: Optional[str] = None
    jurisdiction: Optional[str] = None
    department: Optional[str] = None
    status: Optional[TenderStatus] = None
    workflow_stage: Optional[BidWorkflowStage] = None
    deadline: Optional[str] = None
    opening_date: Optional[str] = None
    value: Optional[float] = None
    cost: Optional[float] = None
    description: Optional[str] = None
    source: Optional[str] = None
    total_quantity: Optional[float] = None
    item_category: Optional[str] = None
    min_avg_turnover: Optional[str] = None
    oem_avg_turnover: Optional[str] = None
    past_experience_years: Optional[float] = None
    past_performance: Optional[str] = None
    emd_amount: Optional[float] = None
    epbg_percentage: Optional[float] = None
    epbg_duration: Optional[int] = None
    is_bid_to_ra_enabled: Optional[bool] = None
    bid_type: Optional[str] = None
    documents_required: Optional[str] = None
    mse_exemption: Optional[bool] = None
    startup_exemption: Optional[bool] = None
    oem_id: Optional[str] = None
    product_id: Optional[str] = None
    assigned_to: Optional[List[str]] = None
    tender_fee: Optional[Dict[str, Any]] = None
    emd: Optional[Dict[str, Any]] = None
    pbg: Optional[Dict[str, Any]] = None
    emds: Optional[List[Dict[str, Any]]] = None
    pbgs: Optional[List[Dict[str, Any]]] = None
    checklists: Optional[Dict[str, List[Dict[str, Any]]]] = None
    documents: Optional[List[Dict[str, Any]]] = None
    pre_bid_meeting_notes: Optional[str] = None
    negotiation_details: Optional[Dict[str, Any]] = None
    competitors: Optional[List[Dict[str, Any]]] = None
    contract_status: Optional[str] = None
    payment_status: Optional[str] = None
    reason_for_loss: Optional[ReasonForLoss] = None
    reason_for_loss_notes: Optional[str] = None


class TenderCreateRequest(TenderFields):
    title: str
    client_id: Optional[str] = None


class TenderUpdateRequest(TenderFields):
    title: Optional[str] = None
    client_id: Optional[str] = None
    version: Optional[int] = None


class TenderImportRequest(TenderFields):
    """Fields as returned by /api/ai/extract, plus the uploaded notice"""
    title: Optional[str] = None
    client_name: Optional[str] = None
    documents_required: Optional[Any] = None
    document_name: Optional[str] = None
    document_url: Optional[str] = None
    document_mime_type: Optional[str] = None


class AssignmentResponseRequest(BaseModel):
    status: AssignmentStatus
    notes: Optional[str] = None


class AssigneesRequest(BaseModel):
    user_ids: List[str]


class ChecklistStageRequest(BaseModel):
    stage: Optional[BidWorkflowStage] = None


class ChecklistItemRequest(BaseModel):
    text: str
    stage: Optional[BidWorkflowStage] = None


class ProcessStageUpdateRequest(BaseModel):
    status: Optional[ProcessStageStatus] = None
    notes: Optional[str] = None


class DocumentRequest(BaseModel):
    name: str
    url: str
    type: TenderDocumentType = TenderDocumentType.OTHER
    mime_type: Optional[str] = ""


class EligibilityRequest(BaseModel):
    tender_text: Optional[str] = None


# ============================
# HELPERS
# ============================

def _get_tender_or_404(db: Session, tender_id: str) -> Tender:
    tender = db.query(Tender).filter(Tender.id == tender_id).first()
    if not tender:
        raise HTTPException(status_code=404, detail="Tender not found")
    return tender


def _get_client(db: Session, client_id: Optional[str]) -> Client:
    if not client_id:
        raise ValidationError("Client ID is required.")
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError(f"Client not found for ID: {client_id}")
    return client


def _save_tender(db: Session, tender: Tender) -> dict:
    """Persist the whole tender and bump its version token"""
    tender.version = (tender.version or 0) + 1
    db.commit()
    db.refresh(tender)
    return _tender_to_dict(tender)


def _user_names(db: Session) -> Dict[str, str]:
    return {uid: name for uid, name in db.query(User.id, User.name).all()}


def _assignee_names(db: Session, user_ids: List[str]) -> Dict[str, str]:
    """Names of all users; rejects assignee ids that match no user"""
    names = _user_names(db)
    unknown = [uid for uid in user_ids if uid not in names]
    if unknown:
        raise ValidationError(f"Unknown user id(s): {', '.join(unknown)}")
    return names


def _normalize_dates(fields: Dict[str, Any]) -> None:
    """Rewrite deadline / opening_date as UTC ISO; naive values are the notice's local time"""
    for key in DATE_FIELDS:
        if not fields.get(key):
            continue
        normalized = local_to_utc_iso(fields[key], settings.DOCUMENT_UTC_OFFSET_MINUTES)
        if normalized is None:
            label = key.replace("_", " ")
            raise ValidationError(f"Unrecognised {label} {fields[key]!r}. Use YYYY-MM-DD or DD-MM-YYYY.")
        fields[key] = normalized


def _require_lost_reason(status: Optional[str], reason: Optional[str]) -> None:
    if status == TenderStatus.LOST.value and not reason:
        raise ValidationError("A reason for loss is required when marking a tender as Lost")


def _new_tender(db: Session, user: User, client: Client, fields: Dict[str, Any]) -> Tender:
    assigned_to = list(dict.fromkeys(fields.pop("assigned_to", None) or []))
    _assignee_names(db, assigned_to)
    _normalize_dates(fields)
    _require_lost_reason(fields.get("status"), fields.get("reason_for_loss"))

    tender = Tender(
        **fields,
        client_id=client.id,
        client_name=client.name,
        assigned_to=assigned_to,
        assignment_responses={uid: {"status": AssignmentStatus.PENDING.value} for uid in assigned_to},
        history=[history_entry(user, "Created Tender")],
        version=1,
    )
    tender.status = tender.status or TenderStatus.DRAFTING.value
    tender.workflow_stage = tender.workflow_stage or BidWorkflowStage.IDENTIFICATION.value
    tender.department = tender.department or ""
    tender.value = tender.value or 0
    db.add(tender)
    return tender


# ============================
# HEALTH CHECK
# ============================

@router.get("/health")
def health_check():
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ============================
# TENDER CRUD
# ============================

@router.get("/api/tenders")
def list_tenders(
    status: Optional[TenderStatus] = None,
    assigned_to: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """All tenders, newest first"""
    query = db.query(Tender)
    if status:
        query = query.filter(Tender.status == status.value)
    tenders = _rows(query.order_by(Tender.created_at.desc()).all(), _tender_to_dict)
    if assigned_to:
        tenders = [t for t in tenders if assigned_to in t["assigned_to"]]
    return tenders


@router.post("/api/tenders", status_code=201)
def create_tender(
    request: TenderCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    fields = request.model_dump(exclude_unset=True, mode="json")
    client = _get_client(db, fields.pop("client_id", None))

    tender = _new_tender(db, user, client, fields)
    db.commit()
    db.refresh(tender)
    logger.info(f"{user.username} created tender {tender.id} for {client.name}")
    return _tender_to_dict(tender)


@router.get("/api/tenders/{tender_id}")
def get_tender(tender_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _tender_to_dict(_get_tender_or_404(db, tender_id))


@router.put("/api/tenders/{tender_id}")
def update_tender(
    tender_id: str,
    request: TenderUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    """
    Whole-object update.

    When `version` is sent it must match the stored token (409 otherwise).
    Status changes are logged; assignee changes go through reassignment.
    The workflow stage only moves through the advance/revert endpoints.
    Title, status and department may be changed but not cleared.
    """
    tender = _get_tender_or_404(db, tender_id)
    changes = request.model_dump(exclude_unset=True, mode="json")

    version = changes.pop("version", None)
    if version is not None and version != tender.version:
        raise VersionConflictError(
            "This tender was changed by someone else. Reload and try again.",
            f"sent version {version}, current version {tender.version}",
        )

    blank = [field for field in REQUIRED_TENDER_FIELDS if field in changes and changes[field] is None]
    if blank:
        raise ValidationError(f"Tender {', '.join(blank)} cannot be empty")

    stage = changes.pop("workflow_stage", None)
    if stage is not None and stage != tender.workflow_stage:
        raise ValidationError("Use the workflow advance/revert actions to change the stage")

    new_status = changes.get("status")
    _require_lost_reason(new_status, changes.get("reason_for_loss", tender.reason_for_loss))

    _normalize_dates(changes)

    if "client_id" in changes:
        client = _get_client(db, changes.pop("client_id"))
        tender.client_id, tender.client_name = client.id, client.name

    if "assigned_to" in changes:
        user_ids = changes.pop("assigned_to") or []
        reassign(tender, user, user_ids, _assignee_names(db, user_ids))

    old_status = tender.status
    for field, value in changes.items():
        setattr(tender, field, value)

    if new_status and new_status != old_status:
        append_history(tender, user, "Changed Tender Status", f"from {old_status} to {new_status}")
        logger.info(f"Tender {tender.id}: status {old_status} -> {new_status}")

    return _save_tender(db, tender)


@router.delete("/api/tenders/{tender_id}")
def delete_tender(tender_id: str, db: Session = Depends(get_db), user: User = Depends(require_admin)):
    tender = _get_tender_or_404(db, tender_id)
    db.delete(tender)
    db.commit()
    logger.info(f"{user.username} deleted tender {tender_id}")
    return {"message": "Tender removed"}


@router.post("/api/tenders/import", status_code=201)
def import_tender(
    request: TenderImportRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    """
    Create a tender from AI-extracted fields.

    The client is matched by name (case-insensitive) or created as a Lead.
    Naive dates are read as the notice's local time.
    """
    fields = request.model_dump(exclude_unset=True, mode="json")
    client_name = (fields.pop("client_name", None) or "").strip()
    if not client_name:
        raise ValidationError("A client name is required to import a tender.")
    _normalize_dates(fields)

    client = db.query(Client).filter(func.lower(Client.name) == client_name.lower()).first()
    if client is None:
        client = Client(
            name=client_name,
            industry=fields.get("department") or "Imported",
            gstin="",
            category="Imported",
            status=ClientStatus.LEAD.value,
            revenue=0,
            joined_date=utc_now_iso(),
            contacts=[],
            interactions=[],
            history=[history_entry(user, "Created Client", "Auto-created from tender import.")],
        )
        db.add(client)
        db.flush()
        logger.info(f"Import created lead client {client.id} ({client_name})")

    document = None
    if fields.get("document_url"):
        document = {
            "id": f"doc{uuid.uuid4().hex[:12]}",
            "name": fields.get("document_name") or "Tender Notice",
            "url": fields["document_url"],
            "type": TenderDocumentType.TENDER_NOTICE.value,
            "mime_type": fields.get("document_mime_type") or "",
            "uploaded_at": utc_now_iso(),
            "uploaded_by_id": user.id,
        }
    for key in ("document_name", "document_url", "document_mime_type"):
        fields.pop(key, None)

    required = fields.get("documents_required")
    if isinstance(required, list):
        fields["documents_required"] = "\n".join(str(d) for d in required)

    if not fields.get("deadline"):
        fields["deadline"] = utc_now_iso()
    fields["title"] = fields.get("title") or f"Tender from {client_name}"
    fields["documents"] = [document] if document else []

    tender = _new_tender(db, user, client, fields)
    db.commit()
    db.refresh(tender)
    logger.info(f"{user.username} imported tender {tender.id} ({tender.tender_number or 'no bid number'})")
    return {"tender": _tender_to_dict(tender), "client": _client_to_dict(client)}


# ============================
# ASSIGNMENT
# ============================

@router.post("/api/tenders/{tender_id}/respond")
def respond(
    tender_id: str,
    request: AssignmentResponseRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tender = _get_tender_or_404(db, tender_id)
    respond_to_assignment(tender, user, request.status.value, request.notes)
    return _save_tender(db, tender)


@router.put("/api/tenders/{tender_id}/assignees")
def update_assignees(
    tender_id: str,
    request: AssigneesRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    names = _assignee_names(db, request.user_ids)
    if not reassign(tender, user, request.user_ids, names):
        return _tender_to_dict(tender)
    return _save_tender(db, tender)


# ============================
# WORKFLOW
# ============================

@router.post("/api/tenders/{tender_id}/workflow/advance")
def workflow_advance(tender_id: str, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    tender = _get_tender_or_404(db, tender_id)
    if not advance_stage(tender, user):
        return _tender_to_dict(tender)
    return _save_tender(db, tender)


@router.post("/api/tenders/{tender_id}/workflow/revert")
def workflow_revert(tender_id: str, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    tender = _get_tender_or_404(db, tender_id)
    if not revert_stage(tender, user):
        return _tender_to_dict(tender)
    return _save_tender(db, tender)


# ============================
# CHECKLISTS
# ============================

def _stage_value(stage: Optional[BidWorkflowStage]) -> Optional[str]:
    return stage.value if stage else None


@router.get("/api/tenders/{tender_id}/checklists")
@router.get("/api/tenders/{tender_id}/checklists/{stage:path}")
def read_checklist(
    tender_id: str,
    stage: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    tender = _get_tender_or_404(db, tender_id)
    stage = resolve_stage(tender, stage)
    return {"stage": stage, "items": get_checklist(tender, stage)}


@router.post("/api/tenders/{tender_id}/checklists/standard")
def checklist_standard(
    tender_id: str,
    request: ChecklistStageRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    load_standard_checklist(tender, user, _stage_value(request.stage))
    return _save_tender(db, tender)


@router.post("/api/tenders/{tender_id}/checklists/generate")
def checklist_generate(
    tender_id: str,
    request: ChecklistStageRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
    ai: AIService = Depends(get_ai_service),
):
    """AI checklist for a stage. An unavailable AI stores an empty list."""
    tender = _get_tender_or_404(db, tender_id)
    stage = resolve_stage(tender, _stage_value(request.stage))
    texts = ai.generate_stage_checklist(tender.description or tender.title, stage)
    apply_generated_checklist(tender, user, texts, stage)
    return _save_tender(db, tender)


@router.post("/api/tenders/{tender_id}/checklists/items")
def checklist_add_item(
    tender_id: str,
    request: ChecklistItemRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    add_checklist_item(tender, user, request.text, _stage_value(request.stage))
    return _save_tender(db, tender)


@router.post("/api/tenders/{tender_id}/checklists/items/{item_id}/toggle")
def checklist_toggle_item(
    tender_id: str,
    item_id: str,
    stage: Optional[BidWorkflowStage] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    toggle_checklist_item(tender, user, item_id, _stage_value(stage))
    return _save_tender(db, tender)


@router.delete("/api/tenders/{tender_id}/checklists/items/{item_id}")
def checklist_delete_item(
    tender_id: str,
    item_id: str,
    stage: Optional[BidWorkflowStage] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    remove_checklist_item(tender, user, item_id, _stage_value(stage))
    return _save_tender(db, tender)


# ============================
# POST-AWARD PROCESS
# ============================

@router.get("/api/tenders/{tender_id}/process")
def read_process(tender_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return post_award.get_process(_get_tender_or_404(db, tender_id))


@router.put("/api/tenders/{tender_id}/process/{stage:path}")
def update_process_stage(
    tender_id: str,
    stage: str,
    request: ProcessStageUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    changed = False
    if request.status is not None:
        changed = post_award.change_stage_status(tender, user, stage, request.status.value) is not None
    if request.notes is not None:
        post_award.update_stage_notes(tender, user, stage, request.notes)
        changed = True

    if changed:
        _save_tender(db, tender)
    return post_award.get_process(tender)


@router.post("/api/tenders/{tender_id}/process/{stage:path}/documents", status_code=201)
def add_process_document(
    tender_id: str,
    stage: str,
    request: DocumentRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    document = post_award.add_stage_document(
        tender, user, stage, request.name, request.url, request.mime_type or "", request.type.value,
    )
    _save_tender(db, tender)
    return document


@router.delete("/api/tenders/{tender_id}/process/{stage:path}/documents/{document_id}")
def delete_process_document(
    tender_id: str,
    stage: str,
    document_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    post_award.remove_stage_document(tender, user, stage, document_id)
    _save_tender(db, tender)
    return post_award.get_process(tender)


# ============================
# TENDER DOCUMENTS
# ============================

@router.post("/api/tenders/{tender_id}/documents", status_code=201)
def add_tender_document(
    tender_id: str,
    request: DocumentRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    tender = _get_tender_or_404(db, tender_id)
    document = {
        "id": f"doc{uuid.uuid4().hex[:12]}",
        "name": request.name,
        "url": request.url,
        "type": request.type.value,
        "mime_type": request.mime_type or "",
        "uploaded_at": utc_now_iso(),
        "uploaded_by_id": user.id,
    }
    tender.documents = [*(tender.documents or []), document]
    append_history(tender, user, f"Uploaded {request.type.value}", request.name)
    _save_tender(db, tender)
    return document


@router.get("/api/tenders/{tender_id}/bid-packet")
def get_bid_packet(tender_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    """Tender documents merged with the linked product's, tender copies first"""
    tender = _get_tender_or_404(db, tender_id)
    product = None
    if tender.product_id:
        product = db.query(Product).filter(Product.id == tender.product_id).first()
        if product is None:
            logger.warning(f"Tender {tender.id} links missing product {tender.product_id}")

    return {
        "tender_id": tender.id,
        "title": tender.title,
        "product_id": product.id if product else None,
        "product_name": product.name if product else None,
        "documents": consolidate_bid_packet(tender.documents, product.documents if product else None),
    }


# ============================
# AI ENDPOINTS
# ============================

@router.post("/api/ai/extract")
async def ai_extract(
    file: UploadFile = File(...),
    _: User = Depends(require_editor),
    ai: AIService = Depends(get_ai_service),
):
    """Extract tender fields from an uploaded notice (image or PDF)"""
    content = await file.read()
    if not content:
        raise ValidationError("The uploaded file is empty")
    return ai.extract_tender_details(content, file.content_type or "")


@router.post("/api/ai/tenders/{tender_id}/analyze")
def ai_analyze(
    tender_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    tender = _get_tender_or_404(db, tender_id)
    return ai.analyze_tender(tender.description or tender.title)


def _eligibility_text(tender: Tender) -> str:
    parts = [
        f"Title: {tender.title}",
        f"Description: {tender.description or ''}",
        f"Minimum Average Annual Turnover: {tender.min_avg_turnover or 'Not specified'}",
        f"OEM Average Turnover: {tender.oem_avg_turnover or 'Not specified'}",
        f"Years of Past Experience Required: {tender.past_experience_years or 'Not specified'}",
        f"Past Performance: {tender.past_performance or 'Not specified'}",
        f"EMD Amount: {tender.emd_amount or 'Not specified'}",
        f"Documents Required: {tender.documents_required or 'Not specified'}",
    ]
    return "\n".join(parts)


@router.post("/api/ai/tenders/{tender_id}/eligibility")
def ai_eligibility(
    tender_id: str,
    request: Optional[EligibilityRequest] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    tender = _get_tender_or_404(db, tender_id)
    text = (request.tender_text if request else None) or _eligibility_text(tender)
    return ai.check_eligibility(text)


@router.post("/api/ai/clients/{client_id}/summary")
def ai_client_summary(
    client_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    client = _get_client(db, client_id)
    tenders = db.query(Tender).filter(Tender.client_id == client.id).all()
    return ai.summarize_client_activity(_client_to_dict(client), _rows(tenders, _tender_to_dict))
