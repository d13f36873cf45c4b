"""
TenderDesk - Admin Routes
Departments, designations and bidding templates
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel

from app.core.database import get_db
from app.core.auth import get_current_user, require_admin
from app.models import Department, Designation, BiddingTemplate, Tender, Client, User
from app.api.serializers import _row_to_dict, _rows, _tender_to_dict, _client_to_dict, _user_to_dict
from app.services.templates import render_template

admin_router = APIRouter(prefix="/api/admin", tags=["Admin"])


class NameRequest(BaseModel):
    name: str


class TemplateRequest(BaseModel):
    name: str
    content: str = ""


def _get_or_404(db: Session, model, row_id: str, label: str):
    row = db.query(model).filter(model.id == row_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def _add_named(db: Session, model, name: str) -> dict:
    if not name.strip():
        raise HTTPException(status_code=400, detail="Name is required")
    row = model(name=name.strip())
    db.add(row)
    db.commit()
    db.refresh(row)
    return _row_to_dict(row)


def _delete(db: Session, model, row_id: str, label: str) -> dict:
    db.delete(_get_or_404(db, model, row_id, label))
    db.commit()
    return {"message": f"{label} removed"}


# ============================
# DEPARTMENTS / DESIGNATIONS
# ============================

@admin_router.get("/departments")
def list_departments(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _rows(db.query(Department).order_by(Department.name).all())


@admin_router.post("/departments", status_code=201)
def add_department(request: NameRequest, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return _add_named(db, Department, request.name)


@admin_router.delete("/departments/{department_id}")
def delete_department(department_id: str, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return _delete(db, Department, department_id, "Department")


@admin_router.get("/designations")
def list_designations(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _rows(db.query(Designation).order_by(Designation.name).all())


@admin_router.post("/designations", status_code=201)
def add_designation(request: NameRequest, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return _add_named(db, Designation, request.name)


@admin_router.delete("/designations/{designation_id}")
def delete_designation(designation_id: str, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return _delete(db, Designation, designation_id, "Designation")


# ============================
# BIDDING TEMPLATES
# ============================

@admin_router.get("/templates")
def list_templates(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _rows(db.query(BiddingTemplate).order_by(BiddingTemplate.name).all())


@admin_router.post("/templates", status_code=201)
def add_template(request: TemplateRequest, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    template = BiddingTemplate(name=request.name, content=request.content)
    db.add(template)
    db.commit()
    db.refresh(template)
    return _row_to_dict(template)


@admin_router.put("/templates/{template_id}")
def update_template(
    template_id: str,
    request: TemplateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    template = _get_or_404(db, BiddingTemplate, template_id, "Template")
    template.name = request.name
    template.content = request.content
    db.commit()
    db.refresh(template)
    return _row_to_dict(template)


@admin_router.delete("/templates/{template_id}")
def delete_template(template_id: str, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return _delete(db, BiddingTemplate, template_id, "Template")


@admin_router.post("/templates/{template_id}/render/{tender_id}")
def render_bidding_template(
    template_id: str,
    tender_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Fill a template for one tender, its client and the calling user"""
    template = _get_or_404(db, BiddingTemplate, template_id, "Template")
    tender = _get_or_404(db, Tender, tender_id, "Tender")
    client = db.query(Client).filter(Client.id == tender.client_id).first()

    content = render_template(
        template.content,
        _tender_to_dict(tender),
        _client_to_dict(client) if client else None,
        _user_to_dict(user),
    )
    return {"template_id": template.id, "tender_id": tender.id, "content": content}
