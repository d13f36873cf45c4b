"""
TenderDesk - CRM and Catalog Routes
Clients (contacts, interactions, health), OEMs and products
"""

import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Any
from loguru import logger

from app.core.database import get_db
from app.core.auth import get_current_user, require_admin, require_editor
from app.models import (
    Client,
    ClientStatus,
    ClientAcquisitionSource,
    InteractionType,
    Tender,
    Oem,
    Product,
    User,
)
from app.api.serializers import _client_to_dict, _tender_to_dict, _row_to_dict, _rows
from app.services.analytics import calculate_client_health
from app.services.history import append_history, clone, history_entry, utc_now_iso

crm_router = APIRouter(prefix="/api", tags=["CRM"])


# ============================
# PYDANTIC SCHEMAS
# ============================

class ClientFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    industry: Optional[str] = None
    gstin: Optional[str] = None
    revenue: Optional[float] = None
    status: Optional[ClientStatus] = None
    category: Optional[str] = None
    source: Optional[ClientAcquisitionSource] = None
    notes: Optional[str] = None
    potential_value: Optional[float] = None


class ClientCreateRequest(ClientFields):
    name: str


class ClientUpdateRequest(ClientFields):
    name: Optional[str] = None


class ContactRequest(BaseModel):
    name: str
    role: Optional[str] = ""
    email: Optional[str] = ""
    phone: Optional[str] = ""
    is_primary: bool = False


class InteractionRequest(BaseModel):
    type: InteractionType
    notes: str


class OemRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    contact_person: str
    email: str
    phone: str
    website: Optional[str] = None
    area: Optional[str] = None
    region: Optional[str] = None
    account_manager: Optional[str] = None
    account_manager_status: Optional[str] = None


class ProductRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    documents: List[Dict[str, Any]] = []


# ============================
# HELPERS
# ============================

def _get_client_or_404(db: Session, client_id: str) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


def _save_client(db: Session, client: Client) -> dict:
    db.commit()
    db.refresh(client)
    return _client_to_dict(client)


def _store_contacts(client: Client, contacts: List[dict], primary_id: Optional[str] = None) -> None:
    """Reassign contacts; at most one contact stays primary"""
    if primary_id:
        for contact in contacts:
            contact["is_primary"] = contact["id"] == primary_id
    client.contacts = contacts


# ============================
# CLIENTS
# ============================

@crm_router.get("/clients")
def list_clients(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _rows(db.query(Client).order_by(Client.name).all(), _client_to_dict)


@crm_router.post("/clients", status_code=201)
def create_client(
    request: ClientCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    fields = request.model_dump(exclude_unset=True, mode="json")
    fields["revenue"] = fields.get("revenue") or 0
    client = Client(
        **fields,
        joined_date=utc_now_iso(),
        contacts=[],
        interactions=[],
        history=[history_entry(user, "Created Client")],
    )
    client.status = client.status or ClientStatus.LEAD.value
    db.add(client)
    logger.info(f"{user.username} created client {request.name}")
    return _save_client(db, client)


@crm_router.put("/clients/{client_id}")
def update_client(
    client_id: str,
    request: ClientUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    client = _get_client_or_404(db, client_id)
    changes = request.model_dump(exclude_unset=True, mode="json")

    old_status = client.status
    for field, value in changes.items():
        setattr(client, field, value)

    new_status = changes.get("status")
    if new_status and new_status != old_status:
        append_history(client, user, "Changed Client Status", f"from {old_status} to {new_status}")
    elif changes:
        append_history(client, user, "Updated Client", ", ".join(sorted(changes)))

    if "name" in changes:
        # Denormalised copy on tenders
        db.query(Tender).filter(Tender.client_id == client.id).update({"client_name": client.name})
    return _save_client(db, client)


@crm_router.get("/clients/{client_id}/health")
def client_health(client_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    client = _get_client_or_404(db, client_id)
    tenders = _rows(db.query(Tender).filter(Tender.client_id == client.id).all(), _tender_to_dict)
    return {
        "client_id": client.id,
        "health": calculate_client_health(_client_to_dict(client), tenders),
        "won": sum(1 for t in tenders if t["status"] == "Won"),
        "lost": sum(1 for t in tenders if t["status"] == "Lost"),
    }


# ============================
# CONTACTS
# ============================

@crm_router.post("/clients/{client_id}/contacts", status_code=201)
def add_contact(
    client_id: str,
    request: ContactRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    client = _get_client_or_404(db, client_id)
    contacts = clone(client.contacts, [])
    contact = {"id": f"con{uuid.uuid4().hex[:12]}", **request.model_dump()}
    # The first contact of a client is always primary
    if not contacts:
        contact["is_primary"] = True
    contacts.append(contact)

    _store_contacts(client, contacts, contact["id"] if contact["is_primary"] else None)
    append_history(client, user, "Added Contact", contact["name"])
    return _save_client(db, client)


@crm_router.put("/clients/{client_id}/contacts/{contact_id}")
def update_contact(
    client_id: str,
    contact_id: str,
    request: ContactRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    client = _get_client_or_404(db, client_id)
    contacts = clone(client.contacts, [])
    contact = next((c for c in contacts if c.get("id") == contact_id), None)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")

    contact.update(request.model_dump())
    _store_contacts(client, contacts, contact_id if request.is_primary else None)
    append_history(client, user, "Updated Contact", contact["name"])
    return _save_client(db, client)


@crm_router.delete("/clients/{client_id}/contacts/{contact_id}")
def delete_contact(
    client_id: str,
    contact_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    client = _get_client_or_404(db, client_id)
    contacts = clone(client.contacts, [])
    removed = next((c for c in contacts if c.get("id") == contact_id), None)
    if removed is None:
        raise HTTPException(status_code=404, detail="Contact not found")

    remaining = [c for c in contacts if c.get("id") != contact_id]
    if removed.get("is_primary") and remaining:
        remaining[0]["is_primary"] = True
    client.contacts = remaining
    append_history(client, user, "Removed Contact", removed.get("name"))
    return _save_client(db, client)


# ============================
# INTERACTIONS
# ============================

@crm_router.post("/clients/{client_id}/interactions", status_code=201)
def log_interaction(
    client_id: str,
    request: InteractionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    """Interactions are kept newest first"""
    if not request.notes.strip():
        raise HTTPException(status_code=400, detail="Interaction notes are required")

    client = _get_client_or_404(db, client_id)
    interaction = {
        "id": f"int{uuid.uuid4().hex[:12]}",
        "type": request.type.value,
        "notes": request.notes.strip(),
        "user_id": user.id,
        "user": user.name,
        "timestamp": utc_now_iso(),
    }
    client.interactions = [interaction, *(client.interactions or [])]
    append_history(client, user, f"Logged {request.type.value}", interaction["notes"][:120])
    return _save_client(db, client)


# ============================
# OEMS
# ============================

@crm_router.get("/oems")
def list_oems(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _rows(db.query(Oem).order_by(Oem.name).all())


@crm_router.post("/oems", status_code=201)
def create_oem(request: OemRequest, db: Session = Depends(get_db), _: User = Depends(require_editor)):
    oem = Oem(**request.model_dump())
    db.add(oem)
    db.commit()
    db.refresh(oem)
    return _row_to_dict(oem)


@crm_router.put("/oems/{oem_id}")
def update_oem(oem_id: str, request: OemRequest, db: Session = Depends(get_db), _: User = Depends(require_editor)):
    oem = db.query(Oem).filter(Oem.id == oem_id).first()
    if not oem:
        raise HTTPException(status_code=404, detail="OEM not found")
    for field, value in request.model_dump().items():
        setattr(oem, field, value)
    db.commit()
    db.refresh(oem)
    return _row_to_dict(oem)


# ============================
# PRODUCTS
# ============================

@crm_router.get("/products")
def list_products(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _rows(db.query(Product).order_by(Product.name).all())


@crm_router.post("/products", status_code=201)
def create_product(request: ProductRequest, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    product = Product(name=request.name, documents=request.documents)
    db.add(product)
    db.commit()
    db.refresh(product)
    return _row_to_dict(product)


def _get_product_or_404(db: Session, product_id: str) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@crm_router.put("/products/{product_id}")
def update_product(
    product_id: str,
    request: ProductRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    product = _get_product_or_404(db, product_id)
    product.name = request.name
    product.documents = list(request.documents)
    db.commit()
    db.refresh(product)
    return _row_to_dict(product)


@crm_router.delete("/products/{product_id}")
def delete_product(product_id: str, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    db.delete(_get_product_or_404(db, product_id))
    db.commit()
    return {"message": "Product removed"}
