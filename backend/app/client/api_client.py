"""
TenderDesk - REST API Client

One method per endpoint. Every non-2xx answer raises APIError with the
server's message: `detail`, then `message`, then the whole JSON body,
then the raw text, then "API Error: <code> <reason>". Network failures
raise APIError too, with no status code.
"""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import httpx
from loguru import logger


class APIError(Exception):
    """Raised for any non-2xx API response"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def error_message(response: httpx.Response) -> str:
    text = response.text
    try:
        body = json.loads(text)
    except ValueError:
        return text or f"API Error: {response.status_code} {response.reason_phrase}"

    if isinstance(body, dict):
        message = body.get("detail") or body.get("message")
        if isinstance(message, str):
            return message
        if message:
            return json.dumps(message)
    return json.dumps(body)


def _segment(value: str) -> str:
    """Path segment that may contain '/', '&' or spaces (stage names)"""
    return quote(value, safe="")


class TenderDeskClient:
    """Synchronous client; pass `transport` to route requests elsewhere (tests)"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.token = token
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ============================
    # TRANSPORT
    # ============================

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            message = str(e) or f"Network error: {type(e).__name__}"
            logger.warning(f"{method} {path} failed before a response: {message}")
            raise APIError(message) from e
        if response.is_success:
            if not response.content:
                return {}
            if response.headers.get("content-type", "").startswith("application/json"):
                return response.json()
            return response.text

        message = error_message(response)
        logger.warning(f"{method} {path} failed ({response.status_code}): {message}")
        raise APIError(message, response.status_code)

    def _get(self, path: str, **params) -> Any:
        return self._request("GET", path, params={k: v for k, v in params.items() if v is not None})

    def _post(self, path: str, body: Any = None) -> Any:
        return self._request("POST", path, json=body if body is not None else {})

    def _put(self, path: str, body: Any) -> Any:
        return self._request("PUT", path, json=body)

    def _delete(self, path: str, **params) -> Any:
        return self._request("DELETE", path, params={k: v for k, v in params.items() if v is not None})

    # ============================
    # USERS / AUTH
    # ============================

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """Log in and keep the bearer token for later calls"""
        result = self._post("/api/users/login", {"username": username, "password": password})
        self.token = result["access_token"]
        return result

    def me(self) -> Dict[str, Any]:
        return self._get("/api/users/me")

    def seed_users(self) -> Dict[str, Any]:
        return self._post("/api/users/seed")

    def get_users(self) -> List[dict]:
        return self._get("/api/users")

    def add_user(self, data: Dict[str, Any]) -> List[dict]:
        return self._post("/api/users", data)

    def update_user(self, user_id: str, data: Dict[str, Any]) -> List[dict]:
        return self._put(f"/api/users/{user_id}", data)

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        return self._delete(f"/api/users/{user_id}")

    # ============================
    # TENDERS
    # ============================

    def get_tenders(self) -> List[dict]:
        return self._get("/api/tenders")

    def get_tender(self, tender_id: str) -> dict:
        return self._get(f"/api/tenders/{tender_id}")

    def add_tender(self, data: Dict[str, Any]) -> dict:
        return self._post("/api/tenders", data)

    def update_tender(self, tender_id: str, data: Dict[str, Any]) -> dict:
        return self._put(f"/api/tenders/{tender_id}", data)

    def delete_tender(self, tender_id: str) -> Dict[str, Any]:
        return self._delete(f"/api/tenders/{tender_id}")

    def import_tender(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/api/tenders/import", data)

    def respond_to_assignment(self, tender_id: str, status: str, notes: str = "") -> dict:
        return self._post(f"/api/tenders/{tender_id}/respond", {"status": status, "notes": notes})

    def set_assignees(self, tender_id: str, user_ids: List[str]) -> dict:
        return self._put(f"/api/tenders/{tender_id}/assignees", {"user_ids": user_ids})

    def advance_workflow(self, tender_id: str) -> dict:
        return self._post(f"/api/tenders/{tender_id}/workflow/advance")

    def revert_workflow(self, tender_id: str) -> dict:
        return self._post(f"/api/tenders/{tender_id}/workflow/revert")

    def get_bid_packet(self, tender_id: str) -> Dict[str, Any]:
        return self._get(f"/api/tenders/{tender_id}/bid-packet")

    # Checklists

    def get_checklist(self, tender_id: str, stage: Optional[str] = None) -> Dict[str, Any]:
        path = f"/api/tenders/{tender_id}/checklists"
        return self._get(f"{path}/{_segment(stage)}" if stage else path)

    def load_standard_checklist(self, tender_id: str, stage: Optional[str] = None) -> dict:
        return self._post(f"/api/tenders/{tender_id}/checklists/standard", {"stage": stage})

    def generate_checklist(self, tender_id: str, stage: Optional[str] = None) -> dict:
        return self._post(f"/api/tenders/{tender_id}/checklists/generate", {"stage": stage})

    def add_checklist_item(self, tender_id: str, text: str, stage: Optional[str] = None) -> dict:
        return self._post(f"/api/tenders/{tender_id}/checklists/items", {"text": text, "stage": stage})

    def toggle_checklist_item(self, tender_id: str, item_id: str, stage: Optional[str] = None) -> dict:
        return self._request(
            "POST",
            f"/api/tenders/{tender_id}/checklists/items/{item_id}/toggle",
            params={"stage": stage} if stage else None,
        )

    def delete_checklist_item(self, tender_id: str, item_id: str, stage: Optional[str] = None) -> dict:
        return self._delete(f"/api/tenders/{tender_id}/checklists/items/{item_id}", stage=stage)

    # Post-award process

    def get_process(self, tender_id: str) -> Dict[str, Any]:
        return self._get(f"/api/tenders/{tender_id}/process")

    def update_process_stage(
        self, tender_id: str, stage: str, status: Optional[str] = None, notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {k: v for k, v in {"status": status, "notes": notes}.items() if v is not None}
        return self._put(f"/api/tenders/{tender_id}/process/{_segment(stage)}", body)

    def add_process_document(self, tender_id: str, stage: str, document: Dict[str, Any]) -> Dict[str, Any]:
        return self._post(f"/api/tenders/{tender_id}/process/{_segment(stage)}/documents", document)

    def delete_process_document(self, tender_id: str, stage: str, document_id: str) -> Dict[str, Any]:
        return self._delete(f"/api/tenders/{tender_id}/process/{_segment(stage)}/documents/{document_id}")

    def add_tender_document(self, tender_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        return self._post(f"/api/tenders/{tender_id}/documents", document)

    # ============================
    # CLIENTS
    # ============================

    def get_clients(self) -> List[dict]:
        return self._get("/api/clients")

    def add_client(self, data: Dict[str, Any]) -> dict:
        return self._post("/api/clients", data)

    def update_client(self, client_id: str, data: Dict[str, Any]) -> dict:
        return self._put(f"/api/clients/{client_id}", data)

    def add_contact(self, client_id: str, contact: Dict[str, Any]) -> dict:
        return self._post(f"/api/clients/{client_id}/contacts", contact)

    def update_contact(self, client_id: str, contact_id: str, contact: Dict[str, Any]) -> dict:
        return self._put(f"/api/clients/{client_id}/contacts/{contact_id}", contact)

    def delete_contact(self, client_id: str, contact_id: str) -> dict:
        return self._delete(f"/api/clients/{client_id}/contacts/{contact_id}")

    def log_interaction(self, client_id: str, interaction_type: str, notes: str) -> dict:
        return self._post(f"/api/clients/{client_id}/interactions", {"type": interaction_type, "notes": notes})

    def get_client_health(self, client_id: str) -> Dict[str, Any]:
        return self._get(f"/api/clients/{client_id}/health")

    # ============================
    # FINANCIALS
    # ============================

    def get_financial_requests(self) -> List[dict]:
        return self._get("/api/financials")

    def add_financial_request(self, data: Dict[str, Any]) -> dict:
        return self._post("/api/financials", data)

    def update_financial_request(
        self,
        request_id: str,
        status: str,
        reason: Optional[str] = None,
        instrument: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return self._put(
            f"/api/financials/{request_id}",
            {"status": status, "reason": reason, "instrument": instrument},
        )

    # ============================
    # OEMS / PRODUCTS
    # ============================

    def get_oems(self) -> List[dict]:
        return self._get("/api/oems")

    def add_oem(self, data: Dict[str, Any]) -> dict:
        return self._post("/api/oems", data)

    def update_oem(self, oem_id: str, data: Dict[str, Any]) -> dict:
        return self._put(f"/api/oems/{oem_id}", data)

    def get_products(self) -> List[dict]:
        return self._get("/api/products")

    def add_product(self, data: Dict[str, Any]) -> dict:
        return self._post("/api/products", data)

    def update_product(self, product_id: str, data: Dict[str, Any]) -> dict:
        return self._put(f"/api/products/{product_id}", data)

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        return self._delete(f"/api/products/{product_id}")

    # ============================
    # ADMIN LOOKUPS
    # ============================

    def get_departments(self) -> List[dict]:
        return self._get("/api/admin/departments")

    def add_department(self, name: str) -> dict:
        return self._post("/api/admin/departments", {"name": name})

    def delete_department(self, department_id: str) -> Dict[str, Any]:
        return self._delete(f"/api/admin/departments/{department_id}")

    def get_designations(self) -> List[dict]:
        return self._get("/api/admin/designations")

    def add_designation(self, name: str) -> dict:
        return self._post("/api/admin/designations", {"name": name})

    def delete_designation(self, designation_id: str) -> Dict[str, Any]:
        return self._delete(f"/api/admin/designations/{designation_id}")

    def get_bidding_templates(self) -> List[dict]:
        return self._get("/api/admin/templates")

    def add_bidding_template(self, name: str, content: str) -> dict:
        return self._post("/api/admin/templates", {"name": name, "content": content})

    def update_bidding_template(self, template_id: str, name: str, content: str) -> dict:
        return self._put(f"/api/admin/templates/{template_id}", {"name": name, "content": content})

    def delete_bidding_template(self, template_id: str) -> Dict[str, Any]:
        return self._delete(f"/api/admin/templates/{template_id}")

    def render_bidding_template(self, template_id: str, tender_id: str) -> Dict[str, Any]:
        return self._post(f"/api/admin/templates/{template_id}/render/{tender_id}")

    # ============================
    # REPORTS
    # ============================

    def get_dashboard(self) -> Dict[str, Any]:
        return self._get("/api/reports/dashboard")

    def get_deadlines(self, window: str) -> List[dict]:
        """Open tenders due within the window: 48h, 7d or 15d"""
        return self._get(f"/api/reports/deadlines/{_segment(window)}")

    def get_funnel(self) -> List[dict]:
        return self._get("/api/reports/funnel")

    def get_win_loss_by_source(self) -> List[dict]:
        return self._get("/api/reports/win-loss-by-source")

    def get_leaderboard(self) -> List[dict]:
        return self._get("/api/reports/leaderboard")

    def get_win_loss_by_month(self, months: int = 6) -> List[dict]:
        return self._get("/api/reports/win-loss-by-month", months=months)

    def get_win_rate_by_category(self) -> List[dict]:
        return self._get("/api/reports/win-rate-by-category")

    def export_csv(self) -> str:
        return self._get("/api/reports/export.csv")

    def get_report_summary(self, data: Optional[Dict[str, Any]] = None) -> str:
        return self._post("/api/reports/summary", {"data": data})["summary"]

    def get_notifications(self) -> List[dict]:
        return self._get("/api/notifications")

    def get_activity(self, limit: Optional[int] = None) -> List[dict]:
        return self._get("/api/activity", limit=limit)

    # ============================
    # AI
    # ============================

    def extract_tender_details(self, filename: str, content: bytes, mime_type: str) -> Dict[str, Any]:
        return self._request("POST", "/api/ai/extract", files={"file": (filename, content, mime_type)})

    def analyze_tender(self, tender_id: str) -> Dict[str, Any]:
        return self._post(f"/api/ai/tenders/{tender_id}/analyze")

    def check_eligibility(self, tender_id: str, tender_text: Optional[str] = None) -> Dict[str, Any]:
        return self._post(f"/api/ai/tenders/{tender_id}/eligibility", {"tender_text": tender_text})

    def summarize_client(self, client_id: str) -> Dict[str, Any]:
        return self._post(f"/api/ai/clients/{client_id}/summary")
