"""
TenderDesk - Workspace

In-memory copy of every collection for one logged-in user, refreshed on
login. Tender edits are applied optimistically and rolled back when the
server rejects them. Notifications and the activity feed are derived
locally from the loaded collections.
"""

import copy
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set
from loguru import logger

from app.client.api_client import APIError, TenderDeskClient
from app.core.exceptions import ValidationError
from app.models.tender import TenderStatus
from app.models.user import Role
from app.services.notifications import (
    derive_assignment_alerts,
    derive_system_alerts,
    notifications_for_user,
    system_activity_log,
)

ALL_ROLES = [r.value for r in Role]

# Views not listed here are open to every role
VIEW_ROLES: Dict[str, List[str]] = {
    "dashboard": [Role.ADMIN.value, Role.SALES.value, Role.VIEWER.value],
    "my-feed": [Role.ADMIN.value, Role.SALES.value, Role.VIEWER.value],
    "finance": [Role.ADMIN.value, Role.FINANCE.value],
    "admin": [Role.ADMIN.value],
    "reporting": [Role.ADMIN.value, Role.SALES.value],
    "oems": [Role.ADMIN.value, Role.SALES.value],
    "processes": [Role.ADMIN.value, Role.SALES.value],
    "tenders": [Role.ADMIN.value, Role.VIEWER.value],
    "notifications": ALL_ROLES,
}

DEFAULT_VIEW = "dashboard"


def fallback_view(role: str) -> str:
    return "finance" if role == Role.FINANCE.value else DEFAULT_VIEW


class SessionStore:
    """
    JSON file holding the session across restarts: current user, token,
    current view and selected tender id. Cleared on logout.
    """

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}

    def save(self, **fields) -> None:
        data = self.load()
        data.update(fields)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class Workspace:
    """State container for one user session"""

    COLLECTIONS = (
        "tenders",
        "clients",
        "users",
        "oems",
        "products",
        "departments",
        "designations",
        "financial_requests",
        "bidding_templates",
    )

    def __init__(self, client: TenderDeskClient, store: Optional[SessionStore] = None):
        self.client = client
        self.store = store
        self.current_user: Optional[Dict[str, Any]] = None
        self.current_view = DEFAULT_VIEW
        self.selected_tender_id: Optional[str] = None
        self.selected_from: Optional[str] = None
        self.read_notification_ids: Set[str] = set()
        self._reset_collections()

    def _reset_collections(self) -> None:
        for name in self.COLLECTIONS:
            setattr(self, name, [])

    # ============================
    # SESSION
    # ============================

    def login(self, username: str, password: str) -> Dict[str, Any]:
        result = self.client.login(username, password)
        self.current_user = result["user"]
        self._persist(current_user=self.current_user, token=result["access_token"])
        self.fetch_all()
        self.set_view(self.current_view)
        return self.current_user

    def restore(self) -> bool:
        """Resume a stored session. Returns False when there is nothing to resume."""
        if self.store is None:
            return False
        data = self.store.load()
        if not data.get("token") or not data.get("current_user"):
            return False

        self.client.token = data["token"]
        self.current_user = data["current_user"]
        self.fetch_all()
        self.set_view(data.get("current_view") or DEFAULT_VIEW)

        tender_id = data.get("selected_tender_id")
        if tender_id and self.get_tender(tender_id):
            self.selected_tender_id = tender_id
            self.selected_from = data.get("selected_from")
        elif tender_id:
            self._persist(selected_tender_id=None, selected_from=None)
        return True

    def logout(self) -> None:
        self.client.token = None
        self.current_user = None
        self.current_view = DEFAULT_VIEW
        self.selected_tender_id = None
        self.selected_from = None
        self.read_notification_ids = set()
        self._reset_collections()
        if self.store is not None:
            self.store.clear()

    def _persist(self, **fields) -> None:
        if self.store is not None:
            self.store.save(**fields)

    def fetch_all(self) -> Dict[str, str]:
        """
        Reload every collection. A failing collection keeps its previous
        contents and is reported in the returned {name: error} map.
        """
        loaders: Dict[str, Callable[[], List[dict]]] = {
            "tenders": self.client.get_tenders,
            "clients": self.client.get_clients,
            "users": self.client.get_users,
            "oems": self.client.get_oems,
            "products": self.client.get_products,
            "departments": self.client.get_departments,
            "designations": self.client.get_designations,
            "financial_requests": self.client.get_financial_requests,
            "bidding_templates": self.client.get_bidding_templates,
        }
        failures: Dict[str, str] = {}
        for name, load in loaders.items():
            try:
                setattr(self, name, load())
            except APIError as e:
                failures[name] = e.message
                logger.error(f"Failed to fetch {name}: {e.message}")
        return failures

    # ============================
    # NAVIGATION
    # ============================

    @property
    def role(self) -> Optional[str]:
        return self.current_user.get("role") if self.current_user else None

    def can_view(self, view: str) -> bool:
        allowed = VIEW_ROLES.get(view)
        return allowed is None or self.role in allowed

    def set_view(self, view: str) -> str:
        """Switch view, falling back when the role may not see it. Returns the view shown."""
        if self.current_user and not self.can_view(view):
            view = fallback_view(self.role)
        if view != self.current_view:
            self.selected_tender_id = None
            self.selected_from = None
        self.current_view = view
        self._persist(current_view=view, selected_tender_id=self.selected_tender_id)
        return view

    def select_tender(self, tender_id: Optional[str], origin: str = "list") -> Optional[dict]:
        if tender_id is None:
            self.selected_tender_id = self.selected_from = None
            self._persist(selected_tender_id=None, selected_from=None)
            return None
        tender = self.get_tender(tender_id)
        if tender is None:
            raise ValidationError(f"Unknown tender: {tender_id}")
        self.selected_tender_id, self.selected_from = tender_id, origin
        self._persist(selected_tender_id=tender_id, selected_from=origin)
        return tender

    def open_notification(self, notification: Dict[str, Any]) -> Optional[dict]:
        """Jump to the notification's tender in the role's tender view"""
        self.read_notification_ids.add(notification["id"])
        view = "my-feed" if self.role == Role.SALES.value else "tenders"
        self.set_view(view)
        return self.select_tender(notification["related_tender_id"], origin="notification")

    @property
    def selected_tender(self) -> Optional[dict]:
        return self.get_tender(self.selected_tender_id) if self.selected_tender_id else None

    # ============================
    # TENDERS
    # ============================

    def get_tender(self, tender_id: str) -> Optional[dict]:
        return next((t for t in self.tenders if t.get("id") == tender_id), None)

    def _replace_tender(self, tender: dict) -> dict:
        self.tenders = [tender if t.get("id") == tender["id"] else t for t in self.tenders]
        return tender

    def add_tender(self, data: Dict[str, Any]) -> dict:
        tender = self.client.add_tender(data)
        self.tenders = [tender, *self.tenders]
        return tender

    def update_tender(self, tender: Dict[str, Any]) -> dict:
        """
        Optimistic whole-object update.

        The local copy changes first; if the server rejects the save, the
        previous copy is restored and the APIError is re-raised. The
        tender's version token goes with the payload.
        """
        if tender.get("status") == TenderStatus.LOST.value and not tender.get("reason_for_loss"):
            raise ValidationError("A reason for loss is required when marking a tender as Lost")

        original = self.get_tender(tender["id"])
        if original is None:
            raise ValidationError(f"Unknown tender: {tender['id']}")
        snapshot = copy.deepcopy(original)

        self._replace_tender(copy.deepcopy(tender))
        try:
            saved = self.client.update_tender(tender["id"], tender)
        except APIError as e:
            logger.error(f"Failed to update tender {tender['id']}, reverting change: {e.message}")
            self._replace_tender(snapshot)
            raise
        return self._replace_tender(saved)

    def import_tender(self, data: Dict[str, Any]) -> dict:
        result = self.client.import_tender(data)
        client = result["client"]
        if not any(c.get("id") == client["id"] for c in self.clients):
            self.clients = [client, *self.clients]
        self.tenders = [result["tender"], *self.tenders]
        return result["tender"]

    def respond_to_assignment(self, tender_id: str, status: str, notes: str = "") -> dict:
        return self._replace_tender(self.client.respond_to_assignment(tender_id, status, notes))

    def advance_workflow(self, tender_id: str) -> dict:
        return self._replace_tender(self.client.advance_workflow(tender_id))

    def revert_workflow(self, tender_id: str) -> dict:
        return self._replace_tender(self.client.revert_workflow(tender_id))

    def set_assignees(self, tender_id: str, user_ids: List[str]) -> dict:
        return self._replace_tender(self.client.set_assignees(tender_id, user_ids))

    # ============================
    # FINANCIALS / USERS
    # ============================

    def raise_financial_request(self, data: Dict[str, Any]) -> dict:
        request = self.client.add_financial_request(data)
        self.financial_requests = [request, *self.financial_requests]
        return request

    def update_request_status(self, request_id: str, status: str, **details) -> dict:
        """Transition a request, then reload requests and tenders (instrument side effects)"""
        result = self.client.update_financial_request(request_id, status, **details)
        self.financial_requests = self.client.get_financial_requests()
        self.tenders = self.client.get_tenders()
        return result["request"]

    def save_user(self, data: Dict[str, Any]) -> List[dict]:
        if data.get("id"):
            fields = {k: v for k, v in data.items() if k != "id"}
            self.users = self.client.update_user(data["id"], fields)
        else:
            self.users = self.client.add_user(data)
        return self.users

    # ============================
    # DERIVED DATA
    # ============================

    def notifications(self, now: Optional[datetime] = None) -> List[dict]:
        """Current user's alerts, newest first, with local read state applied"""
        if not self.current_user:
            return []
        now = now or datetime.now(timezone.utc)
        alerts = derive_system_alerts(self.tenders, self.users, now)
        alerts += derive_assignment_alerts(self.tenders, self.users, now)
        mine = notifications_for_user(alerts, self.current_user["id"])
        for notification in mine:
            notification["is_read"] = notification["id"] in self.read_notification_ids
        return mine

    def unread_count(self, now: Optional[datetime] = None) -> int:
        return sum(1 for n in self.notifications(now) if not n["is_read"])

    def mark_all_read(self, now: Optional[datetime] = None) -> None:
        self.read_notification_ids.update(n["id"] for n in self.notifications(now))

    def activity_log(self) -> List[dict]:
        return system_activity_log(self.tenders, self.clients)
