"""
Unit Tests for the Client-Side Workspace
"""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.client import APIError, SessionStore, TenderDeskClient, Workspace
from app.core.exceptions import ValidationError

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)

USERS = {
    "sales": {"id": "u-sales", "name": "Sales User", "role": "Sales"},
    "finance": {"id": "u-fin", "name": "Finance User", "role": "Finance"},
    "admin": {"id": "u-admin", "name": "Admin User", "role": "Admin"},
}


class FakeServer:
    """Routes (method, path) to canned JSON; `failing` paths answer 500, `unreachable` ones never connect"""

    def __init__(self, user="sales"):
        self.user = USERS[user]
        self.tenders = [{
            "id": "t1",
            "title": "Laptops",
            "status": "Drafting",
            "deadline": (NOW + timedelta(days=2)).isoformat(),
            "assigned_to": ["u-sales"],
            "assignment_responses": {"u-sales": {"status": "Pending"}},
            "history": [{"action": "Created Tender", "timestamp": "2025-03-01T00:00:00+00:00"}],
            "version": 3,
        }]
        self.failing = set()
        self.unreachable = set()
        self.put_status = 200
        self.requests = []

    def __call__(self, request):
        path = request.url.path
        self.requests.append((request.method, path))
        if path in self.unreachable:
            raise httpx.ConnectError("Connection refused", request=request)
        if path in self.failing:
            return httpx.Response(500, json={"detail": f"{path} is down"})
        if path == "/api/users/login":
            return httpx.Response(200, json={"access_token": "tok", "token_type": "bearer", "user": self.user})
        if path == "/api/tenders" and request.method == "GET":
            return httpx.Response(200, json=self.tenders)
        if path.startswith("/api/tenders/") and request.method == "PUT":
            if self.put_status != 200:
                return httpx.Response(self.put_status, json={"detail": "This tender was changed by someone else."})
            body = json.loads(request.content)
            saved = {**body, "version": body["version"] + 1}
            return httpx.Response(200, json=saved)
        if path == "/api/users":
            return httpx.Response(200, json=list(USERS.values()))
        return httpx.Response(200, json=[])


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def workspace(server, store):
    client = TenderDeskClient(base_url="http://test", transport=httpx.MockTransport(server))
    ws = Workspace(client, store)
    ws.login("sales.user", "password123")
    return ws


def test_login_loads_collections_and_persists_session(workspace, store):
    assert workspace.current_user["id"] == "u-sales"
    assert [t["id"] for t in workspace.tenders] == ["t1"]
    assert len(workspace.users) == 3
    assert store.load()["token"] == "tok"


def test_one_failing_collection_does_not_block_the_rest(server, store):
    server.failing.add("/api/oems")
    client = TenderDeskClient(base_url="http://test", transport=httpx.MockTransport(server))
    ws = Workspace(client, store)
    ws.login("sales.user", "password123")

    assert ws.oems == []
    assert len(ws.tenders) == 1
    assert ws.fetch_all() == {"oems": "/api/oems is down"}


def test_lost_without_reason_never_reaches_the_server(workspace, server):
    before = len(server.requests)
    tender = {**workspace.tenders[0], "status": "Lost"}
    with pytest.raises(ValidationError):
        workspace.update_tender(tender)
    assert len(server.requests) == before
    assert workspace.tenders[0]["status"] == "Drafting"


def test_update_sends_version_and_keeps_saved_copy(workspace):
    saved = workspace.update_tender({**workspace.tenders[0], "title": "Laptops (revised)"})
    assert saved["version"] == 4
    assert workspace.get_tender("t1")["title"] == "Laptops (revised)"


def test_rejected_update_is_rolled_back(workspace, server):
    server.put_status = 409
    workspace.select_tender("t1")
    with pytest.raises(APIError) as excinfo:
        workspace.update_tender({**workspace.tenders[0], "title": "Changed"})

    assert excinfo.value.status_code == 409
    assert workspace.get_tender("t1")["title"] == "Laptops"
    assert workspace.selected_tender["title"] == "Laptops"


def test_update_is_rolled_back_when_the_server_is_unreachable(workspace, server):
    server.unreachable.add("/api/tenders/t1")
    with pytest.raises(APIError) as excinfo:
        workspace.update_tender({**workspace.tenders[0], "title": "Changed"})

    assert excinfo.value.status_code is None
    assert "Connection refused" in excinfo.value.message
    assert workspace.get_tender("t1")["title"] == "Laptops"


def test_unreachable_collection_keeps_previous_contents(workspace, server):
    server.unreachable.add("/api/tenders")
    failures = workspace.fetch_all()

    assert failures == {"tenders": "Connection refused"}
    assert [t["id"] for t in workspace.tenders] == ["t1"]
    assert len(workspace.users) == 3


def test_view_falls_back_by_role(workspace):
    assert workspace.set_view("admin") == "dashboard"
    assert workspace.set_view("reporting") == "reporting"
    assert workspace.set_view("crm") == "crm"


def test_finance_user_lands_on_finance(store):
    server = FakeServer(user="finance")
    client = TenderDeskClient(base_url="http://test", transport=httpx.MockTransport(server))
    ws = Workspace(client, store)
    ws.login("finance.user", "password123")
    assert ws.current_view == "finance"


def test_notifications_and_read_state(workspace):
    notifications = workspace.notifications(NOW)
    assert {n["type"] for n in notifications} == {"deadline", "assignment"}
    assert workspace.unread_count(NOW) == 2

    workspace.mark_all_read(NOW)
    assert workspace.unread_count(NOW) == 0


def test_opening_a_notification_selects_its_tender(workspace):
    notification = workspace.notifications(NOW)[0]
    workspace.open_notification(notification)
    assert workspace.current_view == "my-feed"
    assert workspace.selected_tender_id == "t1"
    assert workspace.selected_from == "notification"


def test_restore_and_logout(workspace, server, store):
    workspace.select_tender("t1")
    client = TenderDeskClient(base_url="http://test", transport=httpx.MockTransport(server))
    restored = Workspace(client, store)

    assert restored.restore() is True
    assert restored.client.token == "tok"
    assert restored.selected_tender_id == "t1"

    restored.logout()
    assert restored.tenders == []
    assert store.load() == {}


def test_activity_log(workspace):
    assert workspace.activity_log()[0]["id"] == "tend-log-t1-0"
