"""
Unit Tests for the REST API Client
"""

import json

import httpx
import pytest

from app.client.api_client import APIError, TenderDeskClient, error_message


def _client(handler, token=None):
    return TenderDeskClient(base_url="http://test", token=token, transport=httpx.MockTransport(handler))


class TestErrorMessage:

    def test_detail_wins(self):
        response = httpx.Response(400, json={"detail": "Client ID is required.", "message": "ignored"})
        assert error_message(response) == "Client ID is required."

    def test_message_field(self):
        assert error_message(httpx.Response(500, json={"message": "Boom"})) == "Boom"

    def test_structured_detail_is_dumped(self):
        response = httpx.Response(422, json={"detail": [{"loc": ["body", "title"]}]})
        assert json.loads(error_message(response)) == [{"loc": ["body", "title"]}]

    def test_plain_text_body(self):
        assert error_message(httpx.Response(502, text="Bad gateway")) == "Bad gateway"

    def test_empty_body_uses_status_line(self):
        assert error_message(httpx.Response(503)) == "API Error: 503 Service Unavailable"


def test_login_keeps_token_for_later_calls():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path == "/api/users/login":
            return httpx.Response(200, json={"access_token": "tok", "token_type": "bearer", "user": {"id": "u1"}})
        return httpx.Response(200, json=[])

    client = _client(handler)
    client.login("admin", "password123")
    client.get_tenders()

    assert "authorization" not in seen[0].headers
    assert seen[1].headers["authorization"] == "Bearer tok"


def test_error_raises_api_error():
    client = _client(lambda request: httpx.Response(409, json={"detail": "Stale version"}))
    with pytest.raises(APIError) as excinfo:
        client.update_tender("t1", {"title": "x", "version": 1})
    assert excinfo.value.status_code == 409
    assert excinfo.value.message == "Stale version"


def test_empty_body_returns_empty_dict():
    client = _client(lambda request: httpx.Response(200))
    assert client.delete_product("p1") == {}


def test_csv_export_returns_text():
    client = _client(lambda request: httpx.Response(200, text="a,b", headers={"content-type": "text/csv"}))
    assert client.export_csv() == "a,b"


def test_stage_names_are_encoded_as_one_segment():
    paths = []

    def handler(request):
        paths.append(request.url.raw_path.decode())
        return httpx.Response(200, json={})

    client = _client(handler, token="tok")
    client.update_process_stage("t1", "LOI/PO Acknowledgement", status="Completed")
    client.get_checklist("t1", "Letter of Intent (LOI) / Purchase Order (PO)")

    assert paths[0] == "/api/tenders/t1/process/LOI%2FPO%20Acknowledgement"
    assert paths[1].startswith("/api/tenders/t1/checklists/Letter%20of%20Intent")
    assert "%2F" in paths[1]


def test_optional_query_params_are_dropped():
    urls = []

    def handler(request):
        urls.append(str(request.url))
        return httpx.Response(200, json=[])

    client = _client(handler, token="tok")
    client.get_activity()
    client.get_activity(limit=5)
    assert urls == ["http://test/api/activity", "http://test/api/activity?limit=5"]


def test_network_failure_raises_api_error():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(APIError) as excinfo:
        _client(handler, token="tok").get_tenders()
    assert excinfo.value.status_code is None
    assert excinfo.value.message == "Connection refused"


def test_deadline_and_bid_packet_paths():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, json=[])

    client = _client(handler, token="tok")
    client.get_deadlines("48h")
    client.get_bid_packet("t1")
    assert paths == ["/api/reports/deadlines/48h", "/api/tenders/t1/bid-packet"]
