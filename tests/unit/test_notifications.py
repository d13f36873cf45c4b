"""
Unit Tests for Derived Notifications and the Activity Feed
"""

from datetime import datetime, timedelta, timezone

from app.services.notifications import (
    derive_assignment_alerts,
    derive_system_alerts,
    notifications_for_user,
    system_activity_log,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
USERS = [
    {"id": "admin", "role": "Admin"},
    {"id": "sales", "role": "Sales"},
    {"id": "fin", "role": "Finance"},
]


def _in(days: float) -> str:
    return (NOW + timedelta(days=days)).isoformat()


def test_deadline_alert_rounds_days_up():
    tender = {"id": "t1", "title": "Laptops", "status": "Drafting", "deadline": _in(1.5), "assigned_to": ["sales"]}
    alerts = derive_system_alerts([tender], USERS, NOW)

    assert {a["recipient_id"] for a in alerts} == {"sales", "admin"}
    assert alerts[0]["message"] == 'Deadline for "Laptops" is due in 2 days.'
    assert alerts[0]["type"] == "deadline"
    assert alerts[0]["id"] == f"t1-deadline-{tender['deadline']}-sales"


def test_assignee_who_is_admin_gets_one_copy():
    tender = {"id": "t1", "title": "X", "status": "Drafting", "deadline": _in(3), "assigned_to": ["admin"]}
    assert [a["recipient_id"] for a in derive_system_alerts([tender], USERS, NOW)] == ["admin"]


def test_closed_tenders_and_far_deadlines_are_quiet():
    tenders = [
        {"id": "t1", "title": "A", "status": "Won", "deadline": _in(2)},
        {"id": "t2", "title": "B", "status": "Drafting", "deadline": _in(30)},
        {"id": "t3", "title": "C", "status": "Drafting", "deadline": _in(-2)},
    ]
    assert derive_system_alerts(tenders, USERS, NOW) == []


def test_expiry_alert_for_open_instrument_on_won_tender():
    tender = {
        "id": "t1",
        "title": "Laptops",
        "status": "Won",
        "pbgs": [{"expiry_date": _in(5), "status": "Active"}, {"expiry_date": _in(5), "status": "Released"}],
    }
    alerts = derive_system_alerts([tender], USERS, NOW)
    assert len(alerts) == 1
    assert alerts[0]["type"] == "expiry"
    assert alerts[0]["message"].startswith('PBG for "Laptops"')


def test_assignment_and_reassignment_alerts():
    tenders = [
        {"id": "t1", "title": "A", "status": "Drafting", "assigned_to": ["sales"], "assignment_responses": {}},
        {"id": "t2", "title": "B", "status": "Drafting", "assigned_to": ["sales"],
         "assignment_responses": {"sales": {"status": "Declined"}}},
        {"id": "t3", "title": "C", "status": "Lost", "assigned_to": ["sales"], "assignment_responses": {}},
    ]
    alerts = derive_assignment_alerts(tenders, USERS, NOW)

    assert [(a["type"], a["recipient_id"], a["related_tender_id"]) for a in alerts] == [
        ("assignment", "sales", "t1"),
        ("reassignment", "admin", "t2"),
    ]


def test_notifications_for_user_filters_and_sorts():
    notifications = [
        {"id": "1", "recipient_id": "sales", "timestamp": "2025-03-01T00:00:00+00:00"},
        {"id": "2", "recipient_id": None, "timestamp": "2025-03-05T00:00:00+00:00"},
        {"id": "3", "recipient_id": "admin", "timestamp": "2025-03-06T00:00:00+00:00"},
    ]
    assert [n["id"] for n in notifications_for_user(notifications, "sales")] == ["2", "1"]


def test_activity_log_merges_and_sorts():
    tenders = [{"id": "t1", "title": "Laptops", "history": [
        {"action": "Created Tender", "timestamp": "2025-03-01T00:00:00+00:00"},
    ]}]
    clients = [{"id": "c1", "name": "Railways", "history": [
        {"action": "Created Client", "timestamp": "2025-02-01T00:00:00+00:00"},
        {"action": "Logged Call", "timestamp": "2025-03-02T00:00:00+00:00"},
    ]}]
    log = system_activity_log(tenders, clients)

    assert [e["id"] for e in log] == ["cli-log-c1-1", "tend-log-t1-0", "cli-log-c1-0"]
    assert log[1]["entity_type"] == "Tender"
    assert log[1]["entity_name"] == "Laptops"
