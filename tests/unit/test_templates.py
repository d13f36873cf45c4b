"""
Unit Tests for Bidding Template Rendering
"""

from datetime import date

from app.services.templates import render_template

TENDER = {"title": "Supply of Laptops", "tender_number": "GEM/2025/B/123", "cost": None}
CLIENT = {"name": "Indian Railways", "industry": ""}
USER = {"name": "Asha", "designation": "Sales Executive"}


def test_placeholders_are_filled():
    content = "To {{client.name}}, re {{ tender.title }} ({{tender.tender_number}}). {{currentUser.name}}"
    assert render_template(content, TENDER, CLIENT, USER) == (
        "To Indian Railways, re Supply of Laptops (GEM/2025/B/123). Asha"
    )


def test_current_date_is_day_month_year():
    assert render_template("{{currentDate}}", TENDER, CLIENT, USER, today=date(2025, 1, 6)) == "6/1/2025"


def test_unknown_fields_stay_and_empty_fields_blank():
    content = "{{tender.unknown}}|{{tender.cost}}|{{client.industry}}|{{other.thing}}"
    assert render_template(content, TENDER, CLIENT, USER) == "{{tender.unknown}}|||{{other.thing}}"


def test_missing_client_leaves_client_placeholders():
    assert render_template("{{client.name}}", TENDER, None, USER) == "{{client.name}}"
