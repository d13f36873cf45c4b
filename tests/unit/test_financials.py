"""
Unit Tests for the Financial Request Lifecycle
"""

from types import SimpleNamespace

import pytest

from app.core.exceptions import InvalidTransitionError, PermissionDeniedError, ValidationError
from app.services.financials import allowed_transitions, build_request, transition_request

ADMIN = SimpleNamespace(id="u-admin", name="Admin User", role="Admin")
FINANCE = SimpleNamespace(id="u-fin", name="Finance User", role="Finance")
SALES = SimpleNamespace(id="u-sales", name="Sales User", role="Sales")

INSTRUMENT = {"mode": "BG", "processed_date": "2025-01-10", "issuing_bank": "SBI"}


def _request(tender, request_type="EMD BG", amount=50000, expiry="2025-06-30"):
    request = build_request(tender, SALES, request_type, amount, "for bid", expiry)
    request.id = "fin-1"
    return request


def _processed(tender, request_type="EMD BG"):
    request = _request(tender, request_type)
    transition_request(request, tender, ADMIN, "Approved")
    transition_request(request, tender, FINANCE, "Processed", instrument=INSTRUMENT)
    return request


class TestBuildRequest:

    def test_new_request_is_pending_and_logged(self, tender):
        request = _request(tender)
        assert request.status == "Pending Approval"
        assert request.requested_by_id == SALES.id
        assert tender.history[-1]["action"] == "Raised Financial Request"

    def test_tender_is_required(self):
        with pytest.raises(ValidationError):
            build_request(None, SALES, "PBG", 100)

    def test_amount_must_be_positive(self, tender):
        with pytest.raises(ValidationError):
            build_request(tender, SALES, "PBG", 0)

    def test_emd_needs_expiry_date(self, tender):
        with pytest.raises(ValidationError):
            build_request(tender, SALES, "EMD DD", 100)

    def test_unknown_type_is_rejected(self, tender):
        with pytest.raises(ValidationError):
            build_request(tender, SALES, "Bribe", 100)


class TestTransitions:

    def test_only_admin_approves(self, tender):
        request = _request(tender)
        with pytest.raises(PermissionDeniedError):
            transition_request(request, tender, FINANCE, "Approved")
        transition_request(request, tender, ADMIN, "Approved")
        assert request.status == "Approved"
        assert request.approver_id == ADMIN.id
        assert request.approval_date is not None

    def test_processing_skips_no_step(self, tender):
        request = _request(tender)
        with pytest.raises(InvalidTransitionError):
            transition_request(request, tender, FINANCE, "Processed", instrument=INSTRUMENT)

    def test_decline_needs_reason(self, tender):
        request = _request(tender)
        with pytest.raises(ValidationError):
            transition_request(request, tender, ADMIN, "Declined", reason="  ")
        transition_request(request, tender, ADMIN, "Declined", reason="Budget exhausted")
        assert request.rejection_reason == "Budget exhausted"
        assert allowed_transitions(request, "Admin") == []

    def test_processing_needs_instrument(self, tender):
        request = _request(tender)
        transition_request(request, tender, ADMIN, "Approved")
        with pytest.raises(ValidationError):
            transition_request(request, tender, FINANCE, "Processed")

    def test_processed_emd_lands_on_tender(self, tender):
        _processed(tender)
        assert len(tender.emds) == 1
        emd = tender.emds[0]
        assert emd["mode"] == "BG"
        assert emd["amount"] == 50000
        assert emd["refund_status"] == "Pending"
        assert emd["submitted_date"] == "2025-01-10"
        assert emd["expiry_date"] == "2025-06-30"

    def test_refund_updates_emd(self, tender):
        request = _processed(tender)
        transition_request(request, tender, FINANCE, "Refunded")
        assert tender.emds[0]["refund_status"] == "Refunded"

    def test_pbg_release(self, tender):
        request = _processed(tender, "PBG")
        assert tender.pbgs[0]["status"] == "Active"
        transition_request(request, tender, FINANCE, "Released")
        assert tender.pbgs[0]["status"] == "Released"

    def test_pbg_cannot_be_refunded(self, tender):
        request = _processed(tender, "PBG")
        with pytest.raises(InvalidTransitionError):
            transition_request(request, tender, FINANCE, "Refunded")

    def test_tender_fee_is_recorded_without_request_link(self, tender):
        _processed(tender, "Tender Fee")
        assert tender.tender_fee["amount"] == 50000
        assert "request_id" not in tender.tender_fee


class TestAllowedTransitions:

    def test_by_role_and_type(self, tender):
        request = _request(tender)
        assert sorted(allowed_transitions(request, "Admin")) == ["Approved", "Declined"]
        assert allowed_transitions(request, "Finance") == []

        request.status = "Processed"
        assert sorted(allowed_transitions(request, "Finance")) == ["Expired", "Forfeited", "Refunded"]
        request.type = "PBG"
        assert sorted(allowed_transitions(request, "Finance")) == ["Expired", "Released"]
