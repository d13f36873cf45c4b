"""
TenderDesk - Reporting, Notification and Activity Routes
All figures are computed on request from the current tenders.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional, Dict, Any, List

from app.core.config import settings
from app.core.database import get_db
from app.core.auth import get_current_user
from app.models import Tender, Client, User
from app.api.serializers import _tender_to_dict, _client_to_dict, _user_to_dict, _rows
from app.services import analytics
from app.services.ai_pipeline import AIService, get_ai_service
from app.services.export import flatten_tenders_for_export, to_csv
from app.services.notifications import (
    derive_system_alerts,
    derive_assignment_alerts,
    notifications_for_user,
    system_activity_log,
)

report_router = APIRouter(prefix="/api", tags=["Reports"])


class ReportSummaryRequest(BaseModel):
    data: Optional[Dict[str, Any]] = None


def _all_tenders(db: Session) -> List[dict]:
    return _rows(db.query(Tender).order_by(Tender.created_at.desc()).all(), _tender_to_dict)


def _all_users(db: Session) -> List[dict]:
    return _rows(db.query(User).order_by(User.name).all(), _user_to_dict)


def _all_clients(db: Session) -> List[dict]:
    return _rows(db.query(Client).order_by(Client.name).all(), _client_to_dict)


def report_snapshot(tenders: List[dict], users: List[dict]) -> Dict[str, Any]:
    """KPIs handed to the AI narrative"""
    decided = [t for t in tenders if t.get("status") in ("Won", "Lost")]
    won = [t for t in decided if t["status"] == "Won"]
    return {
        "total_tenders": len(tenders),
        "decided_tenders": len(decided),
        "win_rate": round(len(won) / len(decided) * 100, 1) if decided else 0,
        "value_won": sum(t.get("value") or 0 for t in won),
        "funnel": analytics.calculate_tender_funnel(tenders),
        "win_loss_by_source": analytics.calculate_win_loss_by_source(tenders),
        "win_rate_by_category": analytics.get_win_rate_by_category(tenders),
        "leaderboard": analytics.calculate_sales_leaderboard(tenders, users),
    }


# ============================
# REPORTS
# ============================

@report_router.get("/reports/dashboard")
def dashboard(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return analytics.dashboard_stats(
        _all_tenders(db), user.id, expiry_window_days=settings.EXPIRY_WINDOW_DAYS,
    )


@report_router.get("/reports/deadlines/{window}")
def deadlines(window: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    """Open tenders due within 48h / 7d / 15d"""
    return analytics.filter_by_deadline(_all_tenders(db), window)


@report_router.get("/reports/funnel")
def funnel(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return analytics.calculate_tender_funnel(_all_tenders(db))


@report_router.get("/reports/win-loss-by-source")
def win_loss_by_source(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return analytics.calculate_win_loss_by_source(_all_tenders(db))


@report_router.get("/reports/leaderboard")
def leaderboard(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return analytics.calculate_sales_leaderboard(_all_tenders(db), _all_users(db))


@report_router.get("/reports/win-loss-by-month")
def win_loss_by_month(
    months: int = Query(6, ge=1, le=36),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return analytics.get_win_loss_value_by_month(_all_tenders(db), months)


@report_router.get("/reports/win-rate-by-category")
def win_rate_by_category(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return analytics.get_win_rate_by_category(_all_tenders(db))


@report_router.get("/reports/export.csv")
def export_csv(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    rows = flatten_tenders_for_export(_all_tenders(db), _all_users(db), _all_clients(db))
    filename = f"tenders_{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.csv"
    return Response(
        content=to_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@report_router.post("/reports/summary")
def report_summary(
    request: Optional[ReportSummaryRequest] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    data = (request.data if request else None) or report_snapshot(_all_tenders(db), _all_users(db))
    return {"summary": ai.generate_report_summary(data)}


# ============================
# NOTIFICATIONS / ACTIVITY
# ============================

@report_router.get("/notifications")
def notifications(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    tenders, users = _all_tenders(db), _all_users(db)
    now = datetime.now(timezone.utc)
    alerts = derive_system_alerts(tenders, users, now, settings.ALERT_WINDOW_DAYS)
    alerts += derive_assignment_alerts(tenders, users, now)
    return notifications_for_user(alerts, user.id)


@report_router.get("/activity")
def activity(
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    log = system_activity_log(_all_tenders(db), _all_clients(db))
    return log[:limit] if limit else log
