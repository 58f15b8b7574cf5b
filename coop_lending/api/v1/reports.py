"""GET /v1/reports/adherence - schedule adherence as of a chosen date"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coop_lending.api.dependencies import get_actor
from coop_lending.api.v1.schemas import AdherenceReportResponse
from coop_lending.config import settings
from coop_lending.domain.roles import Actor
from coop_lending.infrastructure.database.session import get_db
from coop_lending.services.reporting import ReportingService
from coop_lending.utils.date_utils import to_calendar_date, utc_now

router = APIRouter()


@router.get("/reports/adherence", response_model=AdherenceReportResponse)
def get_adherence_report(
    as_of: Optional[date] = Query(None, alias="asOf", description="Evaluation date, defaults to today"),
    assigned_cashier: Optional[str] = Query(None, alias="assignedCashier"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Overdue, on-track and ahead counts plus per-loan day math.

    Returns:
        One row per active loan with days since start, days paid for and unpaid days
    """
    reference = as_of or to_calendar_date(utc_now(), settings.business_timezone)
    rows, summary = ReportingService(db).adherence(actor, as_of=reference, assignee_id=assigned_cashier)
    return AdherenceReportResponse.from_domain(reference, rows, summary)
