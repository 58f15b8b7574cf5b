"""Portfolio reads: dashboard, adherence report and payment register"""

from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from coop_lending.config import Settings, settings
from coop_lending.domain import portfolio
from coop_lending.domain.models import AdherenceRow, AdherenceSummary, PortfolioStats, RegisterEntry, RegisterStats
from coop_lending.domain.roles import Actor, portfolio_scope
from coop_lending.infrastructure.database.repositories import LoanRepository
from coop_lending.utils.date_utils import utc_now


class ReportingService:
    """
    Aggregate reads over many loans.

    Each method loads its loans and ledgers in one joined query, so totals
    come from a single snapshot and are filtered by assignee before loading.
    """

    def __init__(self, db: Session, config: Settings = settings):
        self.db = db
        self.config = config
        self.loans = LoanRepository(db)

    def dashboard(
        self,
        actor: Actor,
        today: date | datetime | None = None,
        assignee_id: Optional[str] = None,
    ) -> PortfolioStats:
        scope = portfolio_scope(actor, assignee_id)
        return portfolio.aggregate_portfolio(
            self.loans.list_loans(scope),
            today or utc_now(),
            assignee_id=scope,
            tz_name=self.config.business_timezone,
        )

    def adherence(
        self,
        actor: Actor,
        as_of: date | datetime | None = None,
        assignee_id: Optional[str] = None,
    ) -> Tuple[List[AdherenceRow], AdherenceSummary]:
        scope = portfolio_scope(actor, assignee_id)
        return portfolio.adherence_report(
            self.loans.list_loans(scope),
            as_of or utc_now(),
            tz_name=self.config.business_timezone,
        )

    def payment_register(
        self,
        actor: Actor,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        recorded_by: Optional[str] = None,
        search: Optional[str] = None,
        assignee_id: Optional[str] = None,
    ) -> Tuple[List[RegisterEntry], RegisterStats]:
        scope = portfolio_scope(actor, assignee_id)
        entries = portfolio.filter_register(
            portfolio.register_entries(self.loans.list_loans(scope)),
            start_date=start_date,
            end_date=end_date,
            recorded_by=recorded_by,
            search=search,
            tz_name=self.config.business_timezone,
        )
        return entries, portfolio.register_stats(entries)
