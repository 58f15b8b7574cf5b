"""/v1/loans - origination, lookup, balance and review endpoints"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coop_lending.api.dependencies import get_actor, get_directory_client
from coop_lending.api.v1.schemas import (
    BalanceResponse,
    CreateLoanRequest,
    DashboardResponse,
    LoanRecord,
    PatchLoanRequest,
)
from coop_lending.config import settings
from coop_lending.domain.exceptions import DirectoryAPIError
from coop_lending.domain.roles import Actor, Capability, check_cashier_assignment, require_capability
from coop_lending.infrastructure.clients.directory import DirectoryClient
from coop_lending.infrastructure.database.session import get_db
from coop_lending.infrastructure.observability.metrics import directory_failures_counter
from coop_lending.services.loans import LoanService
from coop_lending.services.reporting import ReportingService

router = APIRouter()


@router.post("/loans", response_model=LoanRecord, status_code=201)
async def create_loan(
    request_body: CreateLoanRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    directory: DirectoryClient = Depends(get_directory_client),
):
    """
    Originate a loan for a borrower.

    Flow:
    1. Check the actor may create loans
    2. Confirm the assigned cashier with the user directory
    3. Compute the schedule and persist under a fresh loan code
    """
    require_capability(actor.role, Capability.CREATE_LOAN)

    if settings.verify_cashier_assignment:
        try:
            cashier = await directory.get_user(request_body.assigned_cashier)
        except DirectoryAPIError:
            directory_failures_counter.inc()
            raise
        check_cashier_assignment(request_body.assigned_cashier, cashier.role if cashier else None)

    view = LoanService(db).create_loan(
        actor=actor,
        borrower_id=request_body.user_id,
        borrower_name=request_body.full_name,
        requested_amount=request_body.loan_amount,
        assigned_cashier_id=request_body.assigned_cashier,
        start_date=request_body.start_date,
    )
    return LoanRecord.from_view(view)


@router.get("/loans", response_model=List[LoanRecord])
def list_loans(
    assigned_cashier: Optional[str] = Query(None, alias="assignedCashier"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """List loans; cashiers only ever receive their own assignments"""
    views = LoanService(db).list_loans(actor, assigned_cashier)
    return [LoanRecord.from_view(v) for v in views]


@router.get("/loans/dashboard", response_model=DashboardResponse)
def get_dashboard(
    assigned_cashier: Optional[str] = Query(None, alias="assignedCashier"),
    today: Optional[date] = Query(None, description="Reference day, defaults to today"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Portfolio totals for the loans visible to the actor"""
    stats = ReportingService(db).dashboard(actor, today=today, assignee_id=assigned_cashier)
    return DashboardResponse.from_domain(stats)


@router.get("/loans/user/{borrower_id}", response_model=LoanRecord)
def get_borrower_loan(
    borrower_id: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Most recent loan of a borrower"""
    return LoanRecord.from_view(LoanService(db).get_borrower_loan(actor, borrower_id))


@router.get("/loans/{loan_id}", response_model=LoanRecord)
def get_loan(
    loan_id: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return LoanRecord.from_view(LoanService(db).get_loan(actor, loan_id))


@router.get("/loans/{loan_id}/balance", response_model=BalanceResponse)
def get_loan_balance(
    loan_id: str,
    as_of: Optional[date] = Query(None, alias="asOf", description="Evaluation date, defaults to now"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Balance and schedule adherence of a loan as of any date.

    Returns:
        Paid, pending and both unpaid figures, remaining days and overdue analysis
    """
    return BalanceResponse.from_view(LoanService(db).get_loan(actor, loan_id, reference=as_of))


@router.patch("/loans/{loan_id}", response_model=LoanRecord)
def patch_loan(
    loan_id: str,
    request_body: PatchLoanRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Authorized schedule edit and/or review decision"""
    view = LoanService(db).edit_loan(
        actor,
        loan_id,
        requested_amount=request_body.requested_amount,
        start_date=request_body.start_date,
        new_status=request_body.status,
    )
    return LoanRecord.from_view(view)
