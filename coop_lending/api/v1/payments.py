"""/v1/payments - ledger entry, approval and register endpoints"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coop_lending.api.dependencies import get_actor
from coop_lending.api.v1.schemas import (
    CreatePaymentRequest,
    PatchPaymentRequest,
    PaymentRecord,
    RegisterResponse,
)
from coop_lending.domain.exceptions import ValidationError
from coop_lending.domain.roles import Actor
from coop_lending.infrastructure.database.session import get_db
from coop_lending.services.payments import PaymentService
from coop_lending.services.reporting import ReportingService

router = APIRouter()


@router.post("/payments", response_model=PaymentRecord, status_code=201)
def create_payment(
    request_body: CreatePaymentRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Record a payment against a loan.

    Accountants' payments are posted approved; everyone else's await review.
    Not idempotent: clients retrying must deduplicate on their side.
    """
    payment = PaymentService(db).record_payment(
        loan_id=request_body.loan_id,
        amount=request_body.amount,
        actor=actor,
        recorded_by=request_body.payment_by,
    )
    return PaymentRecord.from_domain(payment)


@router.patch("/payments/{payment_id}", response_model=PaymentRecord)
def approve_payment(
    payment_id: str,
    request_body: PatchPaymentRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Approve a pending payment; a second approval is rejected with 409"""
    payment = PaymentService(db).approve_payment(payment_id, actor.role, approver=actor.name)
    return PaymentRecord.from_domain(payment)


@router.get("/payments", response_model=RegisterResponse)
def get_payment_register(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    payment_by: Optional[str] = Query(None, alias="paymentBy"),
    search: Optional[str] = Query(None, description="Loan code or borrower name"),
    assigned_cashier: Optional[str] = Query(None, alias="assignedCashier"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Payment history, newest first, with totals over approved payments.
    """
    if start_date and end_date and start_date > end_date:
        raise ValidationError("startDate must not be after endDate")
    entries, stats = ReportingService(db).payment_register(
        actor,
        start_date=start_date,
        end_date=end_date,
        recorded_by=payment_by,
        search=search,
        assignee_id=assigned_cashier,
    )
    return RegisterResponse.from_domain(entries, stats)
