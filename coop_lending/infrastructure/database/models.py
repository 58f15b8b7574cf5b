"""SQLAlchemy ORM models for loans and their payment ledger"""

import uuid
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(14, 2)


class LoanRecord(Base):
    """Loan with its immutable-by-default schedule columns"""

    __tablename__ = "loan"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_code = Column(String(16), nullable=False, unique=True)
    borrower_id = Column(Text, nullable=False, index=True)
    borrower_name = Column(Text, nullable=False)
    assigned_cashier_id = Column(Text, nullable=False, index=True)

    # Schedule: written together at creation and on authorized edits
    requested_amount = Column(MONEY, nullable=False)
    deduction_rate = Column(Numeric(5, 4), nullable=False)
    deduction_amount = Column(MONEY, nullable=False)
    disbursed_amount = Column(MONEY, nullable=False)
    daily_payment = Column(MONEY, nullable=False)
    total_payable = Column(MONEY, nullable=False)
    term_days = Column(Integer, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    expected_end_date = Column(DateTime(timezone=True), nullable=False)
    schedule_version = Column(Integer, nullable=False, default=1)

    # Review decision only; COMPLETED/OVERDUE are derived on read
    status = Column(Text, nullable=False, default="PENDING")
    decided_by = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    payments = relationship(
        "PaymentRecord",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="PaymentRecord.paid_at",
    )


class PaymentRecord(Base):
    """Append-only repayment event"""

    __tablename__ = "loan_payment"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_loan_payment_amount_positive"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(UUID(as_uuid=True), ForeignKey("loan.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    recorded_by = Column(Text, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default="PENDING")
    approved_by = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("LoanRecord", back_populates="payments")
