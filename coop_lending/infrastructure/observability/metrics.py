"""Prometheus metrics for loan origination, ledger activity and collaborator health"""

from prometheus_client import Counter, Histogram

from coop_lending.domain.models import PaymentStatus

# Loan metrics
loans_created_counter = Counter(
    "coop_loans_created_total",
    "Total loans originated",
)

loan_code_collision_counter = Counter(
    "coop_loan_code_collisions_total",
    "Generated loan codes that were already taken",
)

loan_decision_counter = Counter(
    "coop_loan_decisions_total",
    "Manual loan review decisions",
    ["outcome"],  # APPROVED | DENIED
)

# Ledger metrics
payments_recorded_counter = Counter(
    "coop_payments_recorded_total",
    "Payments entered into the ledger",
    ["outcome"],  # pending | auto_approved
)

payment_amount_histogram = Histogram(
    "coop_payment_amount",
    "Recorded payment amounts in base currency units",
    buckets=[10, 50, 100, 250, 500, 1000, 5000, 10000],
)

payment_approval_counter = Counter(
    "coop_payment_approvals_total",
    "Payment approval attempts",
    ["outcome"],  # approved | rejected_state | rejected_auth
)

# Directory API metrics
directory_failures_counter = Counter(
    "directory_failures_total",
    "Failed user directory calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment(status: PaymentStatus, amount) -> None:
    """Record ledger metrics split by whether the payment skipped review"""
    outcome = "auto_approved" if status == PaymentStatus.APPROVED else "pending"
    payments_recorded_counter.labels(outcome=outcome).inc()
    payment_amount_histogram.observe(float(amount))
