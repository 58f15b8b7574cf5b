"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, Generator, Optional
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from coop_lending.api.dependencies import get_directory_client
from coop_lending.api.main import create_app
from coop_lending.domain.exceptions import DirectoryAPIError
from coop_lending.domain.models import Loan, LoanStatus, Payment, Schedule
from coop_lending.domain.roles import Actor, Role
from coop_lending.domain.schedule import calculate_schedule
from coop_lending.infrastructure.clients.directory import DirectoryUser
from coop_lending.infrastructure.database.models import Base
from coop_lending.infrastructure.database.session import build_engine, get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

START = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


class FakeDirectoryClient:
    """In-memory stand-in for the user directory"""

    def __init__(self, users: Dict[str, DirectoryUser]):
        self.users = users
        self.fail = False

    async def get_user(self, user_id: str) -> Optional[DirectoryUser]:
        if self.fail:
            raise DirectoryAPIError("Directory API timeout after 5.0s")
        return self.users.get(user_id)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def directory() -> FakeDirectoryClient:
    return FakeDirectoryClient(
        {
            "cashier-a": DirectoryUser(id="cashier-a", full_name="Abebe Kebede", role=Role.CASHIER),
            "cashier-b": DirectoryUser(id="cashier-b", full_name="Sara Tesfaye", role=Role.CASHIER),
            "acct-1": DirectoryUser(id="acct-1", full_name="Hana Girma", role=Role.ACCOUNTANT),
        }
    )


@pytest.fixture
def client(db: Session, directory: FakeDirectoryClient) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_directory_client] = lambda: directory
    return TestClient(app)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", name="Admin", role=Role.ADMIN)


@pytest.fixture
def accountant() -> Actor:
    return Actor(id="acct-1", name="Hana Girma", role=Role.ACCOUNTANT)


@pytest.fixture
def cashier_a() -> Actor:
    return Actor(id="cashier-a", name="Abebe Kebede", role=Role.CASHIER)


@pytest.fixture
def cashier_b() -> Actor:
    return Actor(id="cashier-b", name="Sara Tesfaye", role=Role.CASHIER)


@pytest.fixture
def headers() -> Callable[[Actor], Dict[str, str]]:
    """Build the gateway identity headers for an actor"""

    def _headers(actor: Actor) -> Dict[str, str]:
        return {"X-Actor-Id": actor.id, "X-Actor-Name": actor.name, "X-Actor-Role": actor.role.value}

    return _headers


@pytest.fixture
def make_loan() -> Callable[..., Loan]:
    """Build an in-memory loan with a ledger of (amount, status, days after start) entries"""

    def _make_loan(
        amount: str = "10000",
        status: LoanStatus = LoanStatus.APPROVED,
        payments=(),
        cashier: str = "cashier-a",
        loan_id: str = "loan-1",
        start: datetime = START,
    ) -> Loan:
        schedule: Schedule = calculate_schedule(Decimal(amount), Decimal("0.10"), start)
        ledger = [
            Payment(
                id=f"{loan_id}-p{i}",
                loan_id=loan_id,
                amount=Decimal(str(value)),
                recorded_by="Abebe Kebede",
                paid_at=start + timedelta(days=offset),
                status=payment_status,
            )
            for i, (value, payment_status, offset) in enumerate(payments)
        ]
        return Loan(
            id=loan_id,
            loan_code=f"LOAN-{loan_id.upper()}",
            borrower_id=f"borrower-{loan_id}",
            borrower_name=f"Borrower {loan_id}",
            assigned_cashier_id=cashier,
            schedule=schedule,
            status=status,
            payments=ledger,
        )

    return _make_loan

