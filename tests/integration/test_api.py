"""Integration tests for API endpoints"""

import pytest
from fastapi.testclient import TestClient
from coop_lending.domain.roles import Actor, Role

pytestmark = pytest.mark.integration

START = "2026-03-01T09:30:00Z"


@pytest.fixture
def create_loan(client: TestClient, headers, admin):
    """POST a loan as admin and return its wire record"""

    def _create(user_id="borrower-1", amount=10000, cashier="cashier-a", approve=True):
        response = client.post(
            "/v1/loans",
            json={
                "userId": user_id,
                "fullName": f"Name {user_id}",
                "loanAmount": amount,
                "assignedCashier": cashier,
                "startDate": START,
            },
            headers=headers(admin),
        )
        assert response.status_code == 201, response.text
        loan = response.json()
        if approve:
            response = client.patch(f"/v1/loans/{loan['id']}", json={"status": "APPROVED"}, headers=headers(admin))
            assert response.status_code == 200, response.text
            loan = response.json()
        return loan

    return _create


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "coop_payments_recorded_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


def test_create_loan_returns_wire_record(create_loan):
    """Test POST /v1/loans computes the schedule"""
    loan = create_loan(approve=False)

    assert loan["loanId"].startswith("LOAN-")
    assert loan["status"] == "PENDING"
    assert loan["requestedAmount"] == 10000
    assert loan["loanAmount"] == 10000
    assert loan["deduction"] == 1000
    assert loan["actualAmount"] == 9000
    assert loan["dailyPayment"] == 100
    assert loan["totalToPay"] == 10500
    assert loan["paidLoan"] == 0
    assert loan["unpaidLoan"] == 10500
    assert loan["remainingDays"] == 105
    assert loan["expectDate"].startswith("2026-06-14")
    assert loan["payments"] == []


def test_create_loan_requires_cashier_assignee(client: TestClient, headers, admin):
    response = client.post(
        "/v1/loans",
        json={"userId": "b-1", "fullName": "Meron", "loanAmount": 1000, "assignedCashier": "acct-1"},
        headers=headers(admin),
    )
    assert response.status_code == 422
    assert "not a cashier" in response.json()["detail"]


def test_create_loan_directory_unavailable(client: TestClient, headers, admin, directory):
    directory.fail = True
    response = client.post(
        "/v1/loans",
        json={"userId": "b-1", "fullName": "Meron", "loanAmount": 1000, "assignedCashier": "cashier-a"},
        headers=headers(admin),
    )
    assert response.status_code == 503


def test_create_loan_forbidden_for_cashier(client: TestClient, headers, cashier_a):
    response = client.post(
        "/v1/loans",
        json={"userId": "b-1", "fullName": "Meron", "loanAmount": 1000, "assignedCashier": "cashier-a"},
        headers=headers(cashier_a),
    )
    assert response.status_code == 403


def test_create_loan_rejects_non_positive_amount(client: TestClient, headers, admin):
    response = client.post(
        "/v1/loans",
        json={"userId": "b-1", "fullName": "Meron", "loanAmount": 0, "assignedCashier": "cashier-a"},
        headers=headers(admin),
    )
    assert response.status_code == 422


def test_missing_actor_headers_rejected(client: TestClient):
    assert client.get("/v1/loans").status_code == 422


def test_unknown_role_rejected(client: TestClient):
    response = client.get("/v1/loans", headers={"X-Actor-Id": "x", "X-Actor-Role": "AUDITOR"})
    assert response.status_code == 422


def test_payment_approval_flow(client: TestClient, headers, cashier_a, accountant, create_loan):
    """Cashier submits, accountant approves, second approval conflicts"""
    loan = create_loan()

    response = client.post(
        "/v1/payments",
        json={"loanId": loan["id"], "amount": 100},
        headers=headers(cashier_a),
    )
    assert response.status_code == 201
    payment = response.json()
    assert payment["status"] == "PENDING"
    assert payment["paymentBy"] == "Abebe Kebede"

    loan_after_submit = client.get(f"/v1/loans/{loan['id']}", headers=headers(accountant)).json()
    assert loan_after_submit["paidLoan"] == 0

    response = client.patch(f"/v1/payments/{payment['id']}", json={"status": "APPROVED"}, headers=headers(accountant))
    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"

    response = client.patch(f"/v1/payments/{payment['id']}", json={"status": "APPROVED"}, headers=headers(accountant))
    assert response.status_code == 409

    loan_after = client.get(f"/v1/loans/{loan['id']}", headers=headers(accountant)).json()
    assert loan_after["paidLoan"] == 100
    assert loan_after["unpaidLoan"] == 10400
    assert loan_after["remainingDays"] == 104
    assert loan_after["payments"][0]["status"] == "APPROVED"


def test_cashier_cannot_approve(client: TestClient, headers, cashier_a, create_loan):
    loan = create_loan()
    payment = client.post("/v1/payments", json={"loanId": loan["id"], "amount": 50}, headers=headers(cashier_a)).json()

    response = client.patch(f"/v1/payments/{payment['id']}", json={"status": "APPROVED"}, headers=headers(cashier_a))
    assert response.status_code == 403


def test_accountant_payment_auto_approved(client: TestClient, headers, accountant, create_loan):
    loan = create_loan()
    response = client.post("/v1/payments", json={"loanId": loan["id"], "amount": 250}, headers=headers(accountant))

    assert response.status_code == 201
    assert response.json()["status"] == "APPROVED"


def test_payment_validation_and_not_found(client: TestClient, headers, cashier_a, create_loan):
    loan = create_loan()
    negative = client.post("/v1/payments", json={"loanId": loan["id"], "amount": -5}, headers=headers(cashier_a))
    missing = client.post(
        "/v1/payments",
        json={"loanId": "00000000-0000-0000-0000-000000000000", "amount": 5},
        headers=headers(cashier_a),
    )
    assert negative.status_code == 422
    assert missing.status_code == 404


def test_list_loans_scoped_for_cashier(client: TestClient, headers, admin, cashier_a, create_loan):
    create_loan(user_id="b-1", cashier="cashier-a")
    create_loan(user_id="b-2", cashier="cashier-b")

    mine = client.get("/v1/loans", headers=headers(cashier_a)).json()
    theirs = client.get("/v1/loans?assignedCashier=cashier-b", headers=headers(cashier_a)).json()
    everything = client.get("/v1/loans", headers=headers(admin)).json()

    assert [l["userId"] for l in mine] == ["b-1"]
    assert [l["userId"] for l in theirs] == ["b-1"]
    assert len(everything) == 2


def test_dashboard_scoped(client: TestClient, headers, admin, cashier_a, accountant, create_loan):
    a = create_loan(user_id="b-1", cashier="cashier-a")
    b = create_loan(user_id="b-2", amount=5000, cashier="cashier-b")
    client.post("/v1/payments", json={"loanId": a["id"], "amount": 100}, headers=headers(accountant))
    client.post("/v1/payments", json={"loanId": a["id"], "amount": 25}, headers=headers(cashier_a))
    client.post("/v1/payments", json={"loanId": b["id"], "amount": 75}, headers=headers(admin))

    scoped = client.get("/v1/loans/dashboard", headers=headers(cashier_a)).json()
    total = client.get("/v1/loans/dashboard", headers=headers(admin)).json()

    assert scoped == {
        "totalLoans": 1,
        "totalDailyExpected": 100.0,
        "todayCollected": 100.0,
        "pendingApprovalAmount": 25.0,
        "scope": "assigned",
    }
    assert total["totalLoans"] == 2
    assert total["totalDailyExpected"] == 150.0
    assert total["pendingApprovalAmount"] == 100.0
    assert total["scope"] == "total"


def test_patch_loan_schedule_edit(client: TestClient, headers, admin, create_loan):
    loan = create_loan()
    response = client.patch(
        f"/v1/loans/{loan['id']}",
        json={"requestedAmount": 20000, "deduction": 1, "totalToPay": 2},
        headers=headers(admin),
    )

    assert response.status_code == 200
    edited = response.json()
    assert edited["requestedAmount"] == 20000
    assert edited["deduction"] == 2000
    assert edited["actualAmount"] == 18000
    assert edited["dailyPayment"] == 200
    assert edited["totalToPay"] == 21000


def test_patch_denied_loan_conflicts(client: TestClient, headers, admin, create_loan):
    loan = create_loan(approve=False)
    denied = client.patch(f"/v1/loans/{loan['id']}", json={"status": "DENIED"}, headers=headers(admin))
    assert denied.json()["status"] == "DENIED"

    edit = client.patch(f"/v1/loans/{loan['id']}", json={"requestedAmount": 500}, headers=headers(admin))
    assert edit.status_code == 409


def test_patch_loan_cannot_force_derived_status(client: TestClient, headers, admin, create_loan):
    loan = create_loan(approve=False)
    response = client.patch(f"/v1/loans/{loan['id']}", json={"status": "COMPLETED"}, headers=headers(admin))
    assert response.status_code == 422


def test_loan_balance_as_of(client: TestClient, headers, admin, accountant, create_loan):
    loan = create_loan()
    client.post("/v1/payments", json={"loanId": loan["id"], "amount": 500}, headers=headers(accountant))

    balance = client.get(f"/v1/loans/{loan['id']}/balance?asOf=2026-03-11", headers=headers(admin)).json()

    assert balance["asOf"] == "2026-03-11"
    assert balance["paidAmount"] == 500
    assert balance["unpaidAmount"] == 10000
    assert balance["scheduledUnpaidAmount"] == 10000
    assert balance["remainingDays"] == 100
    assert balance["daysElapsed"] == 10
    assert balance["daysExpectedPaid"] == 5
    assert balance["unpaidDays"] == 5
    assert balance["adherence"] == "BEHIND"
    assert balance["status"] == "OVERDUE"


def test_adherence_report(client: TestClient, headers, admin, accountant, create_loan):
    behind = create_loan(user_id="b-1")
    ahead = create_loan(user_id="b-2")
    create_loan(user_id="b-3", approve=False)
    client.post("/v1/payments", json={"loanId": behind["id"], "amount": 100}, headers=headers(accountant))
    client.post("/v1/payments", json={"loanId": ahead["id"], "amount": 2000}, headers=headers(accountant))

    report = client.get("/v1/reports/adherence?asOf=2026-03-06", headers=headers(admin)).json()

    assert report["asOf"] == "2026-03-06"
    assert report["summary"] == {"overdue": 1, "onTrack": 0, "ahead": 1}
    rows = {r["id"]: r for r in report["loans"]}
    assert rows[behind["id"]]["unpaidDays"] == 4
    assert rows[behind["id"]]["daysSinceStart"] == 5
    assert rows[ahead["id"]]["daysShouldHavePaid"] == 20


def test_payment_register(client: TestClient, headers, admin, cashier_a, accountant, create_loan):
    loan = create_loan()
    client.post("/v1/payments", json={"loanId": loan["id"], "amount": 100}, headers=headers(cashier_a))
    client.post("/v1/payments", json={"loanId": loan["id"], "amount": 300}, headers=headers(accountant))

    register = client.get("/v1/payments", headers=headers(admin)).json()

    assert [p["amount"] for p in register["payments"]] == [300, 100]
    assert register["payments"][0]["loanId"] == loan["loanId"]
    assert register["stats"] == {"totalAmount": 300.0, "averageAmount": 300.0, "totalPayments": 1}

    bad_range = client.get("/v1/payments?startDate=2026-05-02&endDate=2026-05-01", headers=headers(admin))
    assert bad_range.status_code == 422


def test_borrower_loan_lookup(client: TestClient, headers, create_loan):
    loan = create_loan(user_id="borrower-7")
    owner = Actor(id="borrower-7", name="Name borrower-7", role=Role.BORROWER)
    stranger = Actor(id="borrower-8", name="Other", role=Role.BORROWER)

    mine = client.get("/v1/loans/user/borrower-7", headers=headers(owner))
    assert mine.status_code == 200
    assert mine.json()["loanId"] == loan["loanId"]

    assert client.get("/v1/loans/user/borrower-7", headers=headers(stranger)).status_code == 403
    assert client.get("/v1/loans/user/borrower-8", headers=headers(stranger)).status_code == 404


def test_get_loan_errors(client: TestClient, headers, admin):
    assert client.get("/v1/loans/not-a-uuid", headers=headers(admin)).status_code == 422
    assert client.get("/v1/loans/00000000-0000-0000-0000-000000000000", headers=headers(admin)).status_code == 404


def test_cashier_cannot_touch_other_cashiers_loan(client: TestClient, headers, cashier_b, create_loan):
    loan = create_loan(cashier="cashier-a")

    read = client.get(f"/v1/loans/{loan['id']}", headers=headers(cashier_b))
    balance = client.get(f"/v1/loans/{loan['id']}/balance", headers=headers(cashier_b))
    posted = client.post("/v1/payments", json={"loanId": loan["id"], "amount": 100}, headers=headers(cashier_b))

    assert read.status_code == 403
    assert balance.status_code == 403
    assert posted.status_code == 403


def test_sub_cent_amounts_rejected(client: TestClient, headers, admin, accountant, create_loan):
    loan = create_loan()
    payment = client.post("/v1/payments", json={"loanId": loan["id"], "amount": 0.004}, headers=headers(accountant))
    tiny_loan = client.post(
        "/v1/loans",
        json={"userId": "b-9", "fullName": "Tiny", "loanAmount": 0.004, "assignedCashier": "cashier-a"},
        headers=headers(admin),
    )

    assert payment.status_code == 422
    assert tiny_loan.status_code == 422
