import pytest

pytestmark = pytest.mark.integration


def test_balance(client, auth_headers):
    headers = auth_headers()
    resp = client.get("/api/credits/balance", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["credits"] == 10
    assert set(data) == {"credits", "userId", "lastUpdated"}


def test_deduct_and_history(client, auth_headers):
    headers = auth_headers()
    resp = client.post("/api/credits/deduct", headers=headers, json={
        "credits": 4, "description": "Batch export", "referenceId": "exp-1", "referenceType": "export",
    })
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["creditsDeducted"] == 4
    assert data["newBalance"] == 6

    history = client.get("/api/credits/history", headers=headers).json()["data"]
    assert history["pagination"] == {"total": 2, "page": 1, "limit": 20, "pages": 1}
    latest, bonus = history["transactions"]
    assert (latest["type"], latest["amount"], latest["balanceAfter"]) == ("usage", -4, 6)
    assert latest["referenceId"] == "exp-1"
    assert (bonus["type"], bonus["amount"]) == ("signup_bonus", 10)


def test_deduct_insufficient_returns_403_with_payload(client, auth_headers):
    headers = auth_headers()
    resp = client.post("/api/credits/deduct", headers=headers, json={"credits": 50})
    assert resp.status_code == 403
    body = resp.json()
    assert body["error"]["code"] == "INSUFFICIENT_CREDITS"
    assert body["data"]["requiredCredits"] == 50
    assert body["data"]["availableCredits"] == 10

    balance = client.get("/api/credits/balance", headers=headers).json()["data"]["credits"]
    assert balance == 10


def test_deduct_rejects_zero(client, auth_headers):
    resp = client.post("/api/credits/deduct", headers=auth_headers(), json={"credits": 0})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_validate(client, auth_headers):
    headers = auth_headers()
    ok = client.post("/api/credits/validate", headers=headers, json={"requiredCredits": 5})
    assert ok.status_code == 200
    assert ok.json()["data"] == {"requiredCredits": 5, "availableCredits": 10, "operation": "generation"}

    short = client.post("/api/credits/validate", headers=headers, json={"requiredCredits": 11, "operation": "export"})
    assert short.status_code == 403
    assert short.json()["data"] == {"requiredCredits": 11, "availableCredits": 10, "operation": "export"}


def test_packages_are_public(client):
    resp = client.get("/api/credits/packages")
    assert resp.status_code == 200
    packages = resp.json()["data"]["packages"]
    assert [p["id"] for p in packages] == ["starter", "pro", "business"]
    assert packages[1]["isFeatured"] is True
    assert packages[0]["creditAmount"] == 100


def test_purchase_requires_package_id(client, auth_headers):
    resp = client.post("/api/credits/purchase", headers=auth_headers(), json={})
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_purchase_unknown_package(client, auth_headers):
    resp = client.post("/api/credits/purchase", headers=auth_headers(), json={"packageId": "platinum"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


def test_purchase_flow_credits_once(client, auth_headers):
    headers = auth_headers()
    started = client.post("/api/credits/purchase", headers=headers, json={"packageId": "starter"})
    assert started.status_code == 200
    session_id = started.json()["data"]["paymentSessionId"]
    assert started.json()["data"]["status"] == "pending"

    done = client.post("/api/credits/purchase/complete", headers=headers, json={"paymentSessionId": session_id})
    assert done.status_code == 200
    assert done.json()["data"]["status"] == "completed"
    assert done.json()["data"]["newBalance"] == 110

    again = client.post("/api/credits/purchase/complete", headers=headers, json={"paymentSessionId": session_id})
    assert again.status_code == 200
    assert client.get("/api/credits/balance", headers=headers).json()["data"]["credits"] == 110


def test_audit_reports_consistent_ledger(client, auth_headers):
    headers = auth_headers()
    client.post("/api/credits/deduct", headers=headers, json={"credits": 3})
    resp = client.get("/api/credits/audit", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["consistent"] is True
    assert data["balance"] == data["ledgerSum"] == 7
    assert data["transactionCount"] == 2
