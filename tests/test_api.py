import sys
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from conftest import add_all, march_sessions, setup_test_db
from payout_server.api import deps, payout_router
from payout_server.main import app
from payout_server.models.registry import Reader, Report

TOKEN = "s3cret"
AUTH = {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def api(monkeypatch, tmp_path):
    TestingSessionLocal = setup_test_db()
    monkeypatch.setattr(deps, "SessionLocal", TestingSessionLocal)
    monkeypatch.setattr(deps, "ReadSessionLocal", TestingSessionLocal)
    monkeypatch.setattr(deps, "RECEIPTS_DIR", tmp_path)
    monkeypatch.setenv("ADMIN_API_TOKENS", f"{TOKEN}:ops@example.com")

    sent = []

    async def fake_notify(payout, reader_name, operator, previous_status=None):
        sent.append((payout["id"], payout["status"], reader_name, operator, previous_status))

    monkeypatch.setattr(payout_router, "notify_payout", fake_notify)

    (reader,) = add_all(TestingSessionLocal, Reader(display_name="Luna", preferred_currency="USD"))
    add_all(TestingSessionLocal, *march_sessions(reader))
    add_all(
        TestingSessionLocal,
        Report(reporter_id=1, reported_id=2, reason="Spam", created_at=datetime(2024, 3, 1)),
    )

    with TestClient(app) as client:
        yield client, reader, sent


def process_march(client, reader):
    return client.post(
        f"/admin-dashboard/process-payout/{reader.id}",
        params={"month": 3, "year": 2024},
        headers=AUTH,
    )


def test_health_needs_no_token(api):
    client, _, _ = api
    assert client.get("/health").json() == {"status": "ok"}


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}])
def test_admin_routes_require_token(api, headers):
    client, _, _ = api

    response = client.get("/admin-dashboard/monthly-payouts", headers=headers)

    assert response.status_code == 401
    assert "message" in response.json()["error"]


def test_process_then_complete(api):
    client, reader, sent = api

    response = process_march(client, reader)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    payout = body["data"]
    assert payout["amount"] == 45
    assert payout["sessions_count"] == 3
    assert payout["period_start"] == "2024-03-01"
    assert payout["processed_by"] == "ops@example.com"

    again = process_march(client, reader)
    assert again.status_code == 409
    assert again.json()["error"]["message"]

    completed = client.patch(
        f"/admin-dashboard/update-payout-status/{payout['id']}",
        json={"status": "completed", "transaction_reference": "PP-77"},
        headers=AUTH,
    )
    assert completed.status_code == 200
    assert completed.json()["data"]["status"] == "completed"
    assert completed.json()["data"]["transaction_reference"] == "PP-77"

    back = client.patch(
        f"/admin-dashboard/update-payout-status/{payout['id']}",
        json={"status": "pending"},
        headers=AUTH,
    )
    assert back.status_code == 400
    assert "pending" in back.json()["error"]["message"]

    assert sent == [
        (payout["id"], "pending", "Luna", "ops@example.com", None),
        (payout["id"], "completed", "Luna", "ops@example.com", "pending"),
    ]


def test_not_found_and_bad_input(api):
    client, reader, _ = api

    missing = client.post("/admin-dashboard/process-payout/999", headers=AUTH)
    assert missing.status_code == 404
    assert missing.json()["error"]["message"]

    bad_currency = client.post(
        f"/admin-dashboard/process-payout/{reader.id}", params={"currency": "GBP"}, headers=AUTH
    )
    assert bad_currency.status_code == 400

    half_period = client.post(
        f"/admin-dashboard/process-payout/{reader.id}", params={"month": 3}, headers=AUTH
    )
    assert half_period.status_code == 400

    bad_status = client.patch(
        "/admin-dashboard/update-payout-status/1", json={"status": "paid"}, headers=AUTH
    )
    assert bad_status.status_code == 400


def test_monthly_view_is_cacheable(api):
    client, reader, _ = api
    process_march(client, reader)

    response = client.get(
        "/admin-dashboard/monthly-payouts", params={"month": 3, "year": 2024}, headers=AUTH
    )

    assert response.status_code == 200
    assert response.headers["cache-control"].startswith("private, max-age=")
    body = response.json()
    assert body["summary"]["processed_count"] == 1
    assert body["data"][0]["payout_status"] == "pending"


def test_upload_receipt(api, tmp_path):
    client, reader, _ = api
    payout_id = process_march(client, reader).json()["data"]["id"]

    response = client.post(
        f"/admin-dashboard/upload-payout-receipt/{payout_id}",
        files={"file": ("recibo.pdf", b"%PDF-1.4", "application/pdf")},
        headers=AUTH,
    )

    assert response.status_code == 200
    receipt_url = response.json()["data"]["receipt_url"]
    assert receipt_url.startswith(f"/receipts/payouts/{payout_id}/")
    assert (tmp_path / receipt_url[len("/receipts/"):]).read_bytes() == b"%PDF-1.4"

    rejected = client.post(
        f"/admin-dashboard/upload-payout-receipt/{payout_id}",
        files={"file": ("recibo.exe", b"MZ", "application/octet-stream")},
        headers=AUTH,
    )
    assert rejected.status_code == 400


def test_export_csv(api):
    client, reader, _ = api
    process_march(client, reader)

    response = client.get(
        "/admin-dashboard/export-payouts",
        params={"month": 3, "year": 2024, "status": "processing"},
        headers=AUTH,
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="pagos_2024_03_processing.csv"' in response.headers["content-disposition"]
    lines = response.text.strip().split("\n")
    assert lines[0].startswith("id,reader_id,reader_name")
    assert len(lines) == 2


def test_history_and_pending(api):
    client, reader, _ = api

    pending = client.get("/admin-dashboard/pending-payouts", headers=AUTH).json()
    assert pending["count"] == 1
    assert pending["total_pending"] is None

    process_march(client, reader)
    history = client.get(
        "/admin-dashboard/payout-history",
        params={"readerId": reader.id, "platform": "paypal_usd"},
        headers=AUTH,
    ).json()
    assert history["pagination"]["total"] == 1
    assert history["by_platform"]["paypal_usd"]["count"] == 1

    too_many = client.get(
        "/admin-dashboard/payout-history", params={"limit": 500}, headers=AUTH
    )
    assert too_many.status_code == 400


def test_finances_and_overview(api):
    client, _, _ = api

    finances = client.get(
        "/admin-dashboard/finances", params={"month": 3, "year": 2024}, headers=AUTH
    ).json()["data"]
    assert finances["currency"] == "ALL"
    assert finances["platform_summary"]["paypal"]["usd"]["expenses"] == 45

    overview = client.get(
        "/admin-dashboard/overview",
        params={"month": 3, "year": 2024, "currency": "USD"},
        headers=AUTH,
    ).json()["data"]
    assert overview["consultations_count"] == 3
    assert overview["top_tarotistas"][0]["display_name"] == "Luna"

    bad_month = client.get(
        "/admin-dashboard/finances", params={"month": 13, "year": 2024}, headers=AUTH
    )
    assert bad_month.status_code == 400


def test_readers_and_reports(api):
    client, reader, _ = api

    readers = client.get("/admin-dashboard/tarotistas", headers=AUTH).json()
    assert readers["data"][0]["pending_payout"] == 144

    switched = client.patch(
        f"/admin-dashboard/tarotista/{reader.id}/currency",
        json={"preferred_currency": "ARS"},
        headers=AUTH,
    ).json()
    assert switched["data"]["platform"] == "mercadopago"

    status = client.patch(
        f"/admin-dashboard/tarotista/{reader.id}/status",
        json={"status": "inactive"},
        headers=AUTH,
    ).json()
    assert status["data"]["new_status"] == "inactive"

    count = client.get("/admin-dashboard/pending-reports-count", headers=AUTH).json()
    assert count == {"data": {"pending_count": 1}}

    reports = client.get("/admin-dashboard/reports", headers=AUTH).json()
    report_id = reports["data"][0]["id"]
    updated = client.patch(
        f"/admin-dashboard/update-report/{report_id}",
        json={"status": "dismissed", "resolution_notes": "Sin evidencia"},
        headers=AUTH,
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["reviewed_by"] == "ops@example.com"


def test_tarotista_detail(api):
    client, reader, _ = api
    process_march(client, reader)

    response = client.get(f"/admin-dashboard/tarotista/{reader.id}", headers=AUTH)

    assert response.status_code == 200
    assert response.headers["cache-control"].startswith("private, max-age=")
    detail = response.json()["data"]
    assert detail["total_earned"] == 144
    assert detail["pending_payout"] == 99
    assert detail["consultations_count"] == 4
    assert [m["month"] for m in detail["monthly_stats"]] == ["2024-03", "2024-04"]

    missing = client.get("/admin-dashboard/tarotista/999", headers=AUTH)
    assert missing.status_code == 404
