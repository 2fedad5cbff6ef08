"""
Tests for the Midtrans notification webhook.
"""
from shared.security_config import compute_notification_signature

from tests.conftest import SERVER_KEY, STORE_HOST


def notification(**overrides):
    body = {
        "transaction_time": "2026-10-19 10:15:00",
        "transaction_status": "settlement",
        "transaction_id": "513f1f01-c9da-474c-9fc9-d5c64364b709",
        "status_code": "200",
        "payment_type": "bank_transfer",
        "order_id": "X123",
        "gross_amount": "10000.00",
        "currency": "IDR",
    }
    body.update(overrides)
    return body


def signed(body):
    body["signature_key"] = compute_notification_signature(
        body["order_id"], body["status_code"], body["gross_amount"], SERVER_KEY
    )
    return body


def test_settlement_marks_order_paid(notification_client, fake_http):
    fake_http.reply("PATCH", STORE_HOST, 204)

    response = notification_client.post("/notifications", json={"order_id": "X123", "transaction_status": "settlement"})

    assert response.status_code == 200
    assert response.json() == {"message": "OK", "status": "paid"}
    assert response.headers["access-control-allow-origin"] == "*"
    assert fake_http.store_writes() == [{"status": "paid"}]
    assert fake_http.calls(STORE_HOST)[0].url.params["id"] == "eq.X123"


def test_pending_is_written_unconditionally(notification_client, fake_http):
    fake_http.reply("PATCH", STORE_HOST, 204)

    response = notification_client.post("/notifications", json=notification(transaction_status="pending"))

    assert response.json()["status"] == "pending_payment"
    assert fake_http.store_writes() == [{"status": "pending_payment"}]


def test_challenged_capture_stays_pending(notification_client, fake_http):
    fake_http.reply("PATCH", STORE_HOST, 204)

    response = notification_client.post(
        "/notifications", json=notification(transaction_status="capture", fraud_status="challenge")
    )

    assert response.json()["status"] == "pending_payment"


def test_expire_cancels_order(notification_client, fake_http):
    fake_http.reply("PATCH", STORE_HOST, 204)

    response = notification_client.post("/notifications", json=notification(transaction_status="expire"))

    assert response.json()["status"] == "cancelled"
    assert fake_http.store_writes() == [{"status": "cancelled"}]


def test_missing_order_id_is_rejected_without_write(notification_client, fake_http):
    response = notification_client.post("/notifications", json={"transaction_status": "settlement"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing order_id in notification"}
    assert response.headers["access-control-allow-origin"] == "*"
    assert fake_http.requests == []


def test_numeric_order_id_is_accepted(notification_client, fake_http):
    fake_http.reply("PATCH", STORE_HOST, 204)

    response = notification_client.post("/notifications", json={"order_id": 42, "transaction_status": "deny"})

    assert response.status_code == 200
    assert fake_http.calls(STORE_HOST)[0].url.params["id"] == "eq.42"


def test_missing_store_config_is_a_400(notification_client, fake_http, settings):
    settings.SUPABASE_SERVICE_ROLE_KEY = ""

    response = notification_client.post("/notifications", json=notification())

    assert response.status_code == 400
    assert "not configured" in response.json()["error"]
    assert fake_http.requests == []


def test_storage_failure_is_a_400(notification_client, fake_http):
    fake_http.reply("PATCH", STORE_HOST, 500, {"message": "connection reset"})

    response = notification_client.post("/notifications", json=notification())

    assert response.status_code == 400
    assert "connection reset" in response.json()["error"]


def test_unmatched_order_is_still_ok(notification_client, fake_http):
    # PostgREST answers 204 whether or not a row matched
    fake_http.reply("PATCH", STORE_HOST, 204)

    response = notification_client.post("/notifications", json=notification(order_id="DOES-NOT-EXIST"))

    assert response.status_code == 200


def test_signature_not_checked_by_default(notification_client, fake_http):
    fake_http.reply("PATCH", STORE_HOST, 204)

    response = notification_client.post("/notifications", json=notification(signature_key="bogus"))

    assert response.status_code == 200


def test_valid_signature_accepted_when_verification_enabled(notification_client, fake_http, settings):
    settings.MIDTRANS_VERIFY_SIGNATURE = True
    fake_http.reply("PATCH", STORE_HOST, 204)

    response = notification_client.post("/notifications", json=signed(notification()))

    assert response.status_code == 200
    assert response.json()["status"] == "paid"


def test_tampered_notification_rejected_when_verification_enabled(notification_client, fake_http, settings):
    settings.MIDTRANS_VERIFY_SIGNATURE = True
    body = signed(notification())
    body["gross_amount"] = "1.00"

    response = notification_client.post("/notifications", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature_key"}
    assert fake_http.requests == []


def test_unsigned_notification_rejected_when_verification_enabled(notification_client, fake_http, settings):
    settings.MIDTRANS_VERIFY_SIGNATURE = True

    response = notification_client.post("/notifications", json=notification())

    assert response.status_code == 400
    assert fake_http.requests == []


def test_options_short_circuits(notification_client, fake_http):
    response = notification_client.options("/notifications")

    assert response.status_code == 200
    assert response.text == "ok"
    assert fake_http.requests == []


def test_non_object_body_is_a_400(notification_client, fake_http):
    response = notification_client.post("/notifications", json=["order_id", "X123"])

    assert response.status_code == 400
    assert "error" in response.json()
    assert fake_http.requests == []


def test_health_reports_signature_mode(notification_client, settings):
    response = notification_client.get("/health")

    assert response.status_code == 200
    assert response.json()["dependencies"] == {"supabase": "configured", "signature_verification": "disabled"}
