from __future__ import annotations

from backend.app.main import app


def _pay(client, client_id: int, payment_date: str, period: str = "MONTHLY"):
    response = client.post(
        "/payments",
        json={
            "client_id": client_id,
            "payment_date": payment_date,
            "amount": "300",
            "subscription_period": period,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_client_without_payments_is_unpaid(client, seed_basic_data):
    member = seed_basic_data["client"]

    response = client.get(
        f"/clients/{member.id}/subscription-status",
        params={"reference_date": "2024-05-01"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "UNPAID"
    assert data["current_payment_id"] is None
    assert data["new_this_month"] is False


def test_client_status_follows_latest_coverage(client, seed_basic_data):
    member = seed_basic_data["client"]
    _pay(client, member.id, "2024-01-10")
    latest = _pay(client, member.id, "2024-02-10", period="QUARTERLY")

    up_to_date = client.get(
        f"/clients/{member.id}/subscription-status",
        params={"reference_date": "2024-04-01"},
    ).json()
    assert up_to_date["status"] == "UP_TO_DATE"
    assert up_to_date["current_payment_id"] == latest["id"]
    assert up_to_date["current_next_payment_date"] == "2024-05-10"
    assert up_to_date["subscription_period"] == "QUARTERLY"

    due_today = client.get(
        f"/clients/{member.id}/subscription-status",
        params={"reference_date": "2024-05-10"},
    ).json()
    assert due_today["status"] == "LATE"


def test_first_payment_marks_client_as_new(client, seed_basic_data):
    member = seed_basic_data["client"]
    _pay(client, member.id, "2024-07-03")

    data = client.get(
        f"/clients/{member.id}/subscription-status",
        params={"reference_date": "2024-07-20"},
    ).json()

    assert data["new_this_month"] is True


def test_unknown_client_status_returns_not_found(client):
    response = client.get("/clients/424242/subscription-status")

    assert response.status_code == 404


def test_status_route_is_registered():
    paths = {getattr(route, "path", None) for route in app.routes}

    assert "/clients/{client_id}/subscription-status" in paths
