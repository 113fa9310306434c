from __future__ import annotations

from datetime import date
from decimal import Decimal

from backend.app import models
from backend.app.main import LOCAL_DEVELOPMENT_ORIGIN
from backend.app.services import PaymentServiceError


def _payment_payload(client_id: int, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "payment_date": date(2024, 1, 1).isoformat(),
        "amount": "350.00",
        "subscription_period": models.PaymentPeriod.MONTHLY.value,
    }
    payload.update(overrides)
    return payload


def test_create_payment_resolves_monthly_coverage(client, db_session, seed_basic_data):
    member = seed_basic_data["client"]

    response = client.post(
        "/payments",
        json=_payment_payload(member.id, notes="  Pago en efectivo  ", recorded_by="recepcion"),
    )
    assert response.status_code == 201, response.text

    data = response.json()
    assert data["client_id"] == member.id
    assert data["payment_date"] == "2024-01-01"
    assert data["next_payment_date"] == "2024-02-01"
    assert Decimal(str(data["amount"])) == Decimal("350.00")
    assert data["subscription_period"] == "MONTHLY"
    assert data["notes"] == "Pago en efectivo"
    assert data["is_day_pass"] is False
    assert data["is_deleted"] is False

    db_session.expire_all()
    stored_client = db_session.get(models.Client, member.id)
    assert stored_client.subscription_period == models.PaymentPeriod.MONTHLY

    audit = (
        db_session.query(models.PaymentAuditLog)
        .filter(models.PaymentAuditLog.payment_id == data["id"])
        .all()
    )
    assert [entry.action for entry in audit] == [models.PaymentAuditAction.CREATED]
    assert audit[0].snapshot["amount"] == "350.00"


def test_client_period_mirrors_latest_payment(client, db_session, seed_basic_data):
    member = seed_basic_data["client"]

    first = client.post("/payments", json=_payment_payload(member.id))
    assert first.status_code == 201, first.text
    second = client.post(
        "/payments",
        json=_payment_payload(
            member.id,
            payment_date="2024-02-01",
            subscription_period=models.PaymentPeriod.ANNUAL.value,
        ),
    )
    assert second.status_code == 201, second.text
    assert second.json()["next_payment_date"] == "2025-02-01"

    db_session.expire_all()
    assert db_session.get(models.Client, member.id).subscription_period == models.PaymentPeriod.ANNUAL


def test_day_pass_covers_one_day(client, seed_basic_data):
    member = seed_basic_data["client"]

    response = client.post(
        "/payments",
        json={
            "client_id": member.id,
            "payment_date": "2024-03-10",
            "amount": "5",
            "is_day_pass": True,
        },
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["next_payment_date"] == "2024-03-11"
    assert Decimal(str(data["amount"])) == Decimal("5.00")
    assert data["is_day_pass"] is True
    assert data["subscription_period"] == "MONTHLY"


def test_promotion_overrides_amount_and_duration(client, seed_basic_data):
    member = seed_basic_data["client"]
    promotion = seed_basic_data["promotion"]

    response = client.post(
        "/payments",
        json=_payment_payload(
            member.id,
            payment_date="2024-02-01",
            amount="1",
            promotion_id=promotion.id,
            manual_months=9,
        ),
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert Decimal(str(data["amount"])) == Decimal("100.00")
    assert data["next_payment_date"] == "2024-06-01"
    assert data["promotion_id"] == promotion.id
    assert data["subscription_period"] == "MONTHLY"


def test_promotion_without_months_uses_requested_period(client, seed_basic_data):
    member = seed_basic_data["client"]
    promotion = seed_basic_data["open_promotion"]

    response = client.post(
        "/payments",
        json=_payment_payload(
            member.id,
            amount=None,
            promotion_id=promotion.id,
            subscription_period="QUARTERLY",
        ),
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert Decimal(str(data["amount"])) == Decimal("250.00")
    assert data["next_payment_date"] == "2024-04-01"


def test_manual_months_without_period_derives_label(client, seed_basic_data):
    member = seed_basic_data["client"]

    response = client.post(
        "/payments",
        json={
            "client_id": member.id,
            "payment_date": "2024-06-15",
            "amount": "600",
            "manual_months": 12,
        },
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["next_payment_date"] == "2025-06-15"
    assert data["subscription_period"] == "ANNUAL"


def test_overlapping_payment_is_rejected_with_conflict(client, db_session, seed_basic_data):
    member = seed_basic_data["client"]

    first = client.post("/payments", json=_payment_payload(member.id))
    assert first.status_code == 201, first.text

    response = client.post(
        "/payments", json=_payment_payload(member.id, payment_date="2024-01-15")
    )

    assert response.status_code == 409, response.text
    detail = response.json()["detail"]
    assert detail["kind"] == "overlap_conflict"
    assert detail["conflict"] == {
        "payment_id": first.json()["id"],
        "payment_date": "2024-01-01",
        "next_payment_date": "2024-02-01",
    }

    db_session.expire_all()
    assert db_session.query(models.Payment).filter_by(client_id=member.id).count() == 1
    rejected = (
        db_session.query(models.OperationalMetricEvent)
        .filter(models.OperationalMetricEvent.event_type == "payments.validation_failed")
        .all()
    )
    assert len(rejected) == 1
    assert rejected[0].outcome == "rejected"
    assert rejected[0].tags["kind"] == "overlap_conflict"


def test_touching_renewal_is_accepted(client, seed_basic_data):
    member = seed_basic_data["client"]

    assert client.post("/payments", json=_payment_payload(member.id)).status_code == 201
    renewal = client.post(
        "/payments", json=_payment_payload(member.id, payment_date="2024-02-01")
    )

    assert renewal.status_code == 201, renewal.text
    assert renewal.json()["next_payment_date"] == "2024-03-01"


def test_other_clients_do_not_conflict(client, seed_basic_data):
    member = seed_basic_data["client"]
    other = seed_basic_data["other_client"]

    assert client.post("/payments", json=_payment_payload(member.id)).status_code == 201
    response = client.post("/payments", json=_payment_payload(other.id))

    assert response.status_code == 201, response.text


def test_rejection_kinds_map_to_bad_request(client, seed_basic_data):
    member = seed_basic_data["client"]
    promotion = seed_basic_data["promotion"]
    inactive = seed_basic_data["inactive_promotion"]

    cases = [
        (_payment_payload(member.id, amount="0"), "invalid_amount"),
        (_payment_payload(member.id, amount=None), "invalid_amount"),
        (_payment_payload(member.id, subscription_period=None), "missing_period"),
        (_payment_payload(member.id, promotion_id=99999), "promotion_not_found"),
        (_payment_payload(member.id, promotion_id=inactive.id), "promotion_inactive"),
        (
            _payment_payload(member.id, payment_date="2025-01-01", promotion_id=promotion.id),
            "promotion_inactive",
        ),
        (
            _payment_payload(member.id, is_day_pass=True, promotion_id=promotion.id),
            "invalid_input",
        ),
        (_payment_payload(member.id, manual_months=0), "invalid_input"),
    ]

    for payload, expected_kind in cases:
        response = client.post("/payments", json=payload)
        assert response.status_code == 400, (payload, response.text)
        assert response.json()["detail"]["kind"] == expected_kind


def test_deleted_promotion_is_treated_as_missing(client, db_session, seed_basic_data):
    member = seed_basic_data["client"]
    promotion = seed_basic_data["promotion"]
    promotion.is_deleted = True
    db_session.commit()

    response = client.post(
        "/payments", json=_payment_payload(member.id, promotion_id=promotion.id)
    )

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "promotion_not_found"


def test_notes_longer_than_limit_are_rejected(client, seed_basic_data):
    member = seed_basic_data["client"]

    response = client.post(
        "/payments", json=_payment_payload(member.id, notes="x" * (models.NOTES_MAX_LENGTH + 1))
    )

    assert response.status_code == 422


def test_unknown_client_returns_not_found(client, seed_basic_data):
    response = client.post("/payments", json=_payment_payload(987654))

    assert response.status_code == 404


def test_preview_does_not_persist(client, db_session, seed_basic_data):
    member = seed_basic_data["client"]
    promotion = seed_basic_data["promotion"]

    response = client.post(
        "/payments/preview",
        json=_payment_payload(member.id, payment_date="2024-02-01", promotion_id=promotion.id),
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["next_payment_date"] == "2024-06-01"
    assert Decimal(str(data["amount"])) == Decimal("100.00")
    assert data["subscription_period"] == "MONTHLY"

    db_session.expire_all()
    assert db_session.query(models.Payment).count() == 0


def test_preview_reports_overlap(client, seed_basic_data):
    member = seed_basic_data["client"]
    assert client.post("/payments", json=_payment_payload(member.id)).status_code == 201

    response = client.post(
        "/payments/preview", json=_payment_payload(member.id, payment_date="2024-01-20")
    )

    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "overlap_conflict"


def test_soft_delete_frees_the_interval(client, seed_basic_data):
    member = seed_basic_data["client"]
    created = client.post("/payments", json=_payment_payload(member.id))
    payment_id = created.json()["id"]

    response = client.delete(f"/payments/{payment_id}", params={"performed_by": "admin"})
    assert response.status_code == 204

    second_delete = client.delete(f"/payments/{payment_id}")
    assert second_delete.status_code == 400

    detail = client.get(f"/payments/{payment_id}")
    assert detail.status_code == 200
    assert detail.json()["is_deleted"] is True
    assert [entry["action"] for entry in detail.json()["audit_trail"]].count("deleted") == 1

    recreated = client.post("/payments", json=_payment_payload(member.id))
    assert recreated.status_code == 201, recreated.text


def test_list_payments_filters(client, seed_basic_data):
    member = seed_basic_data["client"]
    other = seed_basic_data["other_client"]

    january = client.post("/payments", json=_payment_payload(member.id)).json()
    client.post("/payments", json=_payment_payload(member.id, payment_date="2024-02-01"))
    client.post("/payments", json=_payment_payload(other.id, payment_date="2024-03-01"))
    client.delete(f"/payments/{january['id']}")

    response = client.get("/payments", params={"client_id": member.id})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["payment_date"] == "2024-02-01"

    with_deleted = client.get(
        "/payments", params={"client_id": member.id, "include_deleted": True}
    ).json()
    assert with_deleted["total"] == 2

    ranged = client.get(
        "/payments", params={"start_date": "2024-02-15", "end_date": "2024-03-31"}
    ).json()
    assert ranged["total"] == 1
    assert ranged["items"][0]["client_id"] == other.id

    invalid_range = client.get(
        "/payments", params={"start_date": "2024-03-31", "end_date": "2024-02-15"}
    )
    assert invalid_range.status_code == 400


def test_get_payment_with_malformed_id_returns_not_found(client):
    response = client.get("/payments/not-a-uuid")

    assert response.status_code == 404


def test_update_payment_rechecks_overlap_excluding_itself(client, seed_basic_data):
    member = seed_basic_data["client"]
    client.post("/payments", json=_payment_payload(member.id))
    february = client.post(
        "/payments", json=_payment_payload(member.id, payment_date="2024-02-01")
    ).json()

    extended = client.put(
        f"/payments/{february['id']}",
        json={"next_payment_date": "2024-03-15", "notes": "Extension"},
    )
    assert extended.status_code == 200, extended.text
    assert extended.json()["next_payment_date"] == "2024-03-15"
    assert extended.json()["notes"] == "Extension"

    moved = client.put(f"/payments/{february['id']}", json={"payment_date": "2024-01-20"})
    assert moved.status_code == 409
    assert moved.json()["detail"]["kind"] == "overlap_conflict"

    inverted = client.put(
        f"/payments/{february['id']}", json={"next_payment_date": "2024-02-01"}
    )
    assert inverted.status_code == 400
    assert inverted.json()["detail"]["kind"] == "invalid_input"

    detail = client.get(f"/payments/{february['id']}").json()
    assert detail["next_payment_date"] == "2024-03-15"
    assert sorted(entry["action"] for entry in detail["audit_trail"]) == ["created", "updated"]


def test_update_deleted_payment_is_rejected(client, seed_basic_data):
    member = seed_basic_data["client"]
    payment = client.post("/payments", json=_payment_payload(member.id)).json()
    client.delete(f"/payments/{payment['id']}")

    response = client.put(f"/payments/{payment['id']}", json={"amount": "10"})

    assert response.status_code == 400


def test_persistence_failure_returns_server_error(client, monkeypatch, seed_basic_data):
    member = seed_basic_data["client"]

    def fail_create(*_args, **_kwargs):
        raise PaymentServiceError("Unable to record payment at this time.")

    monkeypatch.setattr(
        "backend.app.services.payments.PaymentService.create_payment",
        fail_create,
    )

    response = client.post(
        "/payments",
        json=_payment_payload(member.id),
        headers={"Origin": LOCAL_DEVELOPMENT_ORIGIN},
    )

    assert response.status_code == 500
    assert response.headers.get("access-control-allow-origin") == LOCAL_DEVELOPMENT_ORIGIN


def test_manual_months_above_cap_is_unprocessable(client, seed_basic_data):
    member = seed_basic_data["client"]

    response = client.post("/payments", json=_payment_payload(member.id, manual_months=200000))

    assert response.status_code == 422


def test_coverage_past_calendar_limit_is_invalid_input(client, db_session, seed_basic_data):
    member = seed_basic_data["client"]

    response = client.post(
        "/payments",
        json=_payment_payload(
            member.id,
            payment_date="9999-12-15",
            subscription_period=models.PaymentPeriod.MONTHLY.value,
        ),
    )

    assert response.status_code == 400, response.text
    assert response.json()["detail"]["kind"] == "invalid_input"
    assert db_session.query(models.Payment).filter_by(client_id=member.id).count() == 0


def test_rejected_payment_ends_transaction_and_keeps_prior_data(
    client, db_session, seed_basic_data
):
    member = seed_basic_data["client"]

    first = client.post("/payments", json=_payment_payload(member.id))
    assert first.status_code == 201, first.text

    rejected = client.post(
        "/payments", json=_payment_payload(member.id, payment_date="2024-01-10")
    )
    assert rejected.status_code == 409
    assert not db_session.in_transaction()

    renewal = client.post(
        "/payments", json=_payment_payload(member.id, payment_date="2024-02-01")
    )
    assert renewal.status_code == 201, renewal.text

    db_session.expire_all()
    assert db_session.get(models.Client, member.id).full_name == "Ana Torres"
    assert db_session.query(models.Payment).filter_by(client_id=member.id).count() == 2
