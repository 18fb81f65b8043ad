import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from clinic.modules.billing.models import Invoice
from tests.conftest import API, run_db


def create_invoice(client, headers, patient, lines, due="2030-02-15", method="carte"):
    return client.post(
        f"{API}/factures",
        json={
            "patientId": patient,
            "methodPaiement": method,
            "dateEcheance": due,
            "factureSoins": lines,
        },
        headers=headers,
    )


def line_items_total(client, headers, invoice_id):
    res = client.get(f"{API}/facture-soins/{invoice_id}", headers=headers)
    assert res.status_code == 200
    return sum((Decimal(li["montant"]) for li in res.json()["data"]), Decimal("0"))


def test_create_invoice_with_line_items(client, admin_headers, patient, treatment):
    res = create_invoice(
        client,
        admin_headers,
        patient,
        [{"soinId": treatment, "montant": 50}, {"soinId": treatment, "montant": 30.5}],
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert Decimal(data["montant"]) == Decimal("80.50")
    assert data["statut"] == "pending"
    assert data["numeroFacture"].startswith("INV-203001-")
    assert len(data["factureSoins"]) == 2
    assert line_items_total(client, admin_headers, data["id"]) == Decimal("80.50")


def test_missing_amount_uses_catalog_price(client, admin_headers, patient, treatment):
    res = create_invoice(client, admin_headers, patient, [{"soinId": treatment}])
    assert res.status_code == 200, res.text
    assert Decimal(res.json()["data"]["montant"]) == Decimal("50.00")


def test_invoice_without_line_items_starts_at_zero(client, admin_headers, patient):
    res = create_invoice(client, admin_headers, patient, [])
    assert res.status_code == 200
    assert Decimal(res.json()["data"]["montant"]) == Decimal("0")


def test_create_invoice_validation(client, admin_headers, patient, treatment):
    res = create_invoice(client, admin_headers, patient, [], method="")
    assert res.status_code == 400
    assert res.json()["error"] == "All fields are required"

    res = create_invoice(client, admin_headers, patient, [], due="15/02/2030")
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid date, format must be yyyy-mm-dd"

    res = create_invoice(client, admin_headers, str(uuid.uuid4()), [])
    assert res.status_code == 404
    assert res.json()["error"] == "Patient not found"

    res = create_invoice(client, admin_headers, patient, [{"soinId": "NOPE", "montant": 10}])
    assert res.status_code == 404
    assert res.json()["error"] == "Soin not found"


def test_invoice_numbers_follow_a_monthly_sequence(client, admin_headers, patient, set_clock):
    set_clock(datetime(2031, 3, 10, 12, 0, tzinfo=timezone.utc))
    numbers = [
        create_invoice(client, admin_headers, patient, [], due="2031-04-10").json()["data"]["numeroFacture"]
        for _ in range(3)
    ]
    assert numbers == ["INV-203103-0001", "INV-203103-0002", "INV-203103-0003"]


def test_failed_creation_does_not_consume_a_number(client, admin_headers, patient, set_clock):
    set_clock(datetime(2031, 5, 2, 9, 0, tzinfo=timezone.utc))
    first = create_invoice(client, admin_headers, patient, [], due="2031-06-01")
    failed = create_invoice(client, admin_headers, patient, [{"soinId": "NOPE", "montant": 1}])
    second = create_invoice(client, admin_headers, patient, [], due="2031-06-01")

    assert failed.status_code == 404
    assert first.json()["data"]["numeroFacture"] == "INV-203105-0001"
    assert second.json()["data"]["numeroFacture"] == "INV-203105-0002"


def test_line_item_total_deltas(client, admin_headers, patient, treatment):
    invoice = create_invoice(client, admin_headers, patient, []).json()["data"]

    res = client.post(
        f"{API}/facture-soins",
        json={"factureId": invoice["id"], "soinId": treatment, "montant": 50},
        headers=admin_headers,
    )
    assert res.status_code == 201, res.text
    item = res.json()["data"]
    assert item["soin"]["code"] == treatment

    header = client.get(f"{API}/factures/{invoice['id']}", headers=admin_headers).json()["data"]
    assert Decimal(header["montant"]) == Decimal("50.00")

    res = client.put(
        f"{API}/facture-soins/{item['id']}", json={"montant": 80}, headers=admin_headers
    )
    assert res.status_code == 200
    assert Decimal(res.json()["data"]["montant"]) == Decimal("80")

    header = client.get(f"{API}/factures/{invoice['id']}", headers=admin_headers).json()["data"]
    assert Decimal(header["montant"]) == Decimal("80.00")

    # zero is not a valid amount; nothing changes
    res = client.put(
        f"{API}/facture-soins/{item['id']}", json={"montant": 0}, headers=admin_headers
    )
    assert res.status_code == 400
    assert res.json()["error"] == "montant must be a number greater than 0"

    header = client.get(f"{API}/factures/{invoice['id']}", headers=admin_headers).json()["data"]
    assert Decimal(header["montant"]) == Decimal("80.00")
    assert line_items_total(client, admin_headers, invoice["id"]) == Decimal("80.00")


def test_remove_line_item_lowers_total(client, admin_headers, patient, treatment):
    invoice = create_invoice(
        client,
        admin_headers,
        patient,
        [{"soinId": treatment, "montant": 40}, {"soinId": treatment, "montant": 25}],
    ).json()["data"]
    removed = invoice["factureSoins"][0]

    res = client.delete(f"{API}/facture-soins/{removed['id']}", headers=admin_headers)
    assert res.status_code == 200

    header = client.get(f"{API}/factures/{invoice['id']}", headers=admin_headers).json()["data"]
    remaining = Decimal("65") - Decimal(removed["montant"])
    assert Decimal(header["montant"]) == remaining
    assert line_items_total(client, admin_headers, invoice["id"]) == remaining

    res = client.delete(f"{API}/facture-soins/{removed['id']}", headers=admin_headers)
    assert res.status_code == 404


def test_line_item_amount_must_be_a_number(client, admin_headers, patient, treatment):
    invoice = create_invoice(client, admin_headers, patient, []).json()["data"]
    res = client.post(
        f"{API}/facture-soins",
        json={"factureId": invoice["id"], "soinId": treatment, "montant": "50"},
        headers=admin_headers,
    )
    assert res.status_code == 400


def test_line_item_unknown_invoice(client, admin_headers, treatment):
    res = client.post(
        f"{API}/facture-soins",
        json={"factureId": str(uuid.uuid4()), "soinId": treatment, "montant": 10},
        headers=admin_headers,
    )
    assert res.status_code == 404
    assert res.json()["error"] == "Facture not found"


def test_mark_paid_keeps_total(client, admin_headers, patient, treatment):
    invoice = create_invoice(
        client, admin_headers, patient, [{"soinId": treatment, "montant": 70}]
    ).json()["data"]

    res = client.put(f"{API}/factures/mark-as-paid/{invoice['id']}", headers=admin_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["statut"] == "paid"
    assert Decimal(data["montant"]) == Decimal("70.00")

    res = client.put(f"{API}/factures/mark-as-paid/{uuid.uuid4()}", headers=admin_headers)
    assert res.status_code == 404


def test_overdue_invoices(client, admin_headers, patient, treatment):
    late = create_invoice(client, admin_headers, patient, [], due="2030-01-10").json()["data"]
    later = create_invoice(client, admin_headers, patient, [], due="2030-01-05").json()["data"]
    paid = create_invoice(client, admin_headers, patient, [], due="2030-01-01").json()["data"]
    upcoming = create_invoice(client, admin_headers, patient, [], due="2030-02-01").json()["data"]
    client.put(f"{API}/factures/mark-as-paid/{paid['id']}", headers=admin_headers)

    res = client.get(f"{API}/factures/en-retard", headers=admin_headers)
    assert res.status_code == 200
    ids = [i["id"] for i in res.json()["data"]]

    assert paid["id"] not in ids
    assert upcoming["id"] not in ids
    assert ids.index(later["id"]) < ids.index(late["id"])


def test_update_invoice_header(client, admin_headers, patient):
    invoice = create_invoice(client, admin_headers, patient, []).json()["data"]

    res = client.put(
        f"{API}/factures/{invoice['id']}",
        json={"methodPaiement": "especes", "dateEcheance": "2030-03-01"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["methodPaiement"] == "especes"
    assert data["dateEcheance"].startswith("2030-03-01T00:00:00")

    res = client.put(
        f"{API}/factures/{invoice['id']}", json={"statut": "lost"}, headers=admin_headers
    )
    assert res.status_code == 400


def test_patient_invoices_and_delete(client, admin_headers, patient, treatment):
    invoice = create_invoice(
        client, admin_headers, patient, [{"soinId": treatment, "montant": 20}]
    ).json()["data"]

    page = client.get(f"{API}/factures/patient/{patient}", headers=admin_headers).json()["data"]
    assert [i["id"] for i in page["items"]] == [invoice["id"]]

    assert client.delete(f"{API}/factures/{invoice['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"{API}/factures/{invoice['id']}", headers=admin_headers).status_code == 404


def test_line_item_summary(client, admin_headers, patient, treatment):
    create_invoice(
        client,
        admin_headers,
        patient,
        [{"soinId": treatment, "montant": 10}, {"soinId": treatment, "montant": 15}],
    )
    res = client.get(f"{API}/facture-soins/summary", headers=admin_headers)
    assert res.status_code == 200
    row = next(r for r in res.json()["data"] if r["soinId"] == treatment)
    assert row["count"] == 2
    assert Decimal(row["montant"]) == Decimal("25.00")


@pytest.mark.parametrize("montant", [0.004, 1e30])
def test_unstorable_amounts_rejected_on_create(client, admin_headers, patient, treatment, montant):
    res = create_invoice(client, admin_headers, patient, [{"soinId": treatment, "montant": montant}])
    assert res.status_code == 400
    assert res.json()["success"] is False


@pytest.mark.parametrize("montant", [0.004, 1e30])
def test_unstorable_amounts_rejected_on_add_and_update(client, admin_headers, patient, treatment, montant):
    invoice = create_invoice(
        client, admin_headers, patient, [{"soinId": treatment, "montant": 20}]
    ).json()["data"]
    item_id = invoice["factureSoins"][0]["id"]

    res = client.post(
        f"{API}/facture-soins",
        json={"factureId": invoice["id"], "soinId": treatment, "montant": montant},
        headers=admin_headers,
    )
    assert res.status_code == 400

    res = client.put(f"{API}/facture-soins/{item_id}", json={"montant": montant}, headers=admin_headers)
    assert res.status_code == 400

    header = client.get(f"{API}/factures/{invoice['id']}", headers=admin_headers).json()["data"]
    assert Decimal(header["montant"]) == Decimal("20.00")
    assert line_items_total(client, admin_headers, invoice["id"]) == Decimal("20.00")


def test_sub_cent_amount_message(client, admin_headers, patient, treatment):
    invoice = create_invoice(client, admin_headers, patient, []).json()["data"]
    res = client.post(
        f"{API}/facture-soins",
        json={"factureId": invoice["id"], "soinId": treatment, "montant": 0.004},
        headers=admin_headers,
    )
    assert res.json()["error"] == "montant must be a number greater than 0"


def test_initial_line_item_without_treatment(client, admin_headers, patient):
    res = create_invoice(client, admin_headers, patient, [{"montant": 10}])
    assert res.status_code == 400
    assert res.json()["error"] == "All fields are required"


def test_total_mismatch_rolls_back(client, admin_headers, patient, treatment):
    invoice = create_invoice(
        client, admin_headers, patient, [{"soinId": treatment, "montant": 50}]
    ).json()["data"]

    async def corrupt(maker):
        async with maker() as session:
            await session.execute(
                update(Invoice)
                .where(Invoice.id == uuid.UUID(invoice["id"]))
                .values(total_amount=Decimal("999.00"))
            )
            await session.commit()

    run_db(corrupt)

    res = client.post(
        f"{API}/facture-soins",
        json={"factureId": invoice["id"], "soinId": treatment, "montant": 10},
        headers=admin_headers,
    )
    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "Internal server error"}

    # nothing from the failed request was kept
    res = client.get(f"{API}/facture-soins/{invoice['id']}", headers=admin_headers)
    assert len(res.json()["data"]) == 1
    header = client.get(f"{API}/factures/{invoice['id']}", headers=admin_headers).json()["data"]
    assert Decimal(header["montant"]) == Decimal("999.00")
