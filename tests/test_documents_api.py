from __future__ import annotations

from decimal import Decimal

import pytest

from koperasi.models.member_debt import DebtPayment
from koperasi.models.purchase import Purchase
from koperasi.models.sale import Sale


def _post_sale(client, sale_type="TUNAI", sale_date="2025-10-15", total="15000"):
    return client.post(
        "/api/v1/sales",
        json={"sale_type": sale_type, "sale_date": sale_date, "total_amount": total},
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "up"}


def test_create_sales_issue_consecutive_invoice_numbers(client, db_session):
    first = _post_sale(client)
    assert first.status_code == 201, first.text
    assert first.json()["invoice_number"] == "1025-001 T"
    assert Decimal(str(first.json()["total_amount"])) == Decimal("15000")

    second = _post_sale(client)
    assert second.status_code == 201, second.text
    assert second.json()["invoice_number"] == "1025-002 T"

    credit = _post_sale(client, sale_type="KREDIT")
    assert credit.status_code == 201, credit.text
    assert credit.json()["invoice_number"] == "1025-001 K"
    assert credit.json()["sale_type"] == "KREDIT"

    stored = [row.invoice_number for row in db_session.query(Sale).order_by(Sale.id)]
    assert stored == ["1025-001 T", "1025-002 T", "1025-001 K"]


def test_create_sale_rejects_unknown_sale_type(client, db_session):
    resp = _post_sale(client, sale_type="DEBIT")
    assert resp.status_code == 422


def test_create_purchase_generates_po_number(client, db_session):
    resp = client.post(
        "/api/v1/purchases",
        json={"purchase_date": "2025-10-15", "supplier_id": 3, "total_amount": "250000"},
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["invoice_number"] == "PO-20251015-001"
    assert resp.json()["supplier_id"] == 3


def test_supplier_invoice_number_is_used_verbatim(client, db_session):
    resp = client.post(
        "/api/v1/purchases",
        json={"purchase_date": "2025-10-15", "supplier_invoice_number": "  SUP/INV/0077 "},
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["invoice_number"] == "SUP/INV/0077"

    generated = client.post("/api/v1/purchases", json={"purchase_date": "2025-10-15"})
    assert generated.status_code == 201, generated.text
    assert generated.json()["invoice_number"] == "PO-20251015-001"


def test_reused_supplier_invoice_number_conflicts(client, db_session):
    payload = {"purchase_date": "2025-10-15", "supplier_invoice_number": "SUP-1"}
    assert client.post("/api/v1/purchases", json=payload).status_code == 201

    resp = client.post("/api/v1/purchases", json=payload)
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "NUMBER_CONFLICT"
    assert db_session.query(Purchase).count() == 1


def test_debt_payment_and_returns(client, db_session):
    payment = client.post(
        "/api/v1/debt-payments",
        json={"payment_date": "2025-10-15", "member_id": 9, "amount": "50000"},
    )
    assert payment.status_code == 201, payment.text
    assert payment.json()["receipt_number"] == "PAY-20251015-001"

    sales_return = client.post(
        "/api/v1/sales-returns",
        json={"return_date": "2025-10-15", "reference_id": 1, "total_amount": "5000"},
    )
    assert sales_return.status_code == 201, sales_return.text
    assert sales_return.json()["return_number"] == "SRN-20251015-001"
    assert sales_return.json()["sale_id"] == 1

    purchase_return = client.post(
        "/api/v1/purchase-returns",
        json={"return_date": "2025-10-16", "reference_id": 4},
    )
    assert purchase_return.status_code == 201, purchase_return.text
    assert purchase_return.json()["return_number"] == "PRN-20251016-001"
    assert purchase_return.json()["purchase_id"] == 4


def test_debt_payment_requires_positive_amount(client, db_session):
    resp = client.post("/api/v1/debt-payments", json={"payment_date": "2025-10-15", "amount": "0"})
    assert resp.status_code == 422


def test_preview_next_number_does_not_reserve(client, db_session):
    params = {"category": "PURCHASE", "date": "2025-10-15"}
    first = client.get("/api/v1/document-numbers/next", params=params)
    assert first.status_code == 200, first.text
    assert first.json() == {"category": "PURCHASE", "next_number": "PO-20251015-001"}

    again = client.get("/api/v1/document-numbers/next", params=params)
    assert again.json()["next_number"] == "PO-20251015-001"

    client.post("/api/v1/purchases", json={"purchase_date": "2025-10-15"})
    after = client.get("/api/v1/document-numbers/next", params=params)
    assert after.json()["next_number"] == "PO-20251015-002"


def test_preview_sale_number_accepts_variant_aliases(client, db_session):
    resp = client.get(
        "/api/v1/document-numbers/next",
        params={"category": "sale", "date": "2025-10-15", "variant": "CREDIT"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["next_number"] == "1025-001 K"


def test_preview_sale_number_without_variant_is_bad_request(client, db_session):
    resp = client.get(
        "/api/v1/document-numbers/next",
        params={"category": "SALE", "date": "2025-10-15"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "NUMBERING_PRECONDITION"


def test_parse_sale_invoice_number(client):
    resp = client.get(
        "/api/v1/document-numbers/parse",
        params={"category": "SALE", "number": "1025-003 K"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json() == {
        "category": "SALE",
        "full_number": "1025-003 K",
        "period": "1025",
        "running_count": 3,
        "variant": "KREDIT",
        "month": "10",
        "year": "2025",
    }


def test_parse_purchase_number(client):
    resp = client.get(
        "/api/v1/document-numbers/parse",
        params={"category": "PURCHASE", "number": "PO-20251015-1000"},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["period"] == "20251015"
    assert body["running_count"] == 1000
    assert body["variant"] is None
    assert body["month"] is None


def test_parse_malformed_number_is_unprocessable(client):
    resp = client.get(
        "/api/v1/document-numbers/parse",
        params={"category": "SALE", "number": "1025-ABC T"},
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "NUMBER_MALFORMED"


def test_parse_unknown_category_is_bad_request(client):
    resp = client.get(
        "/api/v1/document-numbers/parse",
        params={"category": "INVOICE", "number": "1025-001 T"},
    )
    assert resp.status_code == 400


@pytest.mark.parametrize(
    "supplier_number",
    ["PO-20251015-01A", "PO-20251015-5000", "po-20251015-002"],
)
def test_supplier_number_in_generated_format_is_rejected(client, db_session, supplier_number):
    resp = client.post(
        "/api/v1/purchases",
        json={"purchase_date": "2025-10-15", "supplier_invoice_number": supplier_number},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "NUMBERING_PRECONDITION"

    generated = client.post("/api/v1/purchases", json={"purchase_date": "2025-10-15"})
    assert generated.status_code == 201, generated.text
    assert generated.json()["invoice_number"] == "PO-20251015-001"
    assert [row.invoice_number for row in db_session.query(Purchase)] == ["PO-20251015-001"]


def test_created_document_records_operator_in_audit_columns(client, db_session):
    resp = client.post(
        "/api/v1/debt-payments",
        json={
            "payment_date": "2025-10-15",
            "amount": "1000",
            "created_by": "kasir1@koperasi.local",
            "notes": "cicilan Oktober",
        },
    )
    assert resp.status_code == 201, resp.text

    payment = db_session.query(DebtPayment).one()
    assert payment.created_by == "kasir1@koperasi.local"
    assert payment.last_changed_by == "kasir1@koperasi.local"
    assert payment.notes == "cicilan Oktober"
