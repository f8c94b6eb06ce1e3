# tests/test_ledger.py
from datetime import date

import pytest

from mobility_pkg.ledger import (
    COMMISSIONS_CSV_HEADERS,
    PAYMENTS_CSV_HEADERS,
    export_csv,
    merge_transactions,
    payee_summary,
    settlement_summary,
)

PAYMENTS = [
    {"id": "p1", "payment_id": "PAY-1", "order_id": "ORD-1", "amount": 1000,
     "payment_status": "collected", "created_date": "2024-05-02T08:00:00.000Z"},
    {"id": "p2", "payment_id": "PAY-2", "order_id": "ORD-2", "amount": 500,
     "payment_status": "pending", "created_date": "2024-04-20T08:00:00.000Z"},
]
COMMISSIONS = [
    {"id": "c1", "user_id": "u-sp", "transaction_type": "service", "transaction_id": "sr-1",
     "gross_amount": 1000, "commission_amount": 100, "net_amount": 900, "status": "calculated",
     "created_date": "2024-05-03T08:00:00.000Z"},
    {"id": "c2", "user_id": "u-gone", "transaction_type": "parts_order", "transaction_id": "o-1",
     "gross_amount": 500, "commission_amount": 50, "net_amount": 450, "status": "settled",
     "created_date": "2024-04-01T08:00:00.000Z"},
]


def test_merge_orders_newest_first_with_signed_amounts():
    entries = merge_transactions(PAYMENTS, COMMISSIONS)
    assert [e["id"] for e in entries] == ["c1", "p1", "p2", "c2"]
    assert entries[0]["amount"] == -100.0
    assert entries[0]["description"] == "Commission for service #sr-1"
    assert entries[1]["amount"] == 1000.0
    assert entries[1]["description"] == "Payment for Order #ORD-1"
    assert entries[1]["record"] is PAYMENTS[0]


def test_merge_tolerates_missing_dates():
    entries = merge_transactions([{"id": "p", "amount": 1}], [COMMISSIONS[0]])
    assert [e["id"] for e in entries] == ["c1", "p"]


def test_payee_summary():
    assert payee_summary(PAYMENTS, COMMISSIONS) == {
        "total_earnings": 1500.0,
        "total_commissions": 150.0,
        "net_payout": 1350.0,
    }


def test_settlement_summary_counts_this_months_revenue():
    summary = settlement_summary(PAYMENTS, COMMISSIONS, today=date(2024, 5, 15))
    assert summary == {
        "total_payments": 1500.0,
        "total_commissions": 150.0,
        "pending_settlements": 1,
        "monthly_revenue": 100.0,
    }


def test_payments_csv():
    text = export_csv("payments", PAYMENTS)
    lines = text.splitlines()
    assert lines[0] == ",".join(PAYMENTS_CSV_HEADERS)
    assert lines[1] == "PAY-1,ORD-1,1000,collected,2024-05-02"
    assert len(lines) == 3


def test_commissions_csv_names_users():
    users = {"u-sp": {"id": "u-sp", "full_name": "Ravi Garage"}}
    lines = export_csv("commissions", COMMISSIONS, users).splitlines()
    assert lines[0] == ",".join(COMMISSIONS_CSV_HEADERS)
    assert lines[1] == "Ravi Garage,service,1000,100,900,calculated,2024-05-03"
    assert lines[2].startswith("Unknown User,parts_order,")


def test_csv_quotes_embedded_commas():
    lines = export_csv("commissions", COMMISSIONS[:1], {"u-sp": {"full_name": "Garage, Pune"}}).splitlines()
    assert lines[1].startswith('"Garage, Pune",')


def test_unknown_report_kind():
    with pytest.raises(ValueError):
        export_csv("refunds", [])
