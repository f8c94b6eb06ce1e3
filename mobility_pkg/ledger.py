"""
Payments ledger
Merged transaction history, payout and settlement summaries, CSV reports.
"""
import csv
import io
from datetime import datetime

from mobility_pkg.formatting import format_date, parse_timestamp

PAYMENTS_CSV_HEADERS = ["Payment ID", "Order ID", "Amount", "Status", "Date"]
COMMISSIONS_CSV_HEADERS = ["User", "Transaction Type", "Gross Amount", "Commission", "Net Amount", "Status", "Date"]

EXPORT_KINDS = ("payments", "commissions")


def _amount(row, key):
    return float(row.get(key) or 0)


def _created(row):
    return parse_timestamp(row.get('created_date')) or datetime.min


def merge_transactions(payments, commissions):
    """
    Payments (credits) and commissions (debits) in one list, newest first

    Each entry keeps the original row under "record".
    """
    entries = []
    for payment in payments:
        entries.append({
            "kind": "payment",
            "id": payment.get('id'),
            "description": f"Payment for Order #{payment.get('order_id')}",
            "amount": _amount(payment, 'amount'),
            "status": payment.get('payment_status'),
            "created_date": payment.get('created_date'),
            "record": payment,
        })
    for commission in commissions:
        entries.append({
            "kind": "commission",
            "id": commission.get('id'),
            "description": f"Commission for {commission.get('transaction_type')} #{commission.get('transaction_id')}",
            "amount": -_amount(commission, 'commission_amount'),
            "status": commission.get('status'),
            "created_date": commission.get('created_date'),
            "record": commission,
        })

    # Stable sort keeps payments ahead of commissions on equal timestamps
    entries.sort(key=lambda entry: _created(entry["record"]), reverse=True)
    return entries


def payee_summary(payments, commissions):
    total_earnings = round(sum(_amount(p, 'amount') for p in payments), 2)
    total_commissions = round(sum(_amount(c, 'commission_amount') for c in commissions), 2)
    return {
        "total_earnings": total_earnings,
        "total_commissions": total_commissions,
        "net_payout": round(total_earnings - total_commissions, 2),
    }


def settlement_summary(payments, commissions, today=None):
    today = today or datetime.utcnow().date()

    monthly_revenue = 0.0
    for commission in commissions:
        created = parse_timestamp(commission.get('created_date'))
        if created and created.year == today.year and created.month == today.month:
            monthly_revenue += _amount(commission, 'commission_amount')

    return {
        "total_payments": round(sum(_amount(p, 'amount') for p in payments), 2),
        "total_commissions": round(sum(_amount(c, 'commission_amount') for c in commissions), 2),
        "pending_settlements": len([c for c in commissions if c.get('status') == 'calculated']),
        "monthly_revenue": round(monthly_revenue, 2),
    }


def export_csv(kind, rows, users=None):
    """
    Render the payments or commissions report

    Args:
        kind: 'payments' or 'commissions'
        rows: Entity rows
        users: dict of user id -> user, used for the commissions "User" column

    Returns:
        str: CSV text including the header row
    """
    if kind not in EXPORT_KINDS:
        raise ValueError(f"Unknown report type: {kind}")

    users = users or {}
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')

    if kind == 'payments':
        writer.writerow(PAYMENTS_CSV_HEADERS)
        for row in rows:
            writer.writerow([
                row.get('payment_id'),
                row.get('order_id'),
                row.get('amount'),
                row.get('payment_status'),
                format_date(row.get('created_date')),
            ])
    else:
        writer.writerow(COMMISSIONS_CSV_HEADERS)
        for row in rows:
            user = users.get(row.get('user_id')) or {}
            writer.writerow([
                user.get('full_name') or 'Unknown User',
                row.get('transaction_type'),
                row.get('gross_amount'),
                row.get('commission_amount'),
                row.get('net_amount'),
                row.get('status'),
                format_date(row.get('created_date')),
            ])

    return output.getvalue()
