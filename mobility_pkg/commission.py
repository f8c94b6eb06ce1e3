"""
Platform commission rule and generated identifiers
"""
import time

PLATFORM_COMMISSION_RATE = 0.10


def compute_commission(gross_amount, rate=PLATFORM_COMMISSION_RATE):
    """
    Split a gross amount into (commission, net)

    Both parts are rounded to 2 decimals and net = gross - commission.
    """
    gross = float(gross_amount)
    if gross < 0:
        raise ValueError("Gross amount cannot be negative")
    if not 0 <= rate <= 1:
        raise ValueError("Commission rate must be between 0 and 1")

    commission = round(gross * rate, 2)
    net = round(gross - commission, 2)
    return commission, net


def _epoch_millis(now=None):
    if now is None:
        return int(time.time() * 1000)
    return int(now.timestamp() * 1000)


def new_settlement_batch_id(now=None):
    return f"BATCH-{_epoch_millis(now)}"


def new_order_number(now=None):
    return f"ORD-{_epoch_millis(now)}"
