"""
Display helpers shared by the dashboard, the ledger and the CSV exports
"""
from datetime import datetime, timezone


def humanize(value):
    """'oil_change' -> 'oil change'"""
    if not value:
        return ""
    return str(value).replace('_', ' ')


def titleize(value):
    """'oil_change' -> 'Oil Change'"""
    return ' '.join(word[:1].upper() + word[1:] for word in humanize(value).split(' '))


def format_number(value):
    """Group thousands and drop trailing zeros: 1234.5 -> '1,234.5', 1000.0 -> '1,000'"""
    value = round(float(value or 0), 2)
    if value == int(value):
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip('0')


def format_currency(value, symbol='₹'):
    return f"{symbol}{format_number(value)}"


def parse_timestamp(value):
    """
    Parse an ISO timestamp from the entity API into a naive UTC datetime

    Accepts a trailing 'Z' or an explicit offset. Returns None for empty or invalid input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_date(value, fmt='%Y-%m-%d'):
    parsed = parse_timestamp(value)
    return parsed.strftime(fmt) if parsed else ""
