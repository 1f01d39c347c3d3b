"""Display helpers for billing amounts and periods. Rounding happens here and nowhere else."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}

CENTS = Decimal("0.01")


def format_currency(amount: Decimal, currency: str = "USD") -> str:
    """en-US style: format_currency(Decimal("1234.5")) -> "$1,234.50"; unknown codes prefix the code."""
    quantized = Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if quantized < 0 else ""
    return f"{sign}{symbol}{abs(quantized):,.2f}"


def format_billing_period(start: date, end: date) -> str:
    return f"{start.month}/{start.day}/{start.year} - {end.month}/{end.day}/{end.year}"


def month_range_label(start: date, end: date) -> str:
    """Months an invoice covers: "5", "5-7" within a year, "11/2024-1/2025" across years."""
    if (start.year, start.month) == (end.year, end.month):
        return f"{start.month}"
    if start.year != end.year:
        return f"{start.month}/{start.year}-{end.month}/{end.year}"
    return f"{start.month}-{end.month}"
