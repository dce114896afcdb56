"""
Tax and payment arithmetic
"""
from typing import Dict
from hotel_pms.errors import ValidationError

DEFAULT_TAX_RATES = {
    'gst': 12.0,
    'cgst': 6.0,
    'sgst': 6.0,
    'luxury_tax': 5.0,
    'service_charge': 10.0
}

PAYMENT_METHODS = ['cash', 'card', 'upi', 'bank_transfer']

# payment method -> suffix of the advance_* / receipt_* breakdown columns
BREAKDOWN_SUFFIX = {
    'cash': 'cash',
    'card': 'card',
    'upi': 'upi',
    'bank_transfer': 'bank'
}


def to_number(value, field: str, cast=float, default=0):
    """Numeric request value; blanks give ``default``, anything unparsable is a 400"""
    if value is None or value == '':
        return cast(default)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}")


def calculate_taxes(amount: float, rates: Dict = None) -> Dict:
    """
    Tax components for a room amount.
    cgst/sgst are the two halves of gst and are reported for the invoice only.
    """
    rates = rates or DEFAULT_TAX_RATES
    amount = float(amount or 0)
    gst = amount * rates.get('gst', 0) / 100
    cgst = amount * rates.get('cgst', 0) / 100
    sgst = amount * rates.get('sgst', 0) / 100
    luxury_tax = amount * rates.get('luxury_tax', 0) / 100
    service_charge = amount * rates.get('service_charge', 0) / 100
    total_tax = gst + luxury_tax + service_charge
    return {
        'gst': round(gst, 2),
        'cgst': round(cgst, 2),
        'sgst': round(sgst, 2),
        'luxury_tax': round(luxury_tax, 2),
        'service_charge': round(service_charge, 2),
        'total_tax': round(total_tax, 2),
        'grand_total': round(amount + total_tax, 2)
    }


def sum_advances(breakdown: Dict) -> float:
    breakdown = breakdown or {}
    return sum(float(breakdown.get(f'advance_{s}') or 0) for s in ('cash', 'card', 'upi', 'bank'))


def sum_receipts(breakdown: Dict) -> float:
    breakdown = breakdown or {}
    return sum(float(breakdown.get(f'receipt_{s}') or 0) for s in ('cash', 'card', 'upi', 'bank'))
