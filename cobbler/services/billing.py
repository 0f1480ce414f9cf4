"""
Billing Calculator

Per-line discount and GST arithmetic plus invoice totals. Pure functions:
the same lines always produce the same result and nothing is stored.

Per line, in order:
    discount = min(original * discount% / 100, original)
    final    = original - discount
    gst      = final * gst% / 100   (only when GST is included and gst% > 0)

Every monetary output is rounded half-up to two decimal places.
"""

import logging
import random
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence

from cobbler.models.api import BillingCalculation, BillingLineInput, BillingLineResult
from cobbler.utils.errors import BillingValidationError, ValidationError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")
# Largest value a NUMERIC(10, 2) column holds
MAX_AMOUNT = Decimal("99999999.99")


def round_money(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_lines(lines: Sequence[BillingLineInput]) -> List[Dict[str, Any]]:
    """
    Check every line and collect the failures.

    Returns:
        One entry per invalid line: {"index": int, "serviceType": str, "reasons": [str]}
    """
    invalid = []
    for index, line in enumerate(lines):
        reasons = []
        if line.original_amount < ZERO:
            reasons.append("originalAmount must be >= 0")
        elif line.original_amount > MAX_AMOUNT:
            reasons.append(f"originalAmount must be <= {MAX_AMOUNT}")
        if not ZERO <= line.gst_rate <= HUNDRED:
            reasons.append("gstRate must be between 0 and 100")
        if not ZERO <= line.discount_percent <= HUNDRED:
            reasons.append("discountPercent must be between 0 and 100")
        if reasons:
            invalid.append({"index": index, "serviceType": line.service_type, "reasons": reasons})
    return invalid


def calculate_line(line: BillingLineInput, gst_included: bool) -> BillingLineResult:
    """Price a single, already validated, line."""
    original = Decimal(line.original_amount)
    discount = min(original * line.discount_percent / HUNDRED, original)
    discount = round_money(discount)
    final = round_money(original - discount)

    gst = ZERO
    if gst_included and line.gst_rate > ZERO:
        gst = final * line.gst_rate / HUNDRED
    gst = round_money(gst)

    return BillingLineResult(
        service_type=line.service_type,
        original_amount=round_money(original),
        discount_value=line.discount_percent,
        discount_amount=discount,
        final_amount=final,
        gst_rate=line.gst_rate,
        gst_amount=gst,
        line_total=final + gst,
        description=line.description,
    )


def calculate_invoice(lines: Sequence[BillingLineInput], gst_included: bool) -> BillingCalculation:
    """
    Price every line and aggregate the invoice totals.

    Args:
        lines: Service lines to price
        gst_included: Whether per-line GST applies

    Returns:
        BillingCalculation with priced lines and totals

    Raises:
        BillingValidationError: The list is empty or a line is invalid;
            nothing is calculated in that case
        ValidationError: The invoice total does not fit an amount column
    """
    if not lines:
        raise BillingValidationError([])

    invalid = validate_lines(lines)
    if invalid:
        logger.warning(f"Rejected billing calculation, invalid lines: {[line['index'] for line in invalid]}")
        raise BillingValidationError(invalid)

    items = [calculate_line(line, gst_included) for line in lines]

    total_original = sum((item.original_amount for item in items), ZERO)
    total_discount = sum((item.discount_amount for item in items), ZERO)
    subtotal = sum((item.final_amount for item in items), ZERO)
    total_gst = sum((item.gst_amount for item in items), ZERO)
    if max(total_original, subtotal + total_gst) > MAX_AMOUNT:
        raise ValidationError(f"Invoice total must not exceed {MAX_AMOUNT}")

    return BillingCalculation(
        items=items,
        total_original=total_original,
        total_discount=total_discount,
        subtotal=subtotal,
        total_gst=total_gst,
        total_amount=subtotal + total_gst,
    )


def generate_invoice_number(today: Optional[date] = None, rng: Optional[random.Random] = None) -> str:
    """Build an invoice number of the form INV-YYYYMMDD-NNN with a random suffix."""
    today = today or date.today()
    rng = rng or random
    return f"INV-{today:%Y%m%d}-{rng.randint(0, 999):03d}"
