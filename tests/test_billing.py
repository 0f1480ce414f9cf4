"""
Billing calculator tests

Per-line discount and GST arithmetic, invoice totals, validation and
invoice numbering.
"""

import random
import re
from datetime import date
from decimal import Decimal

import pytest

from cobbler.models.api import BillingLineInput
from cobbler.services.billing import (
    calculate_invoice,
    calculate_line,
    generate_invoice_number,
    round_money,
    validate_lines,
)
from cobbler.utils.errors import BillingValidationError, ValidationError


def line(amount, discount=0, gst=0, name="Sole Replacement"):
    return BillingLineInput(
        service_type=name,
        original_amount=Decimal(str(amount)),
        discount_percent=Decimal(str(discount)),
        gst_rate=Decimal(str(gst)),
    )


class TestLineCalculation:
    """Single line arithmetic"""

    def test_discount_then_gst(self):
        """1000 at 10% off with 18% GST"""
        result = calculate_line(line(1000, 10, 18), gst_included=True)

        assert result.discount_amount == Decimal("100.00")
        assert result.final_amount == Decimal("900.00")
        assert result.gst_amount == Decimal("162.00")
        assert result.line_total == Decimal("1062.00")

    def test_gst_skipped_when_not_included(self):
        result = calculate_line(line(1000, 10, 18), gst_included=False)

        assert result.gst_amount == Decimal("0.00")
        assert result.line_total == Decimal("900.00")

    def test_zero_gst_rate(self):
        result = calculate_line(line(300, 50, 0), gst_included=True)

        assert result.final_amount == Decimal("150.00")
        assert result.gst_amount == Decimal("0.00")

    def test_full_discount_never_goes_negative(self):
        result = calculate_line(line(250, 100, 18), gst_included=True)

        assert result.discount_amount == Decimal("250.00")
        assert result.final_amount == Decimal("0.00")
        assert result.gst_amount == Decimal("0.00")

    def test_rounds_half_up(self):
        # 0.125 would round to 0.12 with banker's rounding
        assert round_money(Decimal("0.125")) == Decimal("0.13")
        result = calculate_line(line("10.05", 5, 0), gst_included=False)
        assert result.discount_amount == Decimal("0.50")
        assert result.final_amount == Decimal("9.55")

    def test_same_input_same_output(self):
        first = calculate_line(line("199.99", "12.5", "18"), gst_included=True)
        second = calculate_line(line("199.99", "12.5", "18"), gst_included=True)
        assert first == second


class TestInvoiceTotals:
    """Aggregation across lines"""

    def test_two_line_invoice(self):
        result = calculate_invoice([line(500, 0, 18), line(300, 50, 0)], gst_included=True)

        assert result.total_original == Decimal("800.00")
        assert result.total_discount == Decimal("150.00")
        assert result.subtotal == Decimal("650.00")
        assert result.total_gst == Decimal("90.00")
        assert result.total_amount == Decimal("740.00")

    def test_totals_are_consistent(self):
        lines = [line("149.99", "7.5", "12"), line("89.50", "33", "18"), line("1200", "0", "5")]
        result = calculate_invoice(lines, gst_included=True)

        assert result.subtotal == result.total_original - result.total_discount
        assert result.total_amount == result.subtotal + result.total_gst
        for item in result.items:
            assert item.discount_amount <= item.original_amount


class TestValidation:
    """Invalid lines stop the whole calculation"""

    def test_empty_list_rejected(self):
        with pytest.raises(BillingValidationError) as exc_info:
            calculate_invoice([], gst_included=True)
        assert exc_info.value.invalid_lines == []

    def test_reports_every_invalid_line(self):
        lines = [line(100), line(-5), line(100, 120), line(100, 0, 101)]

        with pytest.raises(BillingValidationError) as exc_info:
            calculate_invoice(lines, gst_included=True)

        assert [entry["index"] for entry in exc_info.value.invalid_lines] == [1, 2, 3]
        assert exc_info.value.status_code == 400
        assert "1, 2, 3" in exc_info.value.message

    def test_boundaries_are_valid(self):
        assert validate_lines([line(0, 0, 0), line(100, 100, 100)]) == []

    def test_collects_multiple_reasons(self):
        [entry] = validate_lines([line(-1, -1, 150)])
        assert len(entry["reasons"]) == 3

    def test_amount_beyond_column_range_rejected(self):
        lines = [line(100), line("1e27")]

        with pytest.raises(BillingValidationError) as exc_info:
            calculate_invoice(lines, gst_included=True)

        [entry] = exc_info.value.invalid_lines
        assert entry["index"] == 1
        assert entry["reasons"] == ["originalAmount must be <= 99999999.99"]

    def test_largest_amount_accepted(self):
        assert validate_lines([line("99999999.99")]) == []

    def test_invoice_total_beyond_column_range_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            calculate_invoice([line("99999999.99", 0, 18)], gst_included=True)
        assert not isinstance(exc_info.value, BillingValidationError)
        assert exc_info.value.status_code == 400


class TestInvoiceNumber:
    """INV-YYYYMMDD-NNN"""

    def test_format(self):
        number = generate_invoice_number(date(2024, 3, 7), random.Random(1))
        assert re.match(r"^INV-20240307-\d{3}$", number)

    def test_default_date_is_today(self):
        number = generate_invoice_number()
        assert number.startswith(f"INV-{date.today():%Y%m%d}-")
        assert re.match(r"^INV-\d{8}-\d{3}$", number)
