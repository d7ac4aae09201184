"""
Tests for invoice money and tax arithmetic
"""
from decimal import Decimal

import pytest

from tourops.services.money import invoice_totals, line_tax, normalize_line, round2


class TestLineTax:

    def test_tax_is_percentage_of_net(self):
        """Test that line tax is the rate applied to the net"""
        tax_amount, line_total = line_tax(Decimal("10.00"), Decimal("3"), Decimal("14"))
        assert tax_amount == Decimal("4.20")
        assert line_total == Decimal("34.20")

    def test_zero_rate_gives_exact_zero_tax(self):
        """Test that a zero rate gives exactly zero tax"""
        tax_amount, line_total = line_tax(Decimal("19.99"), Decimal("2"), Decimal("0"))
        assert tax_amount == Decimal("0.00")
        assert line_total == Decimal("39.98")

    def test_half_cent_rounds_away_from_zero(self):
        """Test that half a cent of tax rounds up"""
        # 0.05 * 10% = 0.005
        tax_amount, _ = line_tax(Decimal("0.05"), 1, 10)
        assert tax_amount == Decimal("0.01")

    @pytest.mark.parametrize("unit_price,quantity,rate", [
        ("12.34", "3", "14"),
        ("0.99", "7", "5.5"),
        ("250.00", "1", "10"),
        ("3.33", "0.5", "12.5"),
    ])
    def test_tax_matches_rounded_net_times_rate(self, unit_price, quantity, rate):
        """Test that line tax and total round the unrounded net"""
        tax_amount, line_total = line_tax(Decimal(unit_price), Decimal(quantity), Decimal(rate))
        net = Decimal(unit_price) * Decimal(quantity)
        assert tax_amount == round2(net * Decimal(rate) / 100)
        assert line_total == round2(net + tax_amount)


class TestInvoiceTotals:

    def test_subtotal_rounds_sum_of_unrounded_nets(self):
        """Test that the subtotal rounds once over the summed nets"""
        lines = [
            {"unit_price": Decimal("0.125"), "quantity": 1, "tax_rate": 10},
            {"unit_price": Decimal("0.125"), "quantity": 1, "tax_rate": 10},
        ]
        subtotal, tax_amount, total = invoice_totals(lines)
        # Rounding each net first would give 0.26
        assert subtotal == Decimal("0.25")
        assert tax_amount == Decimal("0.02")
        assert total == Decimal("0.27")

    def test_total_is_subtotal_plus_tax(self):
        """Test that the invoice total is subtotal plus tax"""
        lines = [
            {"unit_price": Decimal("100.00"), "quantity": 2, "tax_rate": 14},
            {"unit_price": Decimal("45.50"), "quantity": 1, "tax_rate": 0},
        ]
        subtotal, tax_amount, total = invoice_totals(lines)
        assert subtotal == Decimal("245.50")
        assert tax_amount == Decimal("28.00")
        assert total == round2(subtotal + tax_amount)

    def test_empty_line_set(self):
        """Test that no lines give zero totals"""
        assert invoice_totals([]) == (Decimal("0.00"), Decimal("0.00"), Decimal("0.00"))


class TestNormalizeLine:

    def test_defaults_from_flat_amount(self):
        """Test that a flat amount becomes the unit price with default quantity and rate"""
        line = normalize_line({"description": "Airport transfer", "amount": "150"})
        assert line["unit_price"] == Decimal("150.00")
        assert line["quantity"] == Decimal("1")
        assert line["tax_rate"] == Decimal("0")
        assert line["tax_amount"] == Decimal("0.00")
        assert line["line_total"] == Decimal("150.00")
        assert line["traffic_job_id"] is None

    def test_unit_price_wins_over_amount(self):
        """Test that unit_price takes precedence over amount"""
        line = normalize_line({"description": "x", "amount": "1", "unit_price": "20", "quantity": 2, "tax_rate": 14})
        assert line["unit_price"] == Decimal("20.00")
        assert line["tax_amount"] == Decimal("5.60")
        assert line["line_total"] == Decimal("45.60")

    def test_requires_a_price(self):
        """Test that normalize_line needs a price"""
        with pytest.raises(ValueError):
            normalize_line({"description": "no price"})

    def test_rejects_negative_quantity(self):
        """Test that a negative quantity is rejected"""
        with pytest.raises(ValueError):
            normalize_line({"description": "x", "amount": "10", "quantity": -1})

    def test_keeps_sub_cent_unit_price(self):
        """Test that normalize_line keeps unit_price at its given precision"""
        line = normalize_line({"description": "Water", "unit_price": "0.125", "quantity": "100"})
        assert line["unit_price"] == Decimal("0.125")
        assert line["line_total"] == Decimal("12.50")

    def test_trailing_zeros_do_not_count_as_places(self):
        """Test that trailing zeros beyond the stored scale are accepted"""
        line = normalize_line({"description": "x", "unit_price": "10.000000", "tax_rate": "14.000"})
        assert line["unit_price"] == Decimal("10")
        assert line["tax_amount"] == Decimal("1.40")

    @pytest.mark.parametrize("field,value", [
        ("unit_price", "0.00001"),
        ("quantity", "0.33333"),
        ("tax_rate", "5.125"),
        ("unit_price", "NaN"),
    ])
    def test_rejects_values_finer_than_stored_scale(self, field, value):
        """Test that normalize_line refuses values the line columns cannot hold exactly"""
        raw = {"description": "x", "unit_price": "10"}
        raw[field] = value
        with pytest.raises(ValueError):
            normalize_line(raw)
