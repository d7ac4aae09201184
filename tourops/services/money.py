"""
Money and tax arithmetic for invoices.

All amounts are Decimals rounded to 2 places with ROUND_HALF_UP, which in
the decimal module rounds halves away from zero. Everything here is pure so
the same figures come out at invoice creation and at line replacement.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Scales of the stored line columns; input beyond them is rejected, not rounded
LINE_PLACES = 4
RATE_PLACES = 2


def to_decimal(value, field_name="amount"):
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats keep their printed value rather than their binary one
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {field_name} value: {value!r}") from e


def round2(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def decimal_places(value):
    """Significant decimal places; trailing zeros do not count."""
    exponent = to_decimal(value).normalize().as_tuple().exponent
    return max(-exponent, 0)


def check_places(value, places, field_name):
    if not value.is_finite():
        raise ValueError(f"Invalid {field_name} value: {value}")
    if decimal_places(value) > places:
        raise ValueError(f"{field_name} allows at most {places} decimal places: {value}")
    return value


def line_net(unit_price, quantity):
    return to_decimal(unit_price, "unit_price") * to_decimal(quantity, "quantity")


def line_tax(unit_price, quantity, tax_rate):
    """
    Tax and total for one invoice line.

    Returns:
        (tax_amount, line_total) with tax_amount exactly 0 when tax_rate <= 0
    """
    net = line_net(unit_price, quantity)
    rate = to_decimal(tax_rate, "tax_rate")
    if rate > 0:
        tax_amount = round2(net * rate / HUNDRED)
    else:
        tax_amount = ZERO
    return tax_amount, round2(net + tax_amount)


def invoice_totals(lines):
    """
    Invoice-level subtotal, tax and total.

    The subtotal rounds the sum of unrounded nets once; the tax sums the
    already-rounded per-line taxes. `lines` are mappings with unit_price,
    quantity and tax_rate.

    Returns:
        (subtotal, tax_amount, total)
    """
    net_sum = Decimal("0")
    tax_sum = Decimal("0")
    for line in lines:
        net_sum += line_net(line["unit_price"], line["quantity"])
        tax_amount, _ = line_tax(line["unit_price"], line["quantity"], line["tax_rate"])
        tax_sum += tax_amount
    subtotal = round2(net_sum)
    tax_amount = round2(tax_sum)
    return subtotal, tax_amount, round2(subtotal + tax_amount)


def normalize_line(raw):
    """
    Turn one input line into the persisted line shape.

    unit_price falls back to the flat `amount` field, quantity to 1 and
    tax_rate to 0. Values are kept at their given precision so the stored
    line recomputes to the same tax_amount and line_total.
    """
    unit_price = raw.get("unit_price")
    if unit_price is None:
        unit_price = raw.get("amount")
    if unit_price is None:
        raise ValueError("Either unit_price or amount is required for an invoice line")

    quantity = raw.get("quantity")
    tax_rate = raw.get("tax_rate")
    unit_price = check_places(to_decimal(unit_price, "unit_price"), LINE_PLACES, "unit_price")
    quantity = check_places(to_decimal(1 if quantity is None else quantity, "quantity"), LINE_PLACES, "quantity")
    tax_rate = check_places(to_decimal(0 if tax_rate is None else tax_rate, "tax_rate"), RATE_PLACES, "tax_rate")
    if quantity < 0:
        raise ValueError("Quantity cannot be negative")
    if tax_rate < 0:
        raise ValueError("Tax rate cannot be negative")

    tax_amount, line_total = line_tax(unit_price, quantity, tax_rate)
    return {
        "traffic_job_id": raw.get("traffic_job_id"),
        "description": raw["description"],
        "quantity": quantity,
        "unit_price": unit_price,
        "tax_rate": tax_rate,
        "tax_amount": tax_amount,
        "line_total": line_total,
    }
