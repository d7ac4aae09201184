from marshmallow import Schema, fields, validate, validates_schema, ValidationError, EXCLUDE

from tourops.models.invoice import Currency, InvoiceStatus, PaymentMethod
from tourops.services.errors import InvalidInputError
from tourops.services.money import LINE_PLACES, RATE_PLACES, decimal_places

CURRENCIES = [c.value for c in Currency]
PAYMENT_METHODS = [m.value for m in PaymentMethod]
POSITIVE = validate.Range(min=0, min_inclusive=False)


def max_places(places):
    def validator(value):
        if value is not None and decimal_places(value) > places:
            raise ValidationError(f"Must have at most {places} decimal places.")
    return validator


class InvoiceLineInputSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    traffic_job_id = fields.Int(load_default=None, allow_none=True)
    description = fields.Str(required=True, validate=validate.Length(min=1, max=512))
    # Flat amount, used as unit_price when unit_price is not given
    amount = fields.Decimal(load_default=None, allow_none=True, validate=[POSITIVE, max_places(LINE_PLACES)])
    unit_price = fields.Decimal(load_default=None, allow_none=True, validate=[POSITIVE, max_places(LINE_PLACES)])
    quantity = fields.Decimal(
        load_default=None, allow_none=True, validate=[validate.Range(min=0), max_places(LINE_PLACES)])
    tax_rate = fields.Decimal(
        load_default=None, allow_none=True, validate=[validate.Range(min=0, max=100), max_places(RATE_PLACES)])

    @validates_schema
    def validate_price(self, data, **kwargs):
        if data.get('unit_price') is None and data.get('amount') is None:
            raise ValidationError('Either unit_price or amount is required.', 'unit_price')


class CreateInvoiceSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    agent_id = fields.Int(required=True)
    issue_date = fields.Date(required=True)
    due_date = fields.Date(required=True)
    currency = fields.Str(load_default=None, allow_none=True, validate=validate.OneOf(CURRENCIES))
    lines = fields.List(fields.Nested(InvoiceLineInputSchema), required=True, validate=validate.Length(min=1))

    @validates_schema
    def validate_dates(self, data, **kwargs):
        if data['due_date'] < data['issue_date']:
            raise ValidationError('Due date cannot be before the issue date.', 'due_date')


class ReplaceInvoiceLinesSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    lines = fields.List(fields.Nested(InvoiceLineInputSchema), required=True, validate=validate.Length(min=1))


class UpdateInvoiceStatusSchema(Schema):
    status = fields.Str(
        required=True,
        validate=validate.OneOf([InvoiceStatus.POSTED.value, InvoiceStatus.CANCELLED.value]),
    )


class CreatePaymentSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    invoice_id = fields.Int(required=True)
    amount = fields.Decimal(required=True, validate=POSITIVE)
    payment_date = fields.Date(required=True)
    method = fields.Str(required=True, validate=validate.OneOf(PAYMENT_METHODS))
    reference = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=128))
    notes = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=255))


class GenerateCustomerInvoicesSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    customer_id = fields.Int(required=True)
    traffic_job_ids = fields.List(fields.Int(), required=True, validate=validate.Length(min=1))
    issue_date = fields.Date(required=True)
    due_date = fields.Date(load_default=None, allow_none=True)


class CreditTermsSchema(Schema):
    credit_limit = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))
    credit_days = fields.Int(required=True, validate=validate.Range(min=0))


class CreateDriverFeeSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    traffic_job_id = fields.Int(required=True)
    driver_id = fields.Int(required=True)
    amount = fields.Decimal(required=True, validate=POSITIVE)
    currency = fields.Str(load_default=None, allow_none=True, validate=validate.OneOf(CURRENCIES))
    notes = fields.Str(load_default=None, allow_none=True)


class CreateRepFeeSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    traffic_job_id = fields.Int(required=True)
    rep_id = fields.Int(required=True)
    # Falls back to the rep's fee_per_flight
    amount = fields.Decimal(load_default=None, allow_none=True, validate=POSITIVE)
    currency = fields.Str(load_default=None, allow_none=True, validate=validate.OneOf(CURRENCIES))
    notes = fields.Str(load_default=None, allow_none=True)


class CreateSupplierCostSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    traffic_job_id = fields.Int(required=True)
    supplier_id = fields.Int(required=True)
    amount = fields.Decimal(required=True, validate=POSITIVE)
    currency = fields.Str(load_default=None, allow_none=True, validate=validate.OneOf(CURRENCIES))
    notes = fields.Str(load_default=None, allow_none=True)


def load_payload(schema, payload):
    """Validate and deserialize `payload`, turning marshmallow errors into InvalidInputError."""
    try:
        return schema.load(payload or {})
    except ValidationError as err:
        raise InvalidInputError("Invalid request data", errors=err.messages)
