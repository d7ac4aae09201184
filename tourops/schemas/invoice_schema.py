from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow_sqlalchemy import fields as ma_fields
from marshmallow import fields
from tourops.models.invoice import Invoice, InvoiceLine, Payment


class InvoiceLineSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = InvoiceLine
        include_fk = True
    id = auto_field(dump_only=True)
    invoice_id = auto_field(dump_only=True)
    traffic_job_id = auto_field()
    description = auto_field()
    quantity = auto_field(as_string=True)
    unit_price = auto_field(as_string=True)
    tax_rate = auto_field(as_string=True)
    tax_amount = auto_field(as_string=True, dump_only=True)
    line_total = auto_field(as_string=True, dump_only=True)


class PaymentSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Payment
        include_fk = True
    id = auto_field(dump_only=True)
    invoice_id = auto_field()
    amount = auto_field(as_string=True)
    payment_method = auto_field()
    payment_date = auto_field()
    reference = auto_field()
    notes = auto_field()
    created_at = auto_field(dump_only=True)


class InvoiceSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Invoice
        include_fk = True
        exclude = ('version',)
    id = auto_field(dump_only=True)
    invoice_number = auto_field(dump_only=True)
    agent_id = auto_field()
    customer_id = auto_field()
    invoice_type = auto_field()
    currency = auto_field()
    invoice_date = auto_field()
    due_date = auto_field()
    subtotal = auto_field(as_string=True, dump_only=True)
    tax_amount = auto_field(as_string=True, dump_only=True)
    total = auto_field(as_string=True, dump_only=True)
    status = auto_field(dump_only=True)
    created_at = auto_field(dump_only=True)
    posted_at = auto_field(dump_only=True)

    # Older consumers only know DRAFT/POSTED/PAID/CANCELLED
    legacy_status = fields.Str(dump_only=True)
    paid_amount = fields.Decimal(as_string=True, dump_only=True)
    remaining_balance = fields.Decimal(as_string=True, dump_only=True)

    lines = ma_fields.Nested(InvoiceLineSchema, many=True, dump_only=True)
    payments = ma_fields.Nested(PaymentSchema, many=True, dump_only=True)
