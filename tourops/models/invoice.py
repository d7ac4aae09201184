from decimal import Decimal
from enum import Enum

from sqlalchemy import Numeric

from tourops.extensions import db
from tourops.utils.timezone_utils import utc_now


class InvoiceStatus(Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class InvoiceType(Enum):
    STANDARD = "STANDARD"
    TRANSFER = "TRANSFER"
    DRIVER_TIP = "DRIVER_TIP"


class PaymentMethod(Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"


class Currency(Enum):
    EGP = "EGP"
    USD = "USD"
    EUR = "EUR"


# Lifecycle edges. PARTIALLY_PAID and PAID are only reached through payments.
ALLOWED_TRANSITIONS = {
    InvoiceStatus.DRAFT.value: {InvoiceStatus.POSTED.value, InvoiceStatus.CANCELLED.value,
                                InvoiceStatus.PARTIALLY_PAID.value, InvoiceStatus.PAID.value},
    InvoiceStatus.POSTED.value: {InvoiceStatus.PARTIALLY_PAID.value, InvoiceStatus.PAID.value},
    InvoiceStatus.PARTIALLY_PAID.value: {InvoiceStatus.PARTIALLY_PAID.value, InvoiceStatus.PAID.value},
    InvoiceStatus.PAID.value: set(),
    InvoiceStatus.CANCELLED.value: set(),
}

# Statuses that count towards an agent's credit exposure
OUTSTANDING_STATUSES = [
    InvoiceStatus.DRAFT.value,
    InvoiceStatus.POSTED.value,
    InvoiceStatus.PARTIALLY_PAID.value,
]


class Invoice(db.Model):
    __tablename__ = 'invoice'

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(20), unique=True, nullable=False, index=True)
    agent_id = db.Column(db.Integer, db.ForeignKey('agent.id'), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer.id'), nullable=True, index=True)
    invoice_type = db.Column(db.String(16), nullable=False, default=InvoiceType.STANDARD.value, index=True)
    currency = db.Column(db.String(3), nullable=False, default=Currency.EGP.value)
    invoice_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    subtotal = db.Column(Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00"))
    tax_amount = db.Column(Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00"))
    total = db.Column(Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00"))
    exchange_rate = db.Column(Numeric(precision=12, scale=6), nullable=False, default=Decimal("1"))
    status = db.Column(db.String(16), nullable=False, default=InvoiceStatus.DRAFT.value, index=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    posted_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)

    agent = db.relationship('Agent', backref='invoices', lazy='select')
    customer = db.relationship('Customer', backref='invoices', lazy='select')
    lines = db.relationship(
        'InvoiceLine',
        back_populates='invoice',
        cascade='all, delete-orphan',
        order_by='InvoiceLine.id',
    )
    payments = db.relationship(
        'Payment',
        back_populates='invoice',
        cascade='all, delete-orphan',
        order_by='Payment.id',
    )

    __table_args__ = (
        # Billed to exactly one counterparty
        db.CheckConstraint(
            "(agent_id IS NULL) <> (customer_id IS NULL)",
            name="ck_invoice_single_counterparty",
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def paid_amount(self):
        return sum((Decimal(str(p.amount)) for p in self.payments), Decimal("0.00"))

    @property
    def remaining_balance(self):
        return Decimal(str(self.total or 0)) - self.paid_amount

    @property
    def legacy_status(self):
        """Two-state surface of older consumers, where POSTED also meant partially paid."""
        if self.status == InvoiceStatus.PARTIALLY_PAID.value:
            return InvoiceStatus.POSTED.value
        return self.status

    def can_transition_to(self, new_status):
        return new_status in ALLOWED_TRANSITIONS.get(self.status, set())

    def __repr__(self):
        return f"<Invoice {self.id} {self.invoice_number} - {self.status}>"


class InvoiceLine(db.Model):
    __tablename__ = 'invoice_line'

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey('invoice.id', ondelete='CASCADE'), nullable=False, index=True)
    traffic_job_id = db.Column(db.Integer, db.ForeignKey('traffic_job.id', ondelete='SET NULL'), nullable=True, index=True)
    description = db.Column(db.String(512), nullable=False)
    quantity = db.Column(Numeric(precision=12, scale=4), nullable=False, default=Decimal("1"))
    unit_price = db.Column(Numeric(precision=14, scale=4), nullable=False)
    tax_rate = db.Column(Numeric(precision=5, scale=2), nullable=False, default=Decimal("0"))
    tax_amount = db.Column(Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00"))
    line_total = db.Column(Numeric(precision=12, scale=2), nullable=False)

    invoice = db.relationship('Invoice', back_populates='lines')
    traffic_job = db.relationship('TrafficJob', backref='invoice_lines', lazy='select')

    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_invoice_line_quantity_nonneg"),
        db.CheckConstraint("tax_rate >= 0", name="ck_invoice_line_tax_rate_nonneg"),
    )

    def __repr__(self):
        return f"<InvoiceLine {self.id} invoice={self.invoice_id} total={self.line_total}>"


class Payment(db.Model):
    __tablename__ = 'payment'

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey('invoice.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(Numeric(precision=12, scale=2), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    reference = db.Column(db.String(128), nullable=True)  # e.g. bank transfer ref, cheque number
    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    invoice = db.relationship("Invoice", back_populates="payments")

    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
    )

    def __repr__(self):
        return f"<Payment {self.id} invoice={self.invoice_id} amount={self.amount}>"
