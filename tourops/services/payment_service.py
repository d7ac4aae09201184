import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from tourops.extensions import db
from tourops.models.invoice import InvoiceStatus, Payment
from tourops.schemas.finance_schema import CreatePaymentSchema, load_payload
from tourops.services.errors import ServiceError, InvalidStateError, InvalidInputError, PolicyViolationError
from tourops.services.invoice_service import InvoiceService
from tourops.services.lookups import lock_invoice
from tourops.services.money import round2, to_decimal
from tourops.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


class PaymentService:
    @staticmethod
    def apply_payment(invoice_id, amount, method, payment_date, reference=None, notes=None):
        """
        Record a payment against an invoice and advance its status.

        Checks run in order against the locked invoice: it must exist, must
        not be cancelled or already paid, and the payment may not exceed
        the remaining balance. The invoice becomes PAID once payments reach
        its total and PARTIALLY_PAID before that.
        """
        amount = round2(amount)
        if amount <= 0:
            raise InvalidInputError("Invalid request data", errors={'amount': ["Payment amount must be positive."]})
        try:
            invoice = lock_invoice(invoice_id)
            if invoice.status == InvoiceStatus.CANCELLED.value:
                raise InvalidStateError(
                    f"Cannot record payment on cancelled invoice {invoice.invoice_number}",
                    invoice_id=invoice.id,
                    status=invoice.status,
                )
            if invoice.status == InvoiceStatus.PAID.value:
                raise InvalidStateError(
                    f"Invoice {invoice.invoice_number} is already fully paid",
                    invoice_id=invoice.id,
                    status=invoice.status,
                )

            total = to_decimal(invoice.total)
            already_paid = invoice.paid_amount
            remaining = round2(total - already_paid)
            if already_paid + amount > total:
                overage = round2(amount - remaining)
                raise PolicyViolationError(
                    f"Payment amount {amount} exceeds remaining balance of {remaining}",
                    amount=amount,
                    remaining=remaining,
                    overage=overage,
                )

            payment = Payment(
                amount=amount,
                payment_method=method,
                payment_date=payment_date,
                reference=reference,
                notes=notes,
            )
            invoice.payments.append(payment)

            new_status = (
                InvoiceStatus.PAID.value if already_paid + amount >= total
                else InvoiceStatus.PARTIALLY_PAID.value
            )
            old_status = invoice.status
            invoice.status = new_status
            now = utc_now()
            if invoice.posted_at is None:
                invoice.posted_at = now
            # Dirty the header so the version check applies even when the status is unchanged
            invoice.updated_at = now
            db.session.commit()
            logger.info(
                f"Payment of {amount} recorded on invoice {invoice.invoice_number} "
                f"({old_status} -> {new_status})"
            )
            return payment
        except ServiceError as e:
            db.session.rollback()
            logger.warning(f"Payment on invoice {invoice_id} rejected: {e.message}")
            raise
        except StaleDataError:
            db.session.rollback()
            raise InvalidStateError("Invoice was modified concurrently. Please retry.", invoice_id=invoice_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error recording payment: {e}", exc_info=True)
            raise ServiceError("Could not record payment. Please try again later.")

    @staticmethod
    def record_payment(payload):
        data = load_payload(CreatePaymentSchema(), payload)
        return PaymentService.apply_payment(
            data['invoice_id'],
            data['amount'],
            data['method'],
            data['payment_date'],
            reference=data.get('reference'),
            notes=data.get('notes'),
        )

    @staticmethod
    def list_payments(invoice_id):
        invoice = InvoiceService.get_invoice(invoice_id)
        return list(invoice.payments)

    @staticmethod
    def get_balance(invoice_id):
        return InvoiceService.get_balance(invoice_id)
