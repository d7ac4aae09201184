import logging
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from tourops.extensions import db
from tourops.models.invoice import Invoice, InvoiceLine, InvoiceStatus, InvoiceType
from tourops.schemas.finance_schema import (
    CreateInvoiceSchema,
    ReplaceInvoiceLinesSchema,
    UpdateInvoiceStatusSchema,
    load_payload,
)
from tourops.services.credit_policy import CreditPolicy
from tourops.services.errors import (
    ServiceError,
    NotFoundError,
    InvalidStateError,
    InvalidInputError,
    ResourceExhaustedError,
)
from tourops.services.invoice_number import InvoiceNumberGenerator
from tourops.services.lookups import find_active_agent, find_active_traffic_jobs, lock_invoice
from tourops.services.money import invoice_totals, normalize_line
from tourops.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


def page_bounds(page, per_page):
    """Clamp paging arguments to 1..MAX_PAGE_SIZE, defaulting to DEFAULT_PAGE_SIZE."""
    page = max(int(page or 1), 1)
    max_size = current_app.config.get('MAX_PAGE_SIZE', 100)
    per_page = int(per_page or current_app.config.get('DEFAULT_PAGE_SIZE', 20))
    return page, min(max(per_page, 1), max_size)


def build_lines(raw_lines):
    """Check referenced trip jobs and turn validated input lines into InvoiceLine rows."""
    job_ids = [line['traffic_job_id'] for line in raw_lines if line.get('traffic_job_id') is not None]
    find_active_traffic_jobs(job_ids)
    try:
        normalized = [normalize_line(line) for line in raw_lines]
    except ValueError as e:
        raise InvalidInputError("Invalid invoice line", errors={'lines': [str(e)]})
    return normalized, [InvoiceLine(**line) for line in normalized]


def apply_totals(invoice, normalized_lines):
    invoice.subtotal, invoice.tax_amount, invoice.total = invoice_totals(normalized_lines)


def paginated(query, page, per_page):
    page, per_page = page_bounds(page, per_page)
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    return {
        'items': pagination.items,
        'total': pagination.total,
        'page': page,
        'per_page': per_page,
        'pages': pagination.pages,
    }


class InvoiceService:
    @staticmethod
    def create_invoice(payload, numbers=None):
        """
        Create a DRAFT agent invoice from line items.

        Validation, the agent and job lookups, the credit check and number
        allocation all happen before anything is written; header and lines
        are committed together.

        Args:
            payload: invoice request data
            numbers: InvoiceNumberGenerator to allocate from, a default one when None
        """
        data = load_payload(CreateInvoiceSchema(), payload)
        try:
            agent = find_active_agent(data['agent_id'])
            normalized, lines = build_lines(data['lines'])
            subtotal, tax_amount, total = invoice_totals(normalized)

            CreditPolicy.enforce(agent.id, total)
            if numbers is None:
                numbers = InvoiceNumberGenerator()
            invoice_number = numbers.allocate(InvoiceType.STANDARD.value)

            invoice = Invoice(
                invoice_number=invoice_number,
                agent_id=agent.id,
                invoice_type=InvoiceType.STANDARD.value,
                currency=data.get('currency') or agent.currency or current_app.config['DEFAULT_CURRENCY'],
                invoice_date=data['issue_date'],
                due_date=data['due_date'],
                subtotal=subtotal,
                tax_amount=tax_amount,
                total=total,
                status=InvoiceStatus.DRAFT.value,
            )
            invoice.lines = lines
            db.session.add(invoice)
            db.session.commit()
            logger.info(f"Invoice {invoice.invoice_number} created for agent {agent.id} with total {invoice.total}")
            return invoice
        except ServiceError:
            db.session.rollback()
            raise
        except StaleDataError:
            db.session.rollback()
            logger.warning(f"Concurrent invoice creation for agent {data['agent_id']} detected")
            raise InvalidStateError(
                "Another invoice for this agent was created concurrently. Please retry.",
                agent_id=data['agent_id'],
            )
        except IntegrityError as e:
            db.session.rollback()
            if 'invoice_number' in str(e.orig):
                logger.warning(f"Invoice number taken by a concurrent insert: {e.orig}")
                raise ResourceExhaustedError("Failed to generate unique invoice number. Please try again.")
            logging.error(f"Error creating invoice: {e}", exc_info=True)
            raise ServiceError("Could not create invoice. Please try again later.")
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error creating invoice: {e}", exc_info=True)
            raise ServiceError("Could not create invoice. Please try again later.")

    @staticmethod
    def get_invoice(invoice_id):
        invoice = db.session.get(Invoice, invoice_id)
        if not invoice:
            raise NotFoundError(f'Invoice with ID "{invoice_id}" not found', invoice_id=invoice_id)
        return invoice

    @staticmethod
    def list_invoices(page=1, per_page=None, agent_id=None, status=None):
        try:
            query = Invoice.query.filter(Invoice.agent_id.isnot(None))
            if agent_id:
                query = query.filter(Invoice.agent_id == agent_id)
            if status:
                query = query.filter(Invoice.status == status)
            query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
            return paginated(query, page, per_page)
        except SQLAlchemyError as e:
            logging.error(f"Error fetching invoices: {e}", exc_info=True)
            raise ServiceError("Could not fetch invoices. Please try again later.")

    @staticmethod
    def _transition(invoice_id, new_status, verb, mutate=None):
        try:
            invoice = lock_invoice(invoice_id)
            if not invoice.can_transition_to(new_status):
                raise InvalidStateError(
                    f"Cannot {verb} invoice {invoice.invoice_number} in {invoice.status} status",
                    invoice_id=invoice.id,
                    status=invoice.status,
                )
            old_status = invoice.status
            invoice.status = new_status
            if mutate:
                mutate(invoice)
            db.session.commit()
            logger.info(f"Invoice {invoice.invoice_number} moved {old_status} -> {new_status}")
            return invoice
        except ServiceError as e:
            db.session.rollback()
            if isinstance(e, InvalidStateError):
                logger.warning(e.message)
            raise
        except StaleDataError:
            db.session.rollback()
            raise InvalidStateError("Invoice was modified concurrently. Please retry.", invoice_id=invoice_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error updating invoice: {e}", exc_info=True)
            raise ServiceError("Could not update invoice. Please try again later.")

    @staticmethod
    def post_invoice(invoice_id):
        def stamp(invoice):
            invoice.posted_at = utc_now()
        return InvoiceService._transition(invoice_id, InvoiceStatus.POSTED.value, 'post', stamp)

    @staticmethod
    def cancel_invoice(invoice_id):
        return InvoiceService._transition(invoice_id, InvoiceStatus.CANCELLED.value, 'cancel')

    @staticmethod
    def update_status(invoice_id, payload):
        """Manual status change; only POSTED and CANCELLED can be requested."""
        data = load_payload(UpdateInvoiceStatusSchema(), payload)
        if data['status'] == InvoiceStatus.POSTED.value:
            return InvoiceService.post_invoice(invoice_id)
        return InvoiceService.cancel_invoice(invoice_id)

    @staticmethod
    def replace_lines(invoice_id, payload):
        """
        Replace every line of a DRAFT invoice and restate its totals.

        Old lines are removed through the delete-orphan cascade, so the line
        set and the header totals change in the same commit. The credit
        check is not repeated.
        """
        data = load_payload(ReplaceInvoiceLinesSchema(), payload)
        try:
            invoice = lock_invoice(invoice_id)
            if invoice.status != InvoiceStatus.DRAFT.value:
                raise InvalidStateError(
                    f"Lines of invoice {invoice.invoice_number} cannot be changed in {invoice.status} status",
                    invoice_id=invoice.id,
                    status=invoice.status,
                )
            normalized, lines = build_lines(data['lines'])
            invoice.lines = lines
            apply_totals(invoice, normalized)
            db.session.commit()
            logger.info(f"Invoice {invoice.invoice_number} lines replaced ({len(lines)} lines, total {invoice.total})")
            return invoice
        except ServiceError:
            db.session.rollback()
            raise
        except StaleDataError:
            db.session.rollback()
            raise InvalidStateError("Invoice was modified concurrently. Please retry.", invoice_id=invoice_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error replacing invoice lines: {e}", exc_info=True)
            raise ServiceError("Could not update invoice. Please try again later.")

    @staticmethod
    def delete_invoice(invoice_id):
        try:
            invoice = lock_invoice(invoice_id)
            if invoice.status != InvoiceStatus.DRAFT.value or invoice.payments:
                raise InvalidStateError(
                    "Only draft invoices without payments can be deleted",
                    invoice_id=invoice.id,
                    status=invoice.status,
                )
            number = invoice.invoice_number
            db.session.delete(invoice)
            db.session.commit()
            logger.info(f"Invoice {number} deleted")
        except ServiceError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error deleting invoice: {e}", exc_info=True)
            raise ServiceError("Could not delete invoice. Please try again later.")

    @staticmethod
    def get_balance(invoice_id):
        invoice = InvoiceService.get_invoice(invoice_id)
        return {
            'invoice_id': invoice.id,
            'invoice_number': invoice.invoice_number,
            'status': invoice.status,
            'total': invoice.total,
            'paid_amount': invoice.paid_amount,
            'remaining_balance': invoice.remaining_balance,
        }

