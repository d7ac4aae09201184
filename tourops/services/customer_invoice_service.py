import logging
from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from tourops.extensions import db
from tourops.models.invoice import Invoice, InvoiceLine, InvoiceStatus, InvoiceType
from tourops.models.job import JobAssignment, TrafficJob
from tourops.models.vehicle import Vehicle
from tourops.schemas.finance_schema import GenerateCustomerInvoicesSchema, load_payload
from tourops.services.errors import ServiceError, NotFoundError, ResourceExhaustedError
from tourops.services.invoice_number import InvoiceNumberGenerator
from tourops.services.invoice_service import paginated
from tourops.services.lookups import find_active_customer, find_price_item
from tourops.services.money import round2

logger = logging.getLogger(__name__)

SKIP_MISSING_JOB = "Traffic job not found"
SKIP_MISSING_ROUTE = "Job has no from/to zone"
SKIP_MISSING_VEHICLE = "Job has no assigned vehicle"
SKIP_MISSING_PRICE = "No price item for customer, service type, route and vehicle type"


def default_due_date(issue_date, credit_days=None):
    days = credit_days or current_app.config.get('DEFAULT_CUSTOMER_CREDIT_DAYS', 30)
    return issue_date + timedelta(days=days)


def describe_job(job):
    from_name = job.from_zone.name if job.from_zone else 'Unknown'
    to_name = job.to_zone.name if job.to_zone else 'Unknown'
    vehicle = job.assigned_vehicle
    vehicle_name = vehicle.vehicle_type.name if vehicle and vehicle.vehicle_type else 'Vehicle'
    return f"{from_name} → {to_name} ({vehicle_name}) - {job.internal_ref or job.id}"


class CustomerInvoiceService:
    @staticmethod
    def _collect_lines(customer_id, jobs):
        """Split priced jobs into transfer and driver-tip lines; everything else is skipped."""
        transfer_lines, tip_lines, skipped = [], [], []

        for job in jobs:
            if not job.from_zone_id or not job.to_zone_id:
                skipped.append({'traffic_job_id': job.id, 'reason': SKIP_MISSING_ROUTE})
                continue
            vehicle = job.assigned_vehicle
            if not vehicle or not vehicle.vehicle_type_id:
                skipped.append({'traffic_job_id': job.id, 'reason': SKIP_MISSING_VEHICLE})
                continue
            item = find_price_item(customer_id, job.service_type, job.from_zone_id, job.to_zone_id, vehicle.vehicle_type_id)
            if not item:
                skipped.append({'traffic_job_id': job.id, 'reason': SKIP_MISSING_PRICE})
                continue

            route = describe_job(job)
            transfer_price = round2(item.transfer_price)
            driver_tip = round2(item.driver_tip)
            if transfer_price > 0:
                transfer_lines.append((job.id, f"Transfer: {route}", transfer_price))
            if driver_tip > 0:
                tip_lines.append((job.id, f"Driver Tip: {route}", driver_tip))

        return transfer_lines, tip_lines, skipped

    @staticmethod
    def _build_invoice(customer, invoice_type, lines, issue_date, due_date, numbers):
        total = round2(sum((amount for _, _, amount in lines), Decimal("0")))
        invoice = Invoice(
            invoice_number=numbers.allocate(invoice_type),
            customer_id=customer.id,
            invoice_type=invoice_type,
            currency=customer.currency or current_app.config['DEFAULT_CURRENCY'],
            invoice_date=issue_date,
            due_date=due_date,
            subtotal=total,
            tax_amount=Decimal("0.00"),
            total=total,
            exchange_rate=Decimal("1"),
            status=InvoiceStatus.DRAFT.value,
        )
        invoice.lines = [
            InvoiceLine(
                traffic_job_id=job_id,
                description=description,
                quantity=Decimal("1"),
                unit_price=amount,
                tax_rate=Decimal("0"),
                tax_amount=Decimal("0.00"),
                line_total=amount,
            )
            for job_id, description, amount in lines
        ]
        db.session.add(invoice)
        # Flush so the second allocation sees the first number
        db.session.flush()
        return invoice

    @staticmethod
    def generate_customer_invoices(payload, numbers=None):
        """
        Build up to two DRAFT invoices for a customer from selected trip jobs:
        one for transfer prices and one for driver tips.

        Jobs without both zones, an assigned vehicle or a matching price item
        are left out and listed in `skipped`, as are requested ids that do not
        resolve to an active job. No tax and no credit check apply. Both numbers
        come from `numbers`, a default InvoiceNumberGenerator when None; if
        either allocation fails nothing is kept.

        Returns:
            dict with transfer_invoice, driver_tip_invoice (either may be None)
            and skipped
        """
        data = load_payload(GenerateCustomerInvoicesSchema(), payload)
        try:
            customer = find_active_customer(data['customer_id'])
            requested_ids = list(dict.fromkeys(data['traffic_job_ids']))
            jobs = (
                TrafficJob.query_active()
                .filter(TrafficJob.id.in_(requested_ids))
                .options(
                    joinedload(TrafficJob.from_zone),
                    joinedload(TrafficJob.to_zone),
                    joinedload(TrafficJob.assignment)
                    .joinedload(JobAssignment.vehicle)
                    .joinedload(Vehicle.vehicle_type),
                )
                .order_by(TrafficJob.id)
                .all()
            )
            if not jobs:
                raise NotFoundError("No valid traffic jobs found", traffic_job_ids=requested_ids)

            found_ids = {job.id for job in jobs}
            skipped = [
                {'traffic_job_id': job_id, 'reason': SKIP_MISSING_JOB}
                for job_id in requested_ids if job_id not in found_ids
            ]
            transfer_lines, tip_lines, job_skips = CustomerInvoiceService._collect_lines(customer.id, jobs)
            skipped.extend(job_skips)

            issue_date = data['issue_date']
            due_date = data.get('due_date') or default_due_date(issue_date, customer.credit_days)
            if numbers is None:
                numbers = InvoiceNumberGenerator()

            result = {'transfer_invoice': None, 'driver_tip_invoice': None, 'skipped': skipped}
            if transfer_lines:
                result['transfer_invoice'] = CustomerInvoiceService._build_invoice(
                    customer, InvoiceType.TRANSFER.value, transfer_lines, issue_date, due_date, numbers)
            if tip_lines:
                result['driver_tip_invoice'] = CustomerInvoiceService._build_invoice(
                    customer, InvoiceType.DRIVER_TIP.value, tip_lines, issue_date, due_date, numbers)
            db.session.commit()

            created = [inv.invoice_number for inv in (result['transfer_invoice'], result['driver_tip_invoice']) if inv]
            logger.info(
                f"Customer {customer.id} invoices generated: {created or 'none'}; "
                f"{len(skipped)} job(s) skipped"
            )
            if skipped:
                logger.warning(f"Skipped jobs for customer {customer.id}: {skipped}")
            return result
        except ServiceError:
            db.session.rollback()
            raise
        except IntegrityError as e:
            db.session.rollback()
            if 'invoice_number' in str(e.orig):
                raise ResourceExhaustedError("Failed to generate unique invoice number. Please try again.")
            logging.error(f"Error generating customer invoices: {e}", exc_info=True)
            raise ServiceError("Could not generate invoices. Please try again later.")
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error generating customer invoices: {e}", exc_info=True)
            raise ServiceError("Could not generate invoices. Please try again later.")

    @staticmethod
    def get_customer_invoice(invoice_id):
        invoice = Invoice.query.filter(Invoice.id == invoice_id, Invoice.customer_id.isnot(None)).first()
        if not invoice:
            raise NotFoundError(f'Customer invoice with ID "{invoice_id}" not found', invoice_id=invoice_id)
        return invoice

    @staticmethod
    def list_customer_invoices(page=1, per_page=None, customer_id=None, invoice_type=None, status=None):
        try:
            query = Invoice.query.filter(Invoice.customer_id.isnot(None))
            if customer_id:
                query = query.filter(Invoice.customer_id == customer_id)
            if invoice_type:
                query = query.filter(Invoice.invoice_type == invoice_type)
            if status:
                query = query.filter(Invoice.status == status)
            query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
            return paginated(query, page, per_page)
        except SQLAlchemyError as e:
            logging.error(f"Error fetching customer invoices: {e}", exc_info=True)
            raise ServiceError("Could not fetch customer invoices. Please try again later.")
