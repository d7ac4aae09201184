"""
Read-only lookups against records owned by other subsystems, plus the two
invoice queries the numbering and credit components depend on.
"""
import logging
from decimal import Decimal

from sqlalchemy import func

from tourops.extensions import db
from tourops.models.agent import Agent
from tourops.models.customer import Customer
from tourops.models.customer_price_item import CustomerPriceItem
from tourops.models.invoice import Invoice
from tourops.models.job import TrafficJob
from tourops.services.errors import NotFoundError

logger = logging.getLogger(__name__)


def find_active_agent(agent_id):
    agent = Agent.query_active().filter_by(id=agent_id).first()
    if not agent:
        raise NotFoundError(f'Agent with ID "{agent_id}" not found', agent_id=agent_id)
    return agent


def find_active_customer(customer_id):
    customer = Customer.query_active().filter_by(id=customer_id).first()
    if not customer:
        raise NotFoundError(f'Customer with ID "{customer_id}" not found', customer_id=customer_id)
    return customer


def find_active_traffic_jobs(job_ids):
    """Resolve exactly the requested, non-deleted jobs or fail naming the missing ids."""
    wanted = list(dict.fromkeys(job_ids))
    if not wanted:
        return []
    jobs = TrafficJob.query_active().filter(TrafficJob.id.in_(wanted)).all()
    if len(jobs) != len(wanted):
        found_ids = {job.id for job in jobs}
        missing_ids = [job_id for job_id in wanted if job_id not in found_ids]
        raise NotFoundError(
            f"Traffic jobs not found: {', '.join(str(i) for i in missing_ids)}",
            missing_ids=missing_ids,
        )
    return jobs


def find_price_item(customer_id, service_type, from_zone_id, to_zone_id, vehicle_type_id):
    return CustomerPriceItem.query.filter_by(
        customer_id=customer_id,
        service_type=service_type,
        from_zone_id=from_zone_id,
        to_zone_id=to_zone_id,
        vehicle_type_id=vehicle_type_id,
    ).first()


def invoice_number_exists(candidate):
    return db.session.query(Invoice.id).filter_by(invoice_number=candidate).first() is not None


def sum_outstanding_invoice_totals(agent_id, statuses):
    total = (
        db.session.query(func.coalesce(func.sum(Invoice.total), 0))
        .filter(Invoice.agent_id == agent_id, Invoice.status.in_(statuses))
        .scalar()
    )
    return Decimal(str(total or 0))


def lock_invoice(invoice_id):
    """Re-read an invoice FOR UPDATE inside the caller's transaction."""
    invoice = (
        Invoice.query.filter_by(id=invoice_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not invoice:
        raise NotFoundError(f'Invoice with ID "{invoice_id}" not found', invoice_id=invoice_id)
    return invoice
