import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from tourops.extensions import db
from tourops.models.driver import Driver
from tourops.models.invoice import InvoiceLine
from tourops.models.job import ServiceType, TrafficJob
from tourops.models.job_fees import DriverTripFee, RepFee, SupplierCost
from tourops.models.rep import Rep
from tourops.models.supplier import Supplier
from tourops.schemas.finance_schema import (
    CreateDriverFeeSchema,
    CreateRepFeeSchema,
    CreateSupplierCostSchema,
    load_payload,
)
from tourops.services.errors import ServiceError, NotFoundError, PolicyViolationError
from tourops.services.money import round2, to_decimal

logger = logging.getLogger(__name__)


def _find_active(model, record_id, label):
    record = model.query_active().filter_by(id=record_id).first()
    if not record:
        raise NotFoundError(f'{label} with ID "{record_id}" not found', **{f"{model.__tablename__}_id": record_id})
    return record


def _currency(data):
    return data.get('currency') or current_app.config['DEFAULT_CURRENCY']


class JobFeeService:
    """Costs booked against trip jobs: driver trip fees, rep fees and supplier costs."""

    @staticmethod
    def _save(record, label):
        try:
            db.session.add(record)
            db.session.commit()
            logger.info(f"{label} of {record.amount} {record.currency} recorded for job {record.traffic_job_id}")
            return record
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error creating {label.lower()}: {e}", exc_info=True)
            raise ServiceError(f"Could not create {label.lower()}. Please try again later.")

    @staticmethod
    def create_driver_fee(payload):
        data = load_payload(CreateDriverFeeSchema(), payload)
        job = _find_active(TrafficJob, data['traffic_job_id'], 'Traffic job')
        driver = _find_active(Driver, data['driver_id'], 'Driver')
        if not job.from_zone_id or not job.to_zone_id:
            raise PolicyViolationError(
                "Traffic job must have from and to zones to record a driver fee",
                traffic_job_id=job.id,
            )
        fee = DriverTripFee(
            driver_id=driver.id,
            traffic_job_id=job.id,
            from_zone_id=job.from_zone_id,
            to_zone_id=job.to_zone_id,
            amount=round2(data['amount']),
            currency=_currency(data),
            notes=data.get('notes'),
        )
        return JobFeeService._save(fee, 'Driver fee')

    @staticmethod
    def create_rep_fee(payload):
        """Rep fees apply to arrival jobs only; the amount defaults to the rep's per-flight fee."""
        data = load_payload(CreateRepFeeSchema(), payload)
        job = _find_active(TrafficJob, data['traffic_job_id'], 'Traffic job')
        if job.service_type != ServiceType.ARR.value:
            raise PolicyViolationError(
                "Rep fees can only be recorded for arrival (ARR) jobs",
                traffic_job_id=job.id,
                service_type=job.service_type,
            )
        rep = _find_active(Rep, data['rep_id'], 'Rep')
        amount = data.get('amount')
        if amount is None:
            amount = to_decimal(rep.fee_per_flight)
        if amount <= 0:
            raise PolicyViolationError(
                "Rep fee amount must be positive; set an amount or the rep's fee per flight",
                rep_id=rep.id,
            )
        fee = RepFee(
            rep_id=rep.id,
            traffic_job_id=job.id,
            amount=round2(amount),
            currency=_currency(data),
            notes=data.get('notes'),
        )
        return JobFeeService._save(fee, 'Rep fee')

    @staticmethod
    def create_supplier_cost(payload):
        data = load_payload(CreateSupplierCostSchema(), payload)
        job = _find_active(TrafficJob, data['traffic_job_id'], 'Traffic job')
        supplier = _find_active(Supplier, data['supplier_id'], 'Supplier')
        cost = SupplierCost(
            supplier_id=supplier.id,
            traffic_job_id=job.id,
            amount=round2(data['amount']),
            currency=_currency(data),
            notes=data.get('notes'),
        )
        return JobFeeService._save(cost, 'Supplier cost')

    @staticmethod
    def get_rep_daily_fees(rep_id, day):
        rep = _find_active(Rep, rep_id, 'Rep')
        fees = (
            RepFee.query.join(TrafficJob, RepFee.traffic_job_id == TrafficJob.id)
            .filter(RepFee.rep_id == rep.id, TrafficJob.job_date == day)
            .order_by(RepFee.id)
            .all()
        )
        return {
            'rep_id': rep.id,
            'rep_name': rep.name,
            'date': day,
            'fees': fees,
            'count': len(fees),
            'total': round2(sum((to_decimal(f.amount) for f in fees), Decimal("0"))),
        }

    @staticmethod
    def get_job_financials(job_id):
        job = _find_active(TrafficJob, job_id, 'Traffic job')
        invoice_lines = InvoiceLine.query.filter_by(traffic_job_id=job.id).order_by(InvoiceLine.id).all()

        def total_of(records, attr):
            return round2(sum((to_decimal(getattr(r, attr)) for r in records), Decimal("0")))

        revenue = total_of(invoice_lines, 'line_total')
        costs = total_of(job.driver_fees, 'amount') + total_of(job.rep_fees, 'amount') + total_of(job.supplier_costs, 'amount')
        return {
            'traffic_job_id': job.id,
            'driver_fees': list(job.driver_fees),
            'rep_fees': list(job.rep_fees),
            'supplier_costs': list(job.supplier_costs),
            'invoice_lines': invoice_lines,
            'total_revenue': revenue,
            'total_costs': round2(costs),
            'margin': round2(revenue - costs),
        }
