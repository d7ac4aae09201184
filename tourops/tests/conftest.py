"""
Shared fixtures: an application on TestConfig with a fresh in-memory schema
per test, plus small factories for the records billing reads.
"""
from datetime import date
from decimal import Decimal

import pytest

from tourops.application import create_app
from tourops.config import TestConfig
from tourops.extensions import db as _db
from tourops.models.agent import Agent, AgentCreditTerms
from tourops.models.customer import Customer
from tourops.models.customer_price_item import CustomerPriceItem
from tourops.models.driver import Driver
from tourops.models.job import JobAssignment, ServiceType, TrafficJob
from tourops.models.rep import Rep
from tourops.models.supplier import Supplier
from tourops.models.vehicle import Vehicle
from tourops.models.vehicle_type import VehicleType
from tourops.models.zone import Zone


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


class Factory:
    def _save(self, record):
        _db.session.add(record)
        _db.session.commit()
        return record

    def agent(self, legal_name="Sunrise Travel", credit_limit=None, credit_days=30, **kwargs):
        agent = self._save(Agent(legal_name=legal_name, **kwargs))
        if credit_limit is not None:
            self._save(AgentCreditTerms(agent_id=agent.id, credit_limit=Decimal(str(credit_limit)), credit_days=credit_days))
        return agent

    def customer(self, name="Nile Holidays", **kwargs):
        return self._save(Customer(name=name, **kwargs))

    def zone(self, name):
        return self._save(Zone(name=name))

    def vehicle(self, type_name="Van", plate_number="ABC-123"):
        vehicle_type = VehicleType.query.filter_by(name=type_name).first()
        if vehicle_type is None:
            vehicle_type = self._save(VehicleType(name=type_name, capacity=12))
        return self._save(Vehicle(plate_number=plate_number, vehicle_type_id=vehicle_type.id))

    def job(self, service_type=ServiceType.ARR.value, from_zone=None, to_zone=None, vehicle=None,
            job_date=date(2024, 3, 15), **kwargs):
        job = self._save(TrafficJob(
            service_type=service_type,
            job_date=job_date,
            from_zone_id=from_zone.id if from_zone else None,
            to_zone_id=to_zone.id if to_zone else None,
            **kwargs,
        ))
        if vehicle is not None:
            self._save(JobAssignment(traffic_job_id=job.id, vehicle_id=vehicle.id))
        return job

    def price_item(self, customer, service_type, from_zone, to_zone, vehicle, transfer_price=0, driver_tip=0):
        return self._save(CustomerPriceItem(
            customer_id=customer.id,
            service_type=service_type,
            from_zone_id=from_zone.id,
            to_zone_id=to_zone.id,
            vehicle_type_id=vehicle.vehicle_type_id,
            transfer_price=Decimal(str(transfer_price)),
            driver_tip=Decimal(str(driver_tip)),
        ))

    def driver(self, name="Ahmed"):
        return self._save(Driver(name=name))

    def rep(self, name="Mona", fee_per_flight=0):
        return self._save(Rep(name=name, fee_per_flight=Decimal(str(fee_per_flight))))

    def supplier(self, name="Red Sea Boats"):
        return self._save(Supplier(name=name))


@pytest.fixture
def factory(app):
    return Factory()


def build_invoice_payload(agent_id, *amounts, issue_date="2024-03-15", due_date="2024-04-14", tax_rate=None):
    lines = []
    for i, amount in enumerate(amounts, start=1):
        line = {"description": f"Service {i}", "unit_price": str(amount)}
        if tax_rate is not None:
            line["tax_rate"] = str(tax_rate)
        lines.append(line)
    return {"agent_id": agent_id, "issue_date": issue_date, "due_date": due_date, "lines": lines}


@pytest.fixture
def invoice_payload():
    return build_invoice_payload
