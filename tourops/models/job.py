from tourops.extensions import db
from sqlalchemy import false
from enum import Enum
from tourops.utils.timezone_utils import utc_now


class ServiceType(Enum):
    ARR = "ARR"
    DEP = "DEP"
    EXCURSION = "EXCURSION"
    ROUND_TRIP = "ROUND_TRIP"
    ONE_WAY_GOING = "ONE_WAY_GOING"
    ONE_WAY_RETURN = "ONE_WAY_RETURN"
    OVER_DAY = "OVER_DAY"
    TRANSFER = "TRANSFER"
    CITY_TOUR = "CITY_TOUR"
    COLLECTING_ONE_WAY = "COLLECTING_ONE_WAY"
    COLLECTING_ROUND_TRIP = "COLLECTING_ROUND_TRIP"
    EXPRESS_SHOPPING = "EXPRESS_SHOPPING"


class TrafficJob(db.Model):
    """A trip job owned by dispatch. Billing only reads it."""
    __tablename__ = 'traffic_job'

    id = db.Column(db.Integer, primary_key=True)
    internal_ref = db.Column(db.String(64), nullable=True, index=True)
    booking_ref = db.Column(db.String(128), nullable=True)
    agent_id = db.Column(db.Integer, db.ForeignKey('agent.id', ondelete='SET NULL'), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer.id', ondelete='SET NULL'), nullable=True, index=True)
    service_type = db.Column(db.String(32), nullable=False, index=True)
    job_date = db.Column(db.Date, nullable=False, index=True)
    from_zone_id = db.Column(db.Integer, db.ForeignKey('zone.id', ondelete='SET NULL'), nullable=True, index=True)
    to_zone_id = db.Column(db.Integer, db.ForeignKey('zone.id', ondelete='SET NULL'), nullable=True, index=True)
    pax_count = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, server_default=false())

    from_zone = db.relationship('Zone', foreign_keys=[from_zone_id], lazy='select')
    to_zone = db.relationship('Zone', foreign_keys=[to_zone_id], lazy='select')
    assignment = db.relationship(
        'JobAssignment',
        back_populates='traffic_job',
        uselist=False,
        cascade='all, delete-orphan',
    )

    @property
    def assigned_vehicle(self):
        return self.assignment.vehicle if self.assignment else None

    @classmethod
    def query_active(cls):
        """Query active (non-deleted) records only"""
        return cls.query.filter_by(is_deleted=False)

    def __repr__(self):
        return f"<TrafficJob {self.id} {self.service_type} {self.job_date}>"


class JobAssignment(db.Model):
    __tablename__ = 'job_assignment'

    id = db.Column(db.Integer, primary_key=True)
    traffic_job_id = db.Column(db.Integer, db.ForeignKey('traffic_job.id', ondelete='CASCADE'), nullable=False, unique=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicle.id', ondelete='SET NULL'), nullable=True, index=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id', ondelete='SET NULL'), nullable=True, index=True)
    assigned_at = db.Column(db.DateTime, default=utc_now)

    traffic_job = db.relationship('TrafficJob', back_populates='assignment')
    vehicle = db.relationship('Vehicle', lazy='select')
    driver = db.relationship('Driver', lazy='select')
