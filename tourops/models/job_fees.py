from tourops.extensions import db
from sqlalchemy import Numeric
from tourops.utils.timezone_utils import utc_now


class DriverTripFee(db.Model):
    __tablename__ = 'driver_trip_fee'

    id = db.Column(db.Integer, primary_key=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id', ondelete='CASCADE'), nullable=False, index=True)
    traffic_job_id = db.Column(db.Integer, db.ForeignKey('traffic_job.id', ondelete='CASCADE'), nullable=False, index=True)
    from_zone_id = db.Column(db.Integer, db.ForeignKey('zone.id'), nullable=False)
    to_zone_id = db.Column(db.Integer, db.ForeignKey('zone.id'), nullable=False)
    amount = db.Column(Numeric(precision=12, scale=2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    driver = db.relationship('Driver', lazy='select')
    traffic_job = db.relationship('TrafficJob', backref='driver_fees', lazy='select')
    from_zone = db.relationship('Zone', foreign_keys=[from_zone_id], lazy='select')
    to_zone = db.relationship('Zone', foreign_keys=[to_zone_id], lazy='select')


class RepFee(db.Model):
    __tablename__ = 'rep_fee'

    id = db.Column(db.Integer, primary_key=True)
    rep_id = db.Column(db.Integer, db.ForeignKey('rep.id', ondelete='CASCADE'), nullable=False, index=True)
    traffic_job_id = db.Column(db.Integer, db.ForeignKey('traffic_job.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(Numeric(precision=12, scale=2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    rep = db.relationship('Rep', lazy='select')
    traffic_job = db.relationship('TrafficJob', backref='rep_fees', lazy='select')


class SupplierCost(db.Model):
    __tablename__ = 'supplier_cost'

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey('supplier.id', ondelete='CASCADE'), nullable=False, index=True)
    traffic_job_id = db.Column(db.Integer, db.ForeignKey('traffic_job.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(Numeric(precision=12, scale=2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    supplier = db.relationship('Supplier', lazy='select')
    traffic_job = db.relationship('TrafficJob', backref='supplier_costs', lazy='select')
