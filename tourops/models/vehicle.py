from tourops.extensions import db
from sqlalchemy import false

class Vehicle(db.Model):
    __tablename__ = 'vehicle'
    id = db.Column(db.Integer, primary_key=True)
    plate_number = db.Column(db.String(64), nullable=False)
    vehicle_type_id = db.Column(db.Integer, db.ForeignKey('vehicle_type.id'), nullable=False, index=True)
    status = db.Column(db.String(32), default='Active', nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, server_default=false())

    vehicle_type = db.relationship('VehicleType', backref='vehicles', lazy='select')
