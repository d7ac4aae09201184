from tourops.extensions import db
from sqlalchemy import false

class VehicleType(db.Model):
    __tablename__ = 'vehicle_type'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    capacity = db.Column(db.Integer, nullable=True)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, server_default=false())

    def __repr__(self):
        return f"<VehicleType {self.id} {self.name}>"
