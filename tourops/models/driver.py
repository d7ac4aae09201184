from tourops.extensions import db
from sqlalchemy import false

class Driver(db.Model):
    __tablename__ = 'driver'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    mobile = db.Column(db.String(32), nullable=True)
    license_number = db.Column(db.String(64), nullable=True)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, server_default=false())

    @classmethod
    def query_active(cls):
        """Query active (non-deleted) records only"""
        return cls.query.filter_by(is_deleted=False)
