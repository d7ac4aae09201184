from tourops.extensions import db
from sqlalchemy import false, Numeric
from decimal import Decimal

class Rep(db.Model):
    """Airport representative, paid a flat fee per arrival flight."""
    __tablename__ = 'rep'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    mobile = db.Column(db.String(32), nullable=True)
    fee_per_flight = db.Column(Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00"))
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, server_default=false())

    @classmethod
    def query_active(cls):
        """Query active (non-deleted) records only"""
        return cls.query.filter_by(is_deleted=False)
