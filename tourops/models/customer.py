from tourops.extensions import db
from sqlalchemy import false

class Customer(db.Model):
    __tablename__ = 'customer'

    id = db.Column(db.Integer, primary_key=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(128), nullable=True, index=True)
    mobile = db.Column(db.String(32), nullable=True)
    currency = db.Column(db.String(3), default='EGP', nullable=False)
    credit_days = db.Column(db.Integer, nullable=True)  # payment terms; due date falls back to config when unset
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, server_default=false())

    price_items = db.relationship('CustomerPriceItem', backref='customer', lazy=True, cascade='all, delete-orphan')

    @classmethod
    def query_active(cls):
        """Query active (non-deleted) records only"""
        return cls.query.filter_by(is_deleted=False)
