from tourops.extensions import db
from sqlalchemy import Numeric
from decimal import Decimal

class CustomerPriceItem(db.Model):
    __tablename__ = 'customer_price_item'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer.id', ondelete='CASCADE'), nullable=False, index=True)
    service_type = db.Column(db.String(32), nullable=False)
    from_zone_id = db.Column(db.Integer, db.ForeignKey('zone.id', ondelete='CASCADE'), nullable=False)
    to_zone_id = db.Column(db.Integer, db.ForeignKey('zone.id', ondelete='CASCADE'), nullable=False)
    vehicle_type_id = db.Column(db.Integer, db.ForeignKey('vehicle_type.id', ondelete='CASCADE'), nullable=False)
    transfer_price = db.Column(Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00"))
    driver_tip = db.Column(Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00"))

    __table_args__ = (
        db.UniqueConstraint(
            'customer_id', 'service_type', 'from_zone_id', 'to_zone_id', 'vehicle_type_id',
            name='uq_customer_price_item_route',
        ),
    )

    def __repr__(self):
        return (f"<CustomerPriceItem {self.id} customer={self.customer_id} {self.service_type} "
                f"{self.from_zone_id}->{self.to_zone_id} vt={self.vehicle_type_id}>")
