from tourops.extensions import db
from sqlalchemy import false, Numeric
from decimal import Decimal
from tourops.utils.timezone_utils import utc_now


class Agent(db.Model):
    __tablename__ = 'agent'

    id = db.Column(db.Integer, primary_key=True, index=True)
    legal_name = db.Column(db.String(128), nullable=False)
    trade_name = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(128), nullable=True)
    currency = db.Column(db.String(3), default='EGP', nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, server_default=false())

    credit_terms = db.relationship(
        'AgentCreditTerms',
        back_populates='agent',
        uselist=False,
        cascade='all, delete-orphan',
    )

    @classmethod
    def query_active(cls):
        """Query active (non-deleted) records only"""
        return cls.query.filter_by(is_deleted=False)

    def __repr__(self):
        return f"<Agent {self.id} {self.legal_name}>"


class AgentCreditTerms(db.Model):
    """
    Optional cap on an agent's total exposure.
    A credit_limit of 0 disables the check; credit_days is informational.
    """
    __tablename__ = 'agent_credit_terms'

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey('agent.id', ondelete='CASCADE'), nullable=False, unique=True)
    credit_limit = db.Column(Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00"))
    credit_days = db.Column(db.Integer, nullable=False, default=0)
    # Touched by every credit-checked invoice creation so the version bump serialises them
    exposure_checked_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)

    agent = db.relationship('Agent', back_populates='credit_terms')

    __table_args__ = (
        db.CheckConstraint("credit_limit >= 0", name="ck_credit_terms_limit_nonneg"),
    )
    __mapper_args__ = {"version_id_col": version}
